"""
Dataset Construction Component for the image folder classifier.

This module provides functionality for:
- Enumerating images and deriving labels from folder or file names
- Mapping labels to integer keys and loading image bytes
- Shuffling and splitting the dataset into train, validation, and test sets
"""

from .enumerator import label_from_filename, load_images_from_directory
from .preprocessing import LabelKeyMapper, load_image_bytes, preprocess
from .splitter import shuffle_records, split_dataset

__all__ = [
    "label_from_filename",
    "load_images_from_directory",
    "LabelKeyMapper",
    "load_image_bytes",
    "preprocess",
    "shuffle_records",
    "split_dataset",
]
