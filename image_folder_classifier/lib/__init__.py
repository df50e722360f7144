"""
Utility library for the image folder classifier.

This module provides common utilities used across the pipeline components.
"""

from .logger import setup_logger
from .models import (
    ImageFormat,
    ImageRecord,
    ImageItem,
    PredictionRecord,
    DatasetSplit,
    Dataset,
)
from .context import PipelineContext

__all__ = [
    "setup_logger",
    "ImageFormat",
    "ImageRecord",
    "ImageItem",
    "PredictionRecord",
    "DatasetSplit",
    "Dataset",
    "PipelineContext",
]
