"""
Prediction and reporting for trained classifiers.

Both reporting entry points classify once and return.
"""

from .engine import PredictionEngine
from .report import (
    classify_images,
    classify_single_image,
    format_prediction,
    output_prediction,
)

__all__ = [
    "PredictionEngine",
    "classify_images",
    "classify_single_image",
    "format_prediction",
    "output_prediction",
]
