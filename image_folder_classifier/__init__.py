"""Image folder classifier: enumerate, split, train and predict on labeled image folders."""

__version__ = "0.1.0"
