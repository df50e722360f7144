"""Classifier head training on top of backbone bottleneck features."""
