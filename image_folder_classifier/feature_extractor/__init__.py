"""Pretrained backbones and the bottleneck cache built on them."""
