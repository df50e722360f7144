import io
import logging
from typing import Optional, Protocol, Sequence

import torch
from PIL import Image
from transformers import AutoImageProcessor, AutoModel

from image_folder_classifier.classifier_trainer.config import Architecture
from image_folder_classifier.lib import setup_logger

logger = setup_logger(__name__, level=logging.INFO)


class FeatureExtractor(Protocol):
    """Anything that turns a batch of images into one feature row per image."""

    def extract_features(self, images: Sequence[Image.Image]) -> torch.Tensor: ...


def decode_image(image: bytes) -> Image.Image:
    """Decode raw image bytes into an RGB PIL image."""
    with Image.open(io.BytesIO(image)) as decoded:
        return decoded.convert("RGB")


class BackboneFeatureExtractor:
    """Extracts bottleneck features from images with a pretrained backbone."""

    def __init__(self, arch: Architecture, device: Optional[torch.device] = None):
        self.arch = arch
        self.device = device or torch.device("cpu")
        logger.info(f"Loading backbone {arch.value} ({arch.model_name})")
        self.processor = AutoImageProcessor.from_pretrained(arch.model_name)
        self.model = AutoModel.from_pretrained(arch.model_name)
        self.model.to(self.device)
        self.model.eval()

    def _normalise_images(self, images: Sequence[Image.Image]):
        """
        Resizes and normalises the images as expected by the backbone.

        Remarks:
        AutoImageProcessor already handles normalisation, so we don't need to do anything here.
        """
        return self.processor(images=list(images), return_tensors="pt")

    @torch.no_grad()
    def extract_features(self, images: Sequence[Image.Image]) -> torch.Tensor:
        """
        Takes a batch of images and returns a (batch, features) tensor.

        Uses the pooled output where the backbone has one, otherwise the mean of
        the last hidden state over the token dimension.
        """
        inputs = self._normalise_images(images).to(self.device)
        outputs = self.model(**inputs)

        pooled = getattr(outputs, "pooler_output", None)
        if pooled is not None:
            features = torch.flatten(pooled, start_dim=1)
        else:
            features = outputs.last_hidden_state.mean(dim=1)
        logger.debug(f"Bottleneck features shape: {features.shape}")

        assert isinstance(features, torch.Tensor)
        return features.cpu()
