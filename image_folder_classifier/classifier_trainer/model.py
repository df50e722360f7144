from typing import Dict, List, Sequence

import torch
import torch.nn as nn

from image_folder_classifier.feature_extractor.backbone import (
    FeatureExtractor,
    decode_image,
)
from image_folder_classifier.lib.logger import setup_logger
from image_folder_classifier.lib.models import (
    ImageItem,
    PredictionRecord,
    invert_label_mapping,
)

logger = setup_logger(__name__)


class SimpleClassifierHead(nn.Module):
    """Simple Linear Classifier Head."""

    def __init__(self, input_dim: int, num_classes: int = 0):
        super().__init__()
        if num_classes <= 0:
            raise ValueError("num_classes must be greater than 0")
        self.fc = nn.Linear(input_dim, num_classes)
        logger.info(
            f"SimpleClassifierHead initialized with {input_dim} input dimensions and {num_classes} classes"
        )

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.fc(x)


class TrainedModel:
    """A backbone plus the classifier head trained on its bottleneck features."""

    def __init__(
        self,
        feature_extractor: FeatureExtractor,
        head: SimpleClassifierHead,
        label_mapping: Dict[str, int],
        device: torch.device,
        feature_column_name: str = "image",
        batch_size: int = 10,
    ):
        self.feature_extractor = feature_extractor
        self.head = head
        self.label_mapping = label_mapping
        self.labels_by_key = invert_label_mapping(label_mapping)
        self.device = device
        self.feature_column_name = feature_column_name
        self.batch_size = batch_size

    @torch.no_grad()
    def predict_label_ids(self, images: Sequence[bytes]) -> List[int]:
        self.head.eval()
        decoded = [decode_image(image) for image in images]
        features = self.feature_extractor.extract_features(decoded).float()
        logits = self.head(features.to(self.device))
        return torch.argmax(logits, dim=1).cpu().tolist()

    def transform(self, items: Sequence[ImageItem]) -> List[PredictionRecord]:
        """Predict a label for every item, in order."""
        predictions: List[PredictionRecord] = []
        for start in range(0, len(items), self.batch_size):
            batch = items[start : start + self.batch_size]
            label_ids = self.predict_label_ids(
                [getattr(item, self.feature_column_name) for item in batch]
            )
            predictions.extend(
                PredictionRecord(
                    image_path=item.image_path,
                    label=item.label,
                    predicted_label=self.labels_by_key[label_id],
                )
                for item, label_id in zip(batch, label_ids)
            )
        return predictions
