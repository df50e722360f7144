from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel


class Phase(str, Enum):
    BOTTLENECK = "Bottleneck Computation"
    TRAINING = "Training"


class DatasetKind(str, Enum):
    TRAIN = "Train"
    VALIDATION = "Validation"


class ImageClassificationMetrics(BaseModel):
    """One progress event streamed by the trainer."""

    phase: Phase
    dataset: DatasetKind
    image_index: Optional[int] = None
    batch_processed_count: Optional[int] = None
    epoch: Optional[int] = None
    learning_rate: Optional[float] = None
    accuracy: Optional[float] = None
    cross_entropy: Optional[float] = None

    def __str__(self) -> str:
        parts = [f"Phase: {self.phase.value}", f"Dataset used: {self.dataset.value}"]
        if self.phase == Phase.BOTTLENECK:
            parts.append(f"Image Index: {self.image_index}")
            return ", ".join(parts)

        parts.append(f"Batch Processed Count: {self.batch_processed_count}")
        if self.learning_rate is not None:
            parts.append(f"Learning Rate: {self.learning_rate:g}")
        parts.append(f"Epoch: {self.epoch}")
        parts.append(f"Accuracy: {self.accuracy:.4f}")
        if self.cross_entropy is not None:
            parts.append(f"Cross-Entropy: {self.cross_entropy:.4f}")
        return ", ".join(parts)


MetricsCallback = Callable[[ImageClassificationMetrics], None]
