from enum import Enum

from pydantic import BaseModel, Field, field_validator

from image_folder_classifier.lib.models import ImageItem


class Architecture(str, Enum):
    """Pretrained backbones the trainer can put in front of the classifier head."""

    RESNET_V2_101 = "ResnetV2101"
    RESNET_V2_50 = "ResnetV250"
    MOBILENET_V2 = "MobilenetV2"
    DINO_V2_BASE = "DinoV2Base"

    @property
    def model_name(self) -> str:
        """Hugging Face hub checkpoint for this backbone."""
        return _MODEL_NAMES[self]


_MODEL_NAMES = {
    Architecture.RESNET_V2_101: "microsoft/resnet-101",
    Architecture.RESNET_V2_50: "microsoft/resnet-50",
    Architecture.MOBILENET_V2: "google/mobilenet_v2_1.0_224",
    Architecture.DINO_V2_BASE: "facebook/dinov2-base",
}


DEFAULT_LEARNING_RATE = 0.01
DEFAULT_BATCH_SIZE = 10
DEFAULT_NUM_EPOCHS = 200
DEFAULT_EARLY_STOPPING_PATIENCE = 20
DEFAULT_EARLY_STOPPING_MIN_DELTA = 0.01


class ClassifierOptions(BaseModel):
    """Options for the image classification trainer."""

    feature_column_name: str = Field(
        "image", description="ImageItem attribute holding the raw image bytes"
    )
    label_column_name: str = Field(
        "label_id", description="ImageItem attribute holding the label key"
    )
    arch: Architecture = Field(
        Architecture.RESNET_V2_101, description="Backbone architecture"
    )
    epoch: int = Field(DEFAULT_NUM_EPOCHS, description="Number of epochs to train", ge=1)
    batch_size: int = Field(
        DEFAULT_BATCH_SIZE, description="Batch size for training", ge=1
    )
    learning_rate: float = Field(
        DEFAULT_LEARNING_RATE, description="Learning rate for the head", gt=0
    )
    early_stopping_patience: int = Field(
        DEFAULT_EARLY_STOPPING_PATIENCE,
        description="Epochs without validation accuracy gain before stopping. 0 disables early stopping",
        ge=0,
    )
    early_stopping_min_delta: float = Field(
        DEFAULT_EARLY_STOPPING_MIN_DELTA,
        description="Smallest validation accuracy gain that counts as an improvement",
        ge=0,
    )
    test_on_train_set: bool = Field(
        False, description="Evaluate the trained head on the train set after fitting"
    )
    reuse_train_set_bottleneck_cached_values: bool = Field(
        False, description="Reuse cached backbone outputs for the train set"
    )
    reuse_validation_set_bottleneck_cached_values: bool = Field(
        False, description="Reuse cached backbone outputs for the validation set"
    )

    @field_validator("feature_column_name", "label_column_name")
    @classmethod
    def validate_column_name(cls, v: str) -> str:
        """Validate that the column refers to an ImageItem field."""
        if v not in ImageItem.model_fields:
            raise ValueError(
                f"'{v}' is not an ImageItem field ({', '.join(ImageItem.model_fields)})"
            )
        return v
