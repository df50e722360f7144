import json
import logging
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator

from image_folder_classifier.classifier_trainer.config import ClassifierOptions


def _default_trainer_options() -> ClassifierOptions:
    return ClassifierOptions(
        test_on_train_set=False,
        reuse_train_set_bottleneck_cached_values=True,
        reuse_validation_set_bottleneck_cached_values=True,
    )


class WorkflowConfig(BaseModel):
    """Main configuration for an enumerate, split, train and predict run."""

    workspace_dir: str = Field(
        "workspace",
        description="Directory for bottleneck caches, label mapping, splits and checkpoints",
    )
    use_folder_name_as_label: bool = Field(
        True,
        description="Label images by parent folder name instead of file name prefix",
    )
    case_sensitive_extensions: bool = Field(
        True, description="Only accept lower-case .jpg and .png extensions"
    )
    test_fraction: float = Field(
        0.3, description="Fraction held out from training", gt=0, lt=1
    )
    validation_test_fraction: float = Field(
        0.1,
        description="Fraction of the held-out pool that becomes the test set",
        gt=0,
        lt=1,
    )
    seed: Optional[int] = Field(
        None, description="Random seed. Leave unset for a different shuffle every run"
    )
    device: Optional[str] = Field(
        None, description="Torch device, defaults to cuda when available"
    )
    label_mapping_path: Optional[str] = Field(
        None,
        description="Label mapping JSON to reuse. Written after the first run if missing",
    )
    save_splits: bool = Field(
        False, description="Write the partitions to <workspace>/splits"
    )
    prediction_limit: int = Field(
        10, description="Number of test images shown in batch prediction", ge=1
    )
    evaluate: bool = Field(
        False, description="Compute test-set metrics after training"
    )
    print_metrics: bool = Field(
        True, description="Print every trainer metrics event to the console"
    )
    log_level: str = Field("INFO", description="Logging level for the package")
    log_dir: Optional[str] = Field(
        None, description="Also write DEBUG logs to <log_dir>/<logger>.log"
    )
    aim_experiment: Optional[str] = Field(
        None, description="Track the run in Aim under this experiment name"
    )
    trainer: ClassifierOptions = Field(
        default_factory=_default_trainer_options,
        description="Image classification trainer options",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that log_level names a standard logging level."""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def resolved_label_mapping_path(self) -> Path:
        if self.label_mapping_path:
            return Path(self.label_mapping_path)
        return Path(self.workspace_dir) / "label_mapping.json"


def load_config(config_file: Union[str, Path]) -> WorkflowConfig:
    """Load and validate a WorkflowConfig from a YAML or JSON file."""
    config_path = Path(config_file)
    if config_path.suffix.lower() in [".yaml", ".yml"]:
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    elif config_path.suffix.lower() == ".json":
        with open(config_path, "r") as f:
            config_data = json.load(f)
    else:
        raise ValueError(f"Unsupported config file format: {config_path.suffix}")

    return WorkflowConfig.model_validate(config_data)
