from enum import Enum
import json
import os
from pathlib import Path
from typing import Dict, List, Union

from pydantic import BaseModel, ConfigDict, Field

from image_folder_classifier.lib.logger import setup_logger

logger = setup_logger(__name__)


class ImageFormat(str, Enum):
    """Image extensions the classification pipeline accepts."""

    JPG = ".jpg"
    PNG = ".png"


class ImageRecord(BaseModel):
    """A single image file with the label derived for it."""

    model_config = ConfigDict(frozen=True)

    image_path: str
    label: str


class ImageItem(BaseModel):
    """A preprocessed image: label key assigned and raw bytes loaded."""

    model_config = ConfigDict(frozen=True)

    image_path: str
    label: str
    label_id: int
    image: bytes = Field(default=b"", exclude=True, repr=False)


class PredictionRecord(BaseModel):
    """Outcome of running the trained model on one image."""

    image_path: str
    label: str
    predicted_label: str

    @property
    def image_name(self) -> str:
        return os.path.basename(self.image_path)


class DatasetSplit(BaseModel):
    """Represents a dataset split (train, validation, or test)."""

    items: List[ImageItem]

    def __len__(self) -> int:
        return len(self.items)


class Dataset(BaseModel):
    """The three partitions of a run together with its label key table."""

    train: DatasetSplit
    validation: DatasetSplit
    test: DatasetSplit

    # {label: key}
    label_mapping: Dict[str, int]

    def save(self, output_dir: Union[str, Path]) -> None:
        """
        Save the partitions to ``output_dir`` in JSONL format.

        Image bytes are not written; ``load_from_saved_folder`` reads them back
        from the recorded paths.
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        summary = {
            "train_size": len(self.train.items),
            "validation_size": len(self.validation.items),
            "test_size": len(self.test.items),
            "classes": list(self.label_mapping.keys()),
        }
        with open(output_dir / "summary.json", "w") as f:
            json.dump(summary, f, indent=2)

        for split_name in ["train", "validation", "test"]:
            split_data: DatasetSplit = getattr(self, split_name)
            with open(output_dir / f"{split_name}.jsonl", "w") as f:
                for item in split_data.items:
                    f.write(item.model_dump_json() + "\n")

        with open(output_dir / "label_mapping.json", "w") as f:
            json.dump(self.label_mapping, f, indent=2)

        logger.info(f"Dataset saved to {output_dir}")

    @classmethod
    def load_from_saved_folder(cls, folder_path: Union[str, Path]) -> "Dataset":
        """
        Load a dataset from a folder written by ``save``. The folder has the
        following structure:
        - label_mapping.json
        - train.jsonl
        - validation.jsonl
        - test.jsonl

        Each line of a jsonl file is an ImageItem without its bytes; the bytes
        are read again from ``image_path``.
        """
        folder_path = Path(folder_path)

        with open(folder_path / "label_mapping.json", "r") as f:
            label_mapping: Dict[str, int] = json.load(f)
        logger.info(f"Label mapping loaded from {folder_path / 'label_mapping.json'}")

        splits: Dict[str, DatasetSplit] = {}
        for split_name in ["train", "validation", "test"]:
            split_path = folder_path / f"{split_name}.jsonl"
            items: List[ImageItem] = []
            with open(split_path, "r") as f:
                for line in f:
                    if not line.strip():
                        continue
                    item_json = json.loads(line)
                    item_json["image"] = Path(item_json["image_path"]).read_bytes()
                    items.append(ImageItem.model_validate(item_json))
            splits[split_name] = DatasetSplit(items=items)
            logger.info(f"{len(items)} {split_name} items loaded from {split_path}")

        return cls(label_mapping=label_mapping, **splits)


def invert_label_mapping(label_mapping: Dict[str, int]) -> Dict[int, str]:
    return {key: label for label, key in label_mapping.items()}
