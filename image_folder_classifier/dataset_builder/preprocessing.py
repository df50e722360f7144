import json
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from tqdm import tqdm

from image_folder_classifier.lib import ImageItem, ImageRecord, setup_logger

logger = setup_logger(__name__)


class LabelKeyMapper:
    """Maps textual labels to integer label keys."""

    def __init__(self, label_mapping: Dict[str, int]):
        self.label_mapping = dict(label_mapping)

    @classmethod
    def fit(cls, records: Iterable[ImageRecord]) -> "LabelKeyMapper":
        """Build a mapping from the labels present in ``records``.

        Keys are assigned in sorted label order, so the same set of labels
        always gives the same keys.
        """
        labels = sorted({record.label for record in records})
        mapping = {label: idx for idx, label in enumerate(labels)}
        logger.info(f"Label mapping built for {len(mapping)} labels: {mapping}")
        return cls(mapping)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "LabelKeyMapper":
        with open(path, "r") as f:
            mapping = json.load(f)
        logger.info(f"Label mapping loaded from {path}")
        return cls({str(label): int(key) for label, key in mapping.items()})

    def save(self, path: Union[str, Path]) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.label_mapping, f, indent=2)
        logger.info(f"Label mapping saved to {path}")

    def key_for(self, label: str) -> int:
        if label not in self.label_mapping:
            raise ValueError(
                f"Label '{label}' not found in label mapping {sorted(self.label_mapping)}"
            )
        return self.label_mapping[label]

    def __len__(self) -> int:
        return len(self.label_mapping)


def load_image_bytes(
    image_path: Union[str, Path], image_folder: Optional[Union[str, Path]] = None
) -> bytes:
    """Read the raw bytes of an image. Relative paths resolve against ``image_folder``."""
    path = Path(image_path)
    if not path.is_absolute() and image_folder is not None:
        path = Path(image_folder) / path
    return path.read_bytes()


def preprocess(
    records: Iterable[ImageRecord],
    mapper: LabelKeyMapper,
    image_folder: Optional[Union[str, Path]] = None,
) -> List[ImageItem]:
    """
    Assign label keys and load image bytes for every record.

    The first record that cannot be read aborts the whole stage; its OSError
    propagates to the caller.
    """
    items: List[ImageItem] = []
    for record in tqdm(list(records), desc="Loading images"):
        items.append(
            ImageItem(
                image_path=record.image_path,
                label=record.label,
                label_id=mapper.key_for(record.label),
                image=load_image_bytes(record.image_path, image_folder),
            )
        )

    logger.info(f"Preprocessed {len(items)} images")
    return items
