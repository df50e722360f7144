from pathlib import Path
from typing import List, Sequence, Tuple

import numpy as np
import pytest
import torch
from PIL import Image

from image_folder_classifier.lib import PipelineContext

RED = (220, 20, 20)
BLUE = (20, 20, 220)


def write_image(path: Path, color: Tuple[int, int, int], size: int = 8) -> Path:
    """Draw a solid-colour image; the format follows the file extension."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fmt = "JPEG" if path.suffix.lower() == ".jpg" else "PNG"
    Image.new("RGB", (size, size), color).save(path, format=fmt)
    return path


class MeanColorExtractor:
    """Stand-in backbone: the mean RGB value of each image, scaled to [0, 1]."""

    def __init__(self):
        self.calls = 0
        self.images_seen = 0

    def extract_features(self, images: Sequence[Image.Image]) -> torch.Tensor:
        self.calls += 1
        self.images_seen += len(images)
        rows: List[np.ndarray] = [
            np.asarray(image, dtype=np.float32).reshape(-1, 3).mean(axis=0) / 255.0
            for image in images
        ]
        return torch.from_numpy(np.stack(rows))


@pytest.fixture
def extractor() -> MeanColorExtractor:
    return MeanColorExtractor()


@pytest.fixture
def context(tmp_path: Path) -> PipelineContext:
    with PipelineContext(
        workspace_dir=tmp_path / "workspace", seed=0, device="cpu"
    ) as ctx:
        yield ctx


@pytest.fixture
def assets_dir(tmp_path: Path) -> Path:
    """``assets/cat`` holds red images and ``assets/dog`` blue ones, 15 of each."""
    root = tmp_path / "assets"
    write_image(root / "cat" / "a.jpg", RED)
    write_image(root / "dog" / "b.png", BLUE)
    for i in range(14):
        write_image(root / "cat" / f"cat_{i:02d}.png", RED)
        write_image(root / "dog" / f"dog_{i:02d}.png", BLUE)
    return root
