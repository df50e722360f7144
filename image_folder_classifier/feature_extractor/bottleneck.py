import hashlib
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Union

import torch
from tqdm import tqdm

from image_folder_classifier.lib import setup_logger

from .backbone import FeatureExtractor, decode_image

logger = setup_logger(__name__)


class BottleneckCache:
    """
    Backbone outputs stored on disk, keyed by the SHA-1 of the image bytes.

    With ``reuse`` False any existing file is ignored and overwritten on
    ``save``, so every image goes through the backbone again.
    """

    def __init__(self, path: Union[str, Path], reuse: bool = True):
        self.path = Path(path)
        self.reuse = reuse
        self._values: Dict[str, torch.Tensor] = {}
        self._dirty = False

        if reuse and self.path.exists():
            self._values = torch.load(self.path, map_location="cpu")
            logger.info(
                f"Loaded {len(self._values)} cached bottleneck values from {self.path}"
            )

    @staticmethod
    def key_for(image: bytes) -> str:
        return hashlib.sha1(image).hexdigest()

    def get(self, image: bytes) -> Optional[torch.Tensor]:
        return self._values.get(self.key_for(image))

    def put(self, image: bytes, features: torch.Tensor) -> None:
        self._values[self.key_for(image)] = features.detach().cpu().clone()
        self._dirty = True

    def save(self) -> None:
        if not self._dirty:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        torch.save(self._values, self.path)
        self._dirty = False
        logger.info(f"Saved {len(self._values)} bottleneck values to {self.path}")

    def __len__(self) -> int:
        return len(self._values)


def compute_bottleneck(
    extractor: FeatureExtractor,
    images: Sequence[bytes],
    batch_size: int,
    cache: Optional[BottleneckCache] = None,
    on_image: Optional[Callable[[int], None]] = None,
    desc: str = "Bottleneck",
) -> torch.Tensor:
    """
    Run every image through the backbone once and stack the outputs.

    Images found in ``cache`` are not decoded again. ``on_image`` is called with
    the index of each image whose features were computed.
    """
    if not images:
        raise ValueError("No images to compute bottleneck values for")

    rows: List[Optional[torch.Tensor]] = [None] * len(images)
    missing: List[int] = []
    for idx, image in enumerate(images):
        cached = cache.get(image) if cache is not None else None
        if cached is not None:
            rows[idx] = cached
        else:
            missing.append(idx)

    logger.info(
        f"{desc}: {len(images) - len(missing)} cached, {len(missing)} to compute"
    )

    for start in tqdm(range(0, len(missing), batch_size), desc=desc, leave=False):
        batch_indices = missing[start : start + batch_size]
        decoded = [decode_image(images[i]) for i in batch_indices]
        features = extractor.extract_features(decoded)
        for row, idx in enumerate(batch_indices):
            rows[idx] = features[row]
            if cache is not None:
                cache.put(images[idx], features[row])
            if on_image is not None:
                on_image(idx)

    if cache is not None:
        cache.save()

    return torch.stack([row for row in rows if row is not None])
