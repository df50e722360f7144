from typing import Dict, List, Sequence, Tuple, TypeVar

import numpy as np
from sklearn.model_selection import train_test_split
from sklearn.utils import shuffle

from image_folder_classifier.lib import (
    Dataset,
    DatasetSplit,
    ImageItem,
    setup_logger,
)

logger = setup_logger(__name__)

T = TypeVar("T")

DEFAULT_TEST_FRACTION = 0.3
# Fraction used when the held-out pool is split again into validation and test
DEFAULT_VALIDATION_TEST_FRACTION = 0.1


def shuffle_records(
    records: Sequence[T], random_state: np.random.RandomState
) -> List[T]:
    """Return the records in random order."""
    if not records:
        return []
    return list(shuffle(list(records), random_state=random_state))


def _split(
    items: Sequence[ImageItem],
    test_size: float,
    random_state: np.random.RandomState,
) -> Tuple[List[ImageItem], List[ImageItem]]:
    """
    Split the items into two parts.

    Raises scikit-learn's ValueError when either part would be empty.
    """
    idx_first, idx_second = train_test_split(
        range(len(items)), test_size=test_size, random_state=random_state
    )
    return [items[i] for i in idx_first], [items[i] for i in idx_second]


def split_dataset(
    items: Sequence[ImageItem],
    label_mapping: Dict[str, int],
    random_state: np.random.RandomState,
    test_fraction: float = DEFAULT_TEST_FRACTION,
    validation_test_fraction: float = DEFAULT_VALIDATION_TEST_FRACTION,
) -> Dataset:
    """
    Partition the items into train, validation and test sets.

    The split runs in two stages. ``test_fraction`` of the items is held out
    first, then that pool is split again: ``validation_test_fraction`` of it
    becomes the test set and the rest the validation set. Part sizes follow
    scikit-learn: the second part of each stage gets ``ceil(fraction * n)``.
    """
    train_items, pool = _split(items, test_fraction, random_state)
    validation_items, test_items = _split(pool, validation_test_fraction, random_state)

    logger.info(
        f"Split {len(items)} items into {len(train_items)} train, "
        f"{len(validation_items)} validation and {len(test_items)} test"
    )

    return Dataset(
        train=DatasetSplit(items=train_items),
        validation=DatasetSplit(items=validation_items),
        test=DatasetSplit(items=test_items),
        label_mapping=label_mapping,
    )
