from typing import List, Tuple

import torch
from torch.utils.data import Dataset as TorchDataset


class FeatureDataset(TorchDataset[Tuple[torch.Tensor, torch.Tensor]]):
    """PyTorch Dataset over bottleneck features and their label keys."""

    def __init__(self, features: torch.Tensor, label_ids: List[int]):
        if features.dim() != 2:
            raise ValueError(
                f"Expected a (items, features) tensor, got shape {tuple(features.shape)}"
            )
        if features.shape[0] != len(label_ids):
            raise ValueError(
                f"{features.shape[0]} feature rows but {len(label_ids)} labels"
            )
        self.features = features.float()
        # CrossEntropyLoss expects long
        self.labels = torch.tensor(label_ids, dtype=torch.long)

    def __len__(self) -> int:
        return self.features.shape[0]

    def __getitem__(self, idx: int) -> Tuple[torch.Tensor, torch.Tensor]:
        return self.features[idx], self.labels[idx]

    @property
    def feature_dim(self) -> int:
        return self.features.shape[1]
