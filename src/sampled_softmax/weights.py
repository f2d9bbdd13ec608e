"""Per-label weight rows shared by every worker copy of an output layer."""

from __future__ import annotations

from dataclasses import dataclass

import torch


@dataclass
class WeightStore:
    """Dense and sparse weight rows plus their AdaGrad accumulators.

    Row ``i`` of each matrix belongs to label ``i``. Worker clones hold a
    reference to the same store and update it in place without locking
    (Hogwild); concurrent updates to one row may interleave.
    """

    dense_weights: torch.Tensor
    sparse_weights: torch.Tensor
    dense_lr: torch.Tensor
    sparse_lr: torch.Tensor

    @classmethod
    def create(
        cls,
        layer_size: int,
        dense_feature_size: int,
        sparse_feature_size: int,
        init_std: float = 0.1,
        generator: torch.Generator | None = None,
    ) -> WeightStore:
        dense = torch.randn(layer_size, dense_feature_size, generator=generator) * init_std
        sparse = torch.randn(layer_size, sparse_feature_size, generator=generator) * init_std
        return cls(
            dense_weights=dense,
            sparse_weights=sparse,
            dense_lr=torch.zeros_like(dense),
            sparse_lr=torch.zeros_like(sparse),
        )

    @property
    def layer_size(self) -> int:
        return int(self.dense_weights.shape[0])

    def share_memory(self) -> WeightStore:
        """Move all tensors to shared memory for multi-process workers."""
        for tensor in (self.dense_weights, self.sparse_weights, self.dense_lr, self.sparse_lr):
            tensor.share_memory_()
        return self

    def snapshot(self) -> dict[str, torch.Tensor]:
        """Detached copies of the weight matrices."""
        return {
            "dense_weights": self.dense_weights.clone(),
            "sparse_weights": self.sparse_weights.clone(),
        }
