"""Feature containers consumed by output layers."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

import torch


@dataclass
class SparseVector:
    """Sparse feature group: parallel index/value tensors with unique indices."""

    indices: torch.Tensor
    values: torch.Tensor

    def __post_init__(self) -> None:
        self.indices = torch.as_tensor(self.indices, dtype=torch.long)
        self.values = torch.as_tensor(self.values, dtype=torch.float32)
        if self.indices.shape != self.values.shape:
            raise ValueError("sparse indices and values must have the same shape")

    @classmethod
    def from_pairs(cls, pairs: Mapping[int, float] | Iterable[tuple[int, float]]) -> SparseVector:
        items = list(pairs.items()) if isinstance(pairs, Mapping) else list(pairs)
        keys = [int(k) for k, _ in items]
        vals = [float(v) for _, v in items]
        return cls(indices=torch.tensor(keys, dtype=torch.long), values=torch.tensor(vals))

    def __len__(self) -> int:
        return int(self.indices.numel())


@dataclass
class State:
    """One timestep of a sequence as seen by the output layer."""

    label: int
    sparse_features: list[SparseVector] = field(default_factory=list)
    dense_features: list[torch.Tensor] = field(default_factory=list)


def concat_dense(groups: Sequence[torch.Tensor]) -> torch.Tensor:
    """Concatenate dense feature groups into one float32 vector."""
    if not groups:
        return torch.zeros(0)
    return torch.cat([torch.as_tensor(g, dtype=torch.float32).reshape(-1) for g in groups])
