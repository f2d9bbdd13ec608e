"""Synthetic labelled examples for exercising output layers."""

from __future__ import annotations

import torch

from .dsl import LayerConfig, TrainConfig
from .features import SparseVector, State


def _make_states(
    labels: torch.Tensor,
    prototypes: torch.Tensor,
    layer: LayerConfig,
    train: TrainConfig,
    generator: torch.Generator,
) -> list[State]:
    states: list[State] = []
    for label in labels.tolist():
        dense: list[torch.Tensor] = []
        if layer.dense_feature_size > 0:
            noise = torch.randn(layer.dense_feature_size, generator=generator) * train.noise
            dense.append(prototypes[label] + noise)
        sparse: list[SparseVector] = []
        if layer.sparse_feature_size > 0:
            width = min(train.active_features, layer.sparse_feature_size)
            start = (label * width) % layer.sparse_feature_size
            keys = torch.arange(start, start + width) % layer.sparse_feature_size
            sparse.append(SparseVector(indices=keys, values=torch.ones(width)))
        states.append(State(label=label, sparse_features=sparse, dense_features=dense))
    return states


def synthesize_dataset(layer: LayerConfig, train: TrainConfig) -> tuple[list[State], list[State]]:
    """Build train/eval splits where each label owns a dense prototype and a sparse block."""
    generator = torch.Generator().manual_seed(train.seed)
    prototypes = torch.randn(layer.layer_size, max(layer.dense_feature_size, 1), generator=generator)
    train_labels = torch.randint(0, layer.layer_size, (train.examples,), generator=generator)
    eval_labels = torch.randint(0, layer.layer_size, (train.eval_examples,), generator=generator)
    return (
        _make_states(train_labels, prototypes, layer, train, generator),
        _make_states(eval_labels, prototypes, layer, train, generator),
    )
