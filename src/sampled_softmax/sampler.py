"""Negative sampling of candidate labels."""

from __future__ import annotations

import random
from collections.abc import Iterable, Iterator

import torch


class SamplingExhaustedError(RuntimeError):
    """Raised when the candidate target cannot fit in the label space."""


class CandidateSet:
    """Insertion-ordered set of label indices scored during a training step.

    Only entries of the activation and error buffers indexed by this set are
    valid while training.
    """

    def __init__(self, labels: Iterable[int] = ()) -> None:
        self._order: list[int] = []
        self._members: set[int] = set()
        for label in labels:
            self.add(label)

    def add(self, label: int) -> bool:
        label = int(label)
        if label in self._members:
            return False
        self._members.add(label)
        self._order.append(label)
        return True

    def clear(self) -> None:
        self._order.clear()
        self._members.clear()

    def __contains__(self, label: object) -> bool:
        return label in self._members

    def __iter__(self) -> Iterator[int]:
        return iter(self._order)

    def __len__(self) -> int:
        return len(self._order)

    def __repr__(self) -> str:
        return f"CandidateSet({self._order})"

    def to_list(self) -> list[int]:
        return list(self._order)

    def index_tensor(self, device: torch.device | str | None = None) -> torch.Tensor:
        """Return members as a long tensor in insertion order."""
        return torch.tensor(self._order, dtype=torch.long, device=device)


def sample_candidates(
    gold_labels: Iterable[int],
    negative_sample_size: int,
    layer_size: int,
    rng: random.Random,
    out: CandidateSet | None = None,
) -> CandidateSet:
    """Fill ``out`` with the gold labels plus ``negative_sample_size`` new labels.

    Each draw is uniform over ``[0, layer_size)``; collisions probe forward
    (modulo ``layer_size``) to the next unused label.
    """
    candidates = out if out is not None else CandidateSet()
    candidates.clear()
    for label in gold_labels:
        if not 0 <= int(label) < layer_size:
            raise IndexError(f"gold label {label} outside [0, {layer_size})")
        candidates.add(label)
    target = len(candidates) + negative_sample_size
    if target > layer_size:
        raise SamplingExhaustedError(
            f"cannot draw {negative_sample_size} negatives next to {len(candidates)} gold "
            f"labels from {layer_size} labels"
        )
    for _ in range(negative_sample_size):
        label = rng.randrange(layer_size)
        probes = 0
        while label in candidates:
            label = (label + 1) % layer_size
            probes += 1
            if probes >= layer_size:
                raise SamplingExhaustedError(f"no free label left among {layer_size}")
        candidates.add(label)
    return candidates
