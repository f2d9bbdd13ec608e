"""Full and sampled softmax output layers with explicit forward/backward passes.

Both layers expose the same capability set (``forward_pass``,
``compute_output_loss``, ``backward_pass``, ``compute_layer_err``,
``get_best_output_index``, ``create_layer_shared_weights``). The sampled layer
switches on ``running_mode``: in training it works on a per-step candidate set,
in test mode it hands every call to the full softmax implementation.
"""

from __future__ import annotations

import math
import random
from collections.abc import Sequence
from typing import Literal, Protocol

import torch

from .dsl import LayerConfig
from .features import SparseVector, State, concat_dense
from .functional import (
    clamp_exp_normalize,
    output_errors,
    propagate_errors,
    score_rows,
    update_dense_rows,
    update_sparse_rows,
)
from .sampler import CandidateSet, sample_candidates
from .weights import WeightStore

RunningMode = Literal["training", "test"]


class ConfigurationError(ValueError):
    """Invalid layer configuration detected at construction."""


class HasErrs(Protocol):
    errs: torch.Tensor


class SoftmaxLayer:
    """Softmax output layer scoring every label."""

    def __init__(self, config: LayerConfig, weights: WeightStore | None = None) -> None:
        self.config = config
        self.layer_size = config.layer_size
        self.dense_feature_size = config.dense_feature_size
        self.sparse_feature_size = config.sparse_feature_size
        self.rng = random.Random(config.seed)  # noqa: S311  # nosec B311 - sampling, not crypto
        if weights is None:
            generator = torch.Generator()
            if config.seed is not None:
                generator.manual_seed(config.seed)
            else:
                generator.seed()
            weights = WeightStore.create(
                config.layer_size,
                config.dense_feature_size,
                config.sparse_feature_size,
                init_std=config.init_std,
                generator=generator,
            )
        elif weights.layer_size != config.layer_size:
            raise ConfigurationError(
                f"weight store has {weights.layer_size} rows, layer_size is {config.layer_size}"
            )
        self.weights = weights
        self.running_mode: RunningMode = "training"
        self.label_short_list: list[int] = []
        self.init_internal_training_parameters()

    def init_internal_training_parameters(self) -> None:
        """Allocate the per-instance activation/error buffers and input slots."""
        self.cells = torch.zeros(self.layer_size)
        self.errs = torch.zeros(self.layer_size)
        self._dense: torch.Tensor | None = None
        self._sparse: list[SparseVector] = []

    @property
    def valid_indices(self) -> torch.Tensor | None:
        """Rows of ``cells``/``errs`` that are meaningful; ``None`` means all."""
        return None

    def _set_inputs(
        self,
        sparse_features: Sequence[SparseVector] | None,
        dense_features: Sequence[torch.Tensor] | None,
    ) -> None:
        self._dense = concat_dense(dense_features) if self.dense_feature_size > 0 else None
        if self._dense is not None and self._dense.numel() != self.dense_feature_size:
            raise ValueError(
                f"expected {self.dense_feature_size} dense features, got {self._dense.numel()}"
            )
        self._sparse = list(sparse_features or []) if self.sparse_feature_size > 0 else []

    @torch.no_grad()
    def forward_pass(
        self,
        sparse_features: Sequence[SparseVector] | None,
        dense_features: Sequence[torch.Tensor] | None,
    ) -> None:
        self._set_inputs(sparse_features, dense_features)
        score_rows(
            self.cells,
            None,
            self._dense,
            self.weights.dense_weights,
            self._sparse,
            self.weights.sparse_weights,
        )
        clamp_exp_normalize(self.cells)

    @torch.no_grad()
    def compute_output_loss(
        self,
        crf_seq_output: torch.Tensor | None,
        state: State,
        timeat: int,
    ) -> None:
        """Fill ``errs`` with ``onehot(label) - p``.

        When ``crf_seq_output`` (``[time, label]`` joint probabilities from a
        linear-chain CRF) is given it replaces the layer's own distribution.
        """
        if crf_seq_output is not None:
            probs = torch.as_tensor(crf_seq_output[timeat], dtype=self.errs.dtype)
        else:
            probs = self.cells
        output_errors(self.errs, probs, self.valid_indices, state.label)

    def candidate_log_loss(self, label: int) -> float:
        """Negative log-likelihood of ``label`` under the current distribution."""
        return -math.log(max(float(self.cells[label]), 1e-12))

    @torch.no_grad()
    def backward_pass(self) -> None:
        """Update the incoming weight rows from ``errs``."""
        idx = self.valid_indices
        errs = self.errs if idx is None else self.errs.index_select(0, idx)
        cutoff = self.config.gradient_cutoff
        errs = errs.clamp(-cutoff, cutoff)
        lr = self.config.learning_rate
        if self._dense is not None:
            update_dense_rows(
                self.weights.dense_weights, self.weights.dense_lr, idx, errs, self._dense, lr
            )
        for group in self._sparse:
            update_sparse_rows(
                self.weights.sparse_weights, self.weights.sparse_lr, idx, errs, group, lr
            )

    @torch.no_grad()
    def compute_layer_err(self, dest: torch.Tensor | HasErrs, clean_dest: bool = True) -> None:
        """Propagate ``errs`` to the previous layer's error buffer."""
        target = dest if isinstance(dest, torch.Tensor) else dest.errs
        propagate_errors(
            target,
            self.errs,
            self.weights.dense_weights,
            self.valid_indices,
            self.config.gradient_cutoff,
            clean_dest=clean_dest,
        )

    def get_best_output_index(self) -> int:
        return int(torch.argmax(self.cells))

    def create_layer_shared_weights(self) -> SoftmaxLayer:
        """Worker copy sharing ``weights`` but owning fresh buffers and RNG."""
        config = self.config.model_copy(update={"seed": self.rng.getrandbits(32)})
        layer = type(self)(config, weights=self.weights)
        layer.config = self.config
        layer.running_mode = self.running_mode
        return layer


class SampledSoftmaxLayer(SoftmaxLayer):
    """Softmax layer that trains on gold labels plus random negatives."""

    def __init__(self, config: LayerConfig, weights: WeightStore | None = None) -> None:
        if config.negative_sample_size is None:
            raise ConfigurationError("sampled softmax requires negative_sample_size")
        if config.negative_sample_size > config.layer_size:
            raise ConfigurationError(
                f"The size of negative sampling ({config.negative_sample_size}) cannot be "
                f"greater than the layer size ({config.layer_size})."
            )
        super().__init__(config, weights)
        self.negative_sample_size = config.negative_sample_size

    def init_internal_training_parameters(self) -> None:
        super().init_internal_training_parameters()
        self.candidates = CandidateSet()
        self._candidate_idx = torch.zeros(0, dtype=torch.long)

    @property
    def valid_indices(self) -> torch.Tensor | None:
        if self.running_mode == "training":
            return self._candidate_idx
        return None

    @torch.no_grad()
    def forward_pass(
        self,
        sparse_features: Sequence[SparseVector] | None,
        dense_features: Sequence[torch.Tensor] | None,
    ) -> None:
        if self.running_mode != "training":
            super().forward_pass(sparse_features, dense_features)
            return
        sample_candidates(
            self.label_short_list,
            self.negative_sample_size,
            self.layer_size,
            self.rng,
            out=self.candidates,
        )
        self._candidate_idx = self.candidates.index_tensor()
        self._set_inputs(sparse_features, dense_features)
        score_rows(
            self.cells,
            self._candidate_idx,
            self._dense,
            self.weights.dense_weights,
            self._sparse,
            self.weights.sparse_weights,
        )
        clamp_exp_normalize(self.cells, self._candidate_idx)

    def set_candidates(self, labels: Sequence[int]) -> None:
        """Install an explicit candidate set, bypassing the sampler.

        Hook for callers that choose their own candidates (e.g. a shortlist
        from an earlier decoding pass) before ``compute_output_loss`` and
        ``backward_pass``. The next training ``forward_pass`` resamples.
        """
        self.candidates = CandidateSet(labels)
        self._candidate_idx = self.candidates.index_tensor()

    def get_best_output_index(self) -> int:
        if self.running_mode != "training":
            return super().get_best_output_index()
        if len(self.candidates) == 0:
            return 0
        best = torch.argmax(self.cells.index_select(0, self._candidate_idx))
        return int(self._candidate_idx[best])


def build_layer(config: LayerConfig, weights: WeightStore | None = None) -> SoftmaxLayer:
    """Sampled layer when ``negative_sample_size`` is set, full softmax otherwise."""
    if config.sampled:
        return SampledSoftmaxLayer(config, weights)
    return SoftmaxLayer(config, weights)
