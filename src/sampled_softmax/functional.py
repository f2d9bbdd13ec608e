"""Row-restricted tensor kernels shared by the softmax layers.

Every kernel takes an optional ``idx`` long tensor of label rows. ``None``
means all rows (full softmax); otherwise only those rows of the buffers and
weights are read or written.
"""

from __future__ import annotations

from collections.abc import Sequence

import torch

from .features import SparseVector

ACTIVATION_CLAMP = 50.0


def _rows(tensor: torch.Tensor, idx: torch.Tensor | None) -> torch.Tensor:
    return tensor if idx is None else tensor.index_select(0, idx)


def _write(dest: torch.Tensor, idx: torch.Tensor | None, values: torch.Tensor) -> None:
    if idx is None:
        dest.copy_(values)
    else:
        dest.index_copy_(0, idx, values)


def score_rows(
    cells: torch.Tensor,
    idx: torch.Tensor | None,
    dense: torch.Tensor | None,
    dense_weights: torch.Tensor,
    sparse_groups: Sequence[SparseVector],
    sparse_weights: torch.Tensor,
) -> None:
    """Write raw activations ``W_dense · x + Σ W_sparse[keys] · values`` into ``cells``."""
    n_rows = cells.numel() if idx is None else idx.numel()
    scores = torch.zeros(n_rows, dtype=cells.dtype, device=cells.device)
    if dense is not None and dense.numel() > 0:
        scores += _rows(dense_weights, idx) @ dense
    if sparse_groups:
        rows = _rows(sparse_weights, idx)
        for group in sparse_groups:
            if len(group) == 0:
                continue
            scores += rows[:, group.indices] @ group.values
    _write(cells, idx, scores)


def clamp_exp_normalize(cells: torch.Tensor, idx: torch.Tensor | None = None) -> None:
    """Clamped softmax over ``cells[idx]`` in place; other entries are untouched."""
    values = _rows(cells, idx).clamp(-ACTIVATION_CLAMP, ACTIVATION_CLAMP).exp()
    total = values.double().sum()
    _write(cells, idx, (values.double() / total).to(cells.dtype))


def output_errors(
    errs: torch.Tensor,
    probs: torch.Tensor,
    idx: torch.Tensor | None,
    label: int,
) -> None:
    """``errs = onehot(label) - probs`` restricted to ``idx``."""
    _write(errs, idx, -_rows(probs, idx))
    errs[label] = 1.0 - float(probs[label])


def _adagrad_rate(acc: torch.Tensor, learning_rate: float) -> torch.Tensor:
    return learning_rate / (1.0 + acc.sqrt())


def update_dense_rows(
    weights: torch.Tensor,
    acc: torch.Tensor,
    idx: torch.Tensor | None,
    errs: torch.Tensor,
    dense: torch.Tensor,
    learning_rate: float,
) -> None:
    """AdaGrad step ``w += lr / (1 + sqrt(Σ delta²)) * delta`` on the selected rows."""
    delta = errs[:, None] * dense[None, :]
    if idx is None:
        acc.add_(delta * delta)
        weights.add_(_adagrad_rate(acc, learning_rate) * delta)
        return
    acc.index_add_(0, idx, delta * delta)
    rate = _adagrad_rate(acc.index_select(0, idx), learning_rate)
    weights.index_add_(0, idx, rate * delta)


def update_sparse_rows(
    weights: torch.Tensor,
    acc: torch.Tensor,
    idx: torch.Tensor | None,
    errs: torch.Tensor,
    group: SparseVector,
    learning_rate: float,
) -> None:
    """Same AdaGrad step, touching only the active columns of one sparse group."""
    if len(group) == 0:
        return
    if idx is None:
        idx = torch.arange(weights.shape[0], device=weights.device)
    rows = idx[:, None].expand(-1, len(group))
    cols = group.indices[None, :].expand(idx.numel(), -1)
    delta = errs[:, None] * group.values[None, :]
    acc.index_put_((rows, cols), delta * delta, accumulate=True)
    rate = _adagrad_rate(acc[rows, cols], learning_rate)
    weights.index_put_((rows, cols), rate * delta, accumulate=True)


def propagate_errors(
    dest: torch.Tensor,
    errs: torch.Tensor,
    weights: torch.Tensor,
    idx: torch.Tensor | None,
    gradient_cutoff: float,
    clean_dest: bool = True,
) -> None:
    """Back-project ``errs[idx]`` through ``weights[idx]`` into ``dest``."""
    contrib = (_rows(errs, idx) @ _rows(weights, idx)).clamp(-gradient_cutoff, gradient_cutoff)
    if clean_dest:
        dest.copy_(contrib)
    else:
        dest.add_(contrib)
