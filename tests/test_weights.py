import pytest
import torch

from sampled_softmax.features import SparseVector, concat_dense
from sampled_softmax.weights import WeightStore


def test_weight_store_shapes_and_seeding() -> None:
    first = WeightStore.create(6, 3, 5, generator=torch.Generator().manual_seed(0))
    second = WeightStore.create(6, 3, 5, generator=torch.Generator().manual_seed(0))
    assert first.layer_size == 6
    assert first.dense_weights.shape == (6, 3)
    assert first.sparse_weights.shape == (6, 5)
    assert torch.equal(first.dense_weights, second.dense_weights)
    assert torch.all(first.dense_lr == 0)


def test_share_memory_and_snapshot() -> None:
    store = WeightStore.create(4, 2, 2).share_memory()
    assert store.dense_weights.is_shared()
    snap = store.snapshot()
    store.dense_weights.add_(1.0)
    assert not torch.equal(snap["dense_weights"], store.dense_weights)


def test_sparse_vector_from_pairs() -> None:
    vec = SparseVector.from_pairs([(3, 0.5), (1, 2.0)])
    assert vec.indices.tolist() == [3, 1]
    assert vec.values.dtype == torch.float32
    assert len(vec) == 2
    with pytest.raises(ValueError):
        SparseVector(indices=torch.tensor([1, 2]), values=torch.tensor([1.0]))


def test_concat_dense() -> None:
    out = concat_dense([torch.tensor([1.0, 2.0]), torch.tensor([[3.0]])])
    assert out.tolist() == [1.0, 2.0, 3.0]
    assert concat_dense([]).numel() == 0
