import random

import pytest

from sampled_softmax.sampler import CandidateSet, SamplingExhaustedError, sample_candidates


class FixedDraw(random.Random):
    def __init__(self, value: int) -> None:
        super().__init__(0)
        self.value = value

    def randrange(self, *args, **kwargs) -> int:  # type: ignore[override]
        return self.value


def test_candidate_set_keeps_insertion_order_and_uniqueness() -> None:
    cands = CandidateSet([5, 2, 5, 9])
    assert cands.to_list() == [5, 2, 9]
    assert len(cands) == 3
    assert 2 in cands and 3 not in cands
    assert cands.index_tensor().tolist() == [5, 2, 9]


@pytest.mark.parametrize("seed", range(20))
def test_sampled_set_size_and_range(seed: int) -> None:
    rng = random.Random(seed)
    gold = [1, 7]
    cands = sample_candidates(gold, 5, 12, rng)
    members = cands.to_list()
    assert len(members) == len(gold) + 5
    assert len(set(members)) == len(members)
    assert all(0 <= m < 12 for m in members)
    assert members[:2] == gold


def test_collisions_probe_forward() -> None:
    cands = sample_candidates([3], 2, 10, FixedDraw(3))
    assert cands.to_list() == [3, 4, 5]


def test_probing_wraps_around() -> None:
    cands = sample_candidates([9], 2, 10, FixedDraw(9))
    assert cands.to_list() == [9, 0, 1]


def test_sampler_can_fill_every_label() -> None:
    cands = sample_candidates([0, 1], 3, 5, random.Random(0))
    assert sorted(cands) == [0, 1, 2, 3, 4]


def test_sampler_refuses_oversized_target() -> None:
    with pytest.raises(SamplingExhaustedError):
        sample_candidates([0, 1], 4, 5, random.Random(0))


def test_duplicate_gold_labels_collapse() -> None:
    cands = sample_candidates([4, 4], 2, 10, random.Random(1))
    assert len(cands) == 3


def test_gold_label_out_of_range() -> None:
    with pytest.raises(IndexError):
        sample_candidates([10], 1, 10, random.Random(0))


def test_seeded_rng_is_reproducible() -> None:
    first = sample_candidates([2], 4, 50, random.Random(11)).to_list()
    second = sample_candidates([2], 4, 50, random.Random(11)).to_list()
    assert first == second


def test_sampler_reuses_output_set() -> None:
    out = CandidateSet([8, 9])
    result = sample_candidates([1], 1, 10, random.Random(0), out=out)
    assert result is out
    assert 1 in out and len(out) == 2
