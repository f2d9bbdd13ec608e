import pytest
import torch

from sampled_softmax.dsl import LayerConfig, RunConfig
from sampled_softmax.features import SparseVector, State
from sampled_softmax.layers import SampledSoftmaxLayer


@pytest.fixture()
def layer_config() -> LayerConfig:
    return LayerConfig(
        layer_size=10,
        dense_feature_size=4,
        sparse_feature_size=6,
        negative_sample_size=2,
        learning_rate=0.1,
        seed=7,
    )


@pytest.fixture()
def sampled_layer(layer_config: LayerConfig) -> SampledSoftmaxLayer:
    return SampledSoftmaxLayer(layer_config)


@pytest.fixture()
def step_state() -> State:
    return State(
        label=3,
        sparse_features=[
            SparseVector.from_pairs({0: 1.0, 4: 0.5}),
            SparseVector.from_pairs({2: 2.0}),
        ],
        dense_features=[torch.tensor([0.5, -1.0]), torch.tensor([0.25, 2.0])],
    )


@pytest.fixture()
def run_config() -> RunConfig:
    return RunConfig(
        layer={
            "layer_size": 20,
            "dense_feature_size": 8,
            "sparse_feature_size": 16,
            "negative_sample_size": 5,
            "learning_rate": 0.1,
            "seed": 3,
        },
        train={"epochs": 3, "workers": 1, "examples": 400, "eval_examples": 100, "seed": 1},
    )
