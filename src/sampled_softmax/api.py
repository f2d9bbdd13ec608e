"""Public API for downstream modules."""

from __future__ import annotations

from pathlib import Path

from .data import synthesize_dataset
from .dsl import LayerConfig, RunConfig, load_run_config, save_run_config
from .layers import ConfigurationError, SampledSoftmaxLayer, SoftmaxLayer, build_layer
from .sampler import SamplingExhaustedError
from .trainer import EpochMetrics, HogwildTrainer

__all__ = [
    "ConfigurationError",
    "LayerConfig",
    "RunConfig",
    "SampledSoftmaxLayer",
    "SamplingExhaustedError",
    "SoftmaxLayer",
    "build_layer",
    "load_config",
    "save_config",
    "train_synthetic",
]


def load_config(path: str | Path) -> RunConfig:
    """Read a run config from disk."""
    return load_run_config(path)


def save_config(config: RunConfig, path: str | Path) -> None:
    """Persist a run config to disk."""
    save_run_config(config, path)


def train_synthetic(
    config: RunConfig,
    epochs: int | None = None,
    workers: int | None = None,
    seed: int | None = None,
) -> tuple[SoftmaxLayer, list[EpochMetrics]]:
    """Build the configured layer and train it on a synthetic dataset."""
    overrides = {
        key: value
        for key, value in {"epochs": epochs, "workers": workers, "seed": seed}.items()
        if value is not None
    }
    train_cfg = config.train.model_copy(update=overrides)
    layer = build_layer(config.layer)
    train_examples, eval_examples = synthesize_dataset(config.layer, train_cfg)
    trainer = HogwildTrainer(layer, workers=train_cfg.workers, seed=train_cfg.seed)
    return layer, trainer.fit(train_examples, eval_examples, train_cfg.epochs)
