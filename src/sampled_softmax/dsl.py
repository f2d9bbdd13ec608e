"""Typed configuration for softmax output layers and training runs."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import ujson as json
import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator


class LayerConfig(BaseModel):
    """Output layer definition.

    ``negative_sample_size`` switches the layer to sampled softmax; leave it
    unset for a plain full-softmax layer.
    """

    layer_size: int = Field(gt=0)
    dense_feature_size: int = Field(default=0, ge=0)
    sparse_feature_size: int = Field(default=0, ge=0)
    negative_sample_size: int | None = Field(default=None, ge=1)
    learning_rate: float = Field(default=0.1, gt=0.0)
    gradient_cutoff: float = Field(default=15.0, gt=0.0)
    init_std: float = Field(default=0.1, ge=0.0)
    seed: int | None = None

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @model_validator(mode="after")
    def require_features(self) -> LayerConfig:
        if self.dense_feature_size == 0 and self.sparse_feature_size == 0:
            raise ValueError("layer needs dense_feature_size or sparse_feature_size > 0")
        return self

    @property
    def sampled(self) -> bool:
        return self.negative_sample_size is not None


class TrainConfig(BaseModel):
    """Hogwild training knobs for the demo trainer."""

    epochs: int = Field(default=3, ge=1)
    workers: int = Field(default=2, ge=1)
    examples: int = Field(default=512, ge=1)
    eval_examples: int = Field(default=128, ge=1)
    active_features: int = Field(default=4, ge=1)
    noise: float = Field(default=0.1, ge=0.0)
    seed: int = 0


class RunConfig(BaseModel):
    """Top-level config entity."""

    layer: LayerConfig
    train: TrainConfig = Field(default_factory=TrainConfig)

    def summary(self) -> dict[str, Any]:
        """Return a JSON-friendly summary for display."""
        return {
            "layer_size": self.layer.layer_size,
            "dense_feature_size": self.layer.dense_feature_size,
            "sparse_feature_size": self.layer.sparse_feature_size,
            "negative_sample_size": self.layer.negative_sample_size,
            "learning_rate": self.layer.learning_rate,
            "epochs": self.train.epochs,
            "workers": self.train.workers,
        }


def load_run_config(path: str | Path) -> RunConfig:
    """Load a run config from YAML or JSON."""
    path = Path(path)
    data: Any
    text = path.read_text()
    try:
        if path.suffix in {".yaml", ".yml"}:
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (yaml.YAMLError, ValueError) as exc:
        raise ValueError(f"Invalid config {path}: cannot parse") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid config {path}: expected a mapping")
    try:
        return RunConfig(**data)
    except ValidationError as exc:
        raise ValueError(f"Invalid config {path}") from exc


def save_run_config(config: RunConfig, path: str | Path) -> None:
    """Persist a run config as YAML or JSON based on file suffix."""
    path = Path(path)
    if path.suffix in {".yaml", ".yml"}:
        path.write_text(yaml.safe_dump(config.model_dump(mode="python"), sort_keys=False))
    else:
        path.write_text(json.dumps(config.model_dump(mode="python"), indent=2))
