from pathlib import Path

import pytest
import ujson as json

from sampled_softmax import api
from sampled_softmax.dsl import LayerConfig, RunConfig


def test_config_yaml_roundtrip(run_config: RunConfig, tmp_path: Path) -> None:
    path = tmp_path / "run.yaml"
    api.save_config(run_config, path)
    loaded = api.load_config(path)
    assert loaded == run_config
    assert loaded.layer.sampled


def test_config_json_roundtrip(run_config: RunConfig, tmp_path: Path) -> None:
    path = tmp_path / "run.json"
    api.save_config(run_config, path)
    assert json.loads(path.read_text())["layer"]["negative_sample_size"] == 5
    assert api.load_config(path).summary()["layer_size"] == 20


def test_invalid_config_is_reported(tmp_path: Path) -> None:
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"layer": {"layer_size": 0, "dense_feature_size": 2}}))
    with pytest.raises(ValueError, match="Invalid config"):
        api.load_config(path)


def test_layer_needs_some_features() -> None:
    with pytest.raises(ValueError):
        LayerConfig(layer_size=5)


def test_summary_defaults() -> None:
    cfg = RunConfig(layer={"layer_size": 5, "dense_feature_size": 2})
    summary = cfg.summary()
    assert summary["negative_sample_size"] is None
    assert summary["epochs"] == cfg.train.epochs


@pytest.mark.parametrize(
    ("name", "text"),
    [
        ("empty.yaml", ""),
        ("broken.yaml", "layer: [1, 2"),
        ("list.yaml", "- 1\n- 2\n"),
        ("bad.json", "{"),
    ],
)
def test_unreadable_config_is_reported(tmp_path: Path, name: str, text: str) -> None:
    path = tmp_path / name
    path.write_text(text)
    with pytest.raises(ValueError, match="Invalid config"):
        api.load_config(path)
