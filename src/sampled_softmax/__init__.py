"""
sampled_softmax
===============

Sampled softmax output layer for sequence labelling models with large label
spaces: scores the gold labels plus a handful of random negatives during
training and falls back to the full softmax at inference time.
"""

from importlib.metadata import PackageNotFoundError, version


def get_version() -> str:
    """Return the installed package version or '0.0.0' when unavailable."""
    try:
        return version("sampled_softmax")
    except PackageNotFoundError:
        return "0.0.0"


__all__ = ["get_version"]
