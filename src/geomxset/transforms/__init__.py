"""Derived-matrix transforms (normalization, log scaling)."""

from geomxset.transforms.normalization import (
    HousekeepingScaling,
    LogTransform,
    NegativeBackgroundScaling,
    NormalizationMethod,
    QuantileScaling,
    negative_probe_mask,
    normalize,
)

__all__ = [
    'QuantileScaling',
    'NegativeBackgroundScaling',
    'HousekeepingScaling',
    'LogTransform',
    'NormalizationMethod',
    'normalize',
    'negative_probe_mask',
]
