"""
Axis selector for store operations.

Features are rows, samples are columns. Operations that work along one
dimension (subsetting, group-wise and element-wise application, summaries)
take an ``Axis`` or one of its string aliases.

Examples:
    >>> from geomxset.core.axis import Axis
    >>> Axis.coerce("samples") is Axis.SAMPLES
    True
    >>> Axis.coerce("rows") is Axis.FEATURES
    True
"""

from __future__ import annotations

from enum import Enum

__all__ = ['Axis']


_ALIASES = {
    'feature': 'features',
    'features': 'features',
    'row': 'features',
    'rows': 'features',
    'sample': 'samples',
    'samples': 'samples',
    'column': 'samples',
    'columns': 'samples',
}


class Axis(str, Enum):
    """Dimension of the features × samples matrix."""

    FEATURES = 'features'
    SAMPLES = 'samples'

    @classmethod
    def coerce(cls, value: Axis | str) -> Axis:
        """Resolve an Axis or string alias; raises ValueError otherwise."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and value.lower() in _ALIASES:
            return cls(_ALIASES[value.lower()])
        raise ValueError(
            f"Unknown axis {value!r}. "
            f"Use one of: {sorted(_ALIASES)}"
        )

    @property
    def other(self) -> Axis:
        return Axis.SAMPLES if self is Axis.FEATURES else Axis.FEATURES
