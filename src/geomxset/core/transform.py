"""
Base transformation framework for derived matrices.

A transform reads one named matrix from a store and returns a new store that
carries an additional matrix (e.g. ``raw`` -> ``q_norm`` -> ``log_q``). The
input store is never modified, so every intermediate state stays available
for comparison.

Biological Context:
    GeoMx counts are only comparable between segments after scaling:
    segment area, nuclei count and sequencing depth all shift raw counts.
    Typical steps:
    1. Quantile (Q3) scaling against the upper quartile of each segment
    2. Background scaling against negative-control probes
    3. Housekeeping scaling against stably expressed genes
    4. Log transform for downstream statistics

Examples:
    >>> from geomxset.transforms import QuantileScaling, LogTransform
    >>>
    >>> normalized = QuantileScaling(quantile=0.75).apply(store)
    >>> logged = LogTransform(source="q_norm", target="log_q").apply(normalized)
    >>> logged.assay_names
    ['raw', 'q_norm', 'log_q']
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, TYPE_CHECKING

import numpy as np

from geomxset.core.errors import NotFoundError

if TYPE_CHECKING:
    from geomxset.core.store import AnnotatedMatrixStore

logger = logging.getLogger(__name__)

__all__ = ['Transform']


class Transform(ABC):
    """
    Abstract base class for transformations that add a derived matrix.

    Attributes:
        name: Human-readable transformation name (e.g. "QuantileScaling")
        params: Parameters used for this transformation
        source: Name of the matrix read by the transform
        target: Name of the matrix written by the transform
        timestamp: When this transform instance was created

    Subclasses implement :meth:`compute`, which maps the source matrix to the
    target matrix. :meth:`apply` handles validation and attaches the result.

    Examples:
        >>> class CountsPerMillion(Transform):
        ...     def __init__(self, source="raw", target="cpm"):
        ...         super().__init__("CountsPerMillion", {}, source, target)
        ...
        ...     def compute(self, store):
        ...         values = store.get_matrix(self.source)
        ...         return values / values.sum(axis=0, keepdims=True) * 1e6
    """

    def __init__(self, name: str, params: dict[str, Any], source: str, target: str) -> None:
        if source == target:
            raise ValueError(f"{name}: target must differ from source ('{source}')")
        self.name = name
        self.params = params
        self.source = source
        self.target = target
        self.timestamp = datetime.now()

    @abstractmethod
    def compute(self, store: AnnotatedMatrixStore) -> np.ndarray:
        """Return the derived matrix (features × samples) in store order."""

    def validate(self, store: AnnotatedMatrixStore) -> list[str]:
        """
        Check preconditions before applying the transformation.

        Subclasses should call ``super().validate()`` first and extend the list.

        Returns:
            List of error messages (empty list = valid)
        """
        errors: list[str] = []

        if self.source not in store.assay_names:
            errors.append(f"Source matrix '{self.source}' not found (have {store.assay_names})")
        elif store.get_matrix(self.source).size == 0:
            errors.append("Cannot process empty matrix")

        return errors

    def apply(self, store: AnnotatedMatrixStore, overwrite: bool = False) -> AnnotatedMatrixStore:
        """
        Validate, compute and attach the derived matrix.

        Returns:
            New store with ``self.target`` added (input unchanged)

        Raises:
            NotFoundError: If the source matrix is absent
            ValueError: If any other precondition fails
        """
        errors = self.validate(store)
        if errors:
            message = f"{self!r} cannot be applied: " + "; ".join(errors)
            if self.source not in store.assay_names:
                raise NotFoundError(message)
            raise ValueError(message)

        derived = self.compute(store)
        logger.info(f"{self!r}: '{self.source}' -> '{self.target}'")
        return store.with_assay(self.target, derived, overwrite=overwrite)

    def __repr__(self) -> str:
        """String like "QuantileScaling(quantile=0.75)"."""
        params_str = ", ".join(f"{k}={v}" for k, v in self.params.items())
        return f"{self.name}({params_str})"
