"""
Segment-level scaling normalizations for GeoMx count matrices.

Implements the scaling approaches commonly applied to GeoMx data:
- Quantile scaling (Q3): scale each segment by an upper quantile of its counts
- Negative background scaling: scale by the negative-control probe level
- Housekeeping scaling: scale by the level of stably expressed genes
- Log transform of a (scaled) matrix

Every scaling method computes one factor per segment, then rescales the
segment so that its factor equals the geometric mean of all factors. The
assumption is that most targets do not change between segments, so
differences in the factor reflect area, cellularity and sequencing depth.

Non-positive values are treated as 1 when taking geometric means.
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from enum import Enum
from typing import Iterable, TYPE_CHECKING

import numpy as np
import pandas as pd
from scipy.stats import gmean

from geomxset.core.store import RAW_ASSAY
from geomxset.core.transform import Transform

if TYPE_CHECKING:
    from geomxset.core.store import AnnotatedMatrixStore

logger = logging.getLogger(__name__)

__all__ = [
    'NormalizationMethod',
    'QuantileScaling',
    'NegativeBackgroundScaling',
    'HousekeepingScaling',
    'LogTransform',
    'normalize',
    'negative_probe_mask',
]


class NormalizationMethod(Enum):
    """Available normalization methods."""

    NONE = "none"
    QUANTILE = "quant"
    NEGATIVE = "neg"
    HOUSEKEEPING = "hk"


def _geomean_per_column(values: np.ndarray) -> np.ndarray:
    """Geometric mean of each column, non-positive values counted as 1."""
    return gmean(np.where(values <= 0, 1.0, values), axis=0)


def negative_probe_mask(store: AnnotatedMatrixStore) -> np.ndarray:
    """
    Boolean mask of negative-control probes.

    Uses the ``Negative`` feature field when present, otherwise
    ``CodeClass == "Negative"``; no recognisable field means no negatives.
    """
    annotation = store.feature_annotation
    if 'Negative' in annotation.columns:
        return annotation['Negative'].fillna(False).astype(bool).to_numpy()
    if 'CodeClass' in annotation.columns:
        return (annotation['CodeClass'].astype(str).str.lower() == 'negative').to_numpy()
    return np.zeros(store.n_features, dtype=bool)


class _ScalingTransform(Transform):
    """Shared logic: per-segment factor -> rescale to the geometric mean factor."""

    @abstractmethod
    def scaling_factors(self, store: AnnotatedMatrixStore) -> pd.Series:
        """Raw per-segment factor (before rescaling), indexed by sample ID."""

    def normalization_factors(self, store: AnnotatedMatrixStore) -> pd.Series:
        """Multiplier applied to each segment: gmean(factors) / factor."""
        factors = self.scaling_factors(store)
        return gmean(factors.to_numpy()) / factors

    def validate(self, store: AnnotatedMatrixStore) -> list[str]:
        errors = super().validate(store)
        if errors:
            return errors
        factors = self.scaling_factors(store).to_numpy()
        bad = ~np.isfinite(factors) | (factors <= 0)
        if bad.any():
            bad_ids = list(store.sample_ids[bad][:5])
            errors.append(f"Non-positive scaling factors for segments {bad_ids}")
        return errors

    def compute(self, store: AnnotatedMatrixStore) -> np.ndarray:
        values = store.get_matrix(self.source)
        multipliers = self.normalization_factors(store).to_numpy()
        logger.debug(
            f"{self.name}: multipliers range {multipliers.min():.3g}-{multipliers.max():.3g}"
        )
        return values * multipliers[None, :]


class QuantileScaling(_ScalingTransform):
    """
    Upper-quantile (default Q3) scaling.

    Params:
        quantile: Quantile of each segment's counts used as its factor
        source: Matrix to scale
        target: Name of the scaled matrix

    Examples:
        >>> q_norm = QuantileScaling(quantile=0.75).apply(store)
        >>> q_norm.get_matrix("q_norm")
    """

    def __init__(self, quantile: float = 0.75, source: str = RAW_ASSAY, target: str = "q_norm"):
        if not 0 < quantile <= 1:
            raise ValueError(f"quantile must be in (0, 1], got {quantile}")
        super().__init__("QuantileScaling", {"quantile": quantile}, source, target)
        self.quantile = quantile

    def scaling_factors(self, store: AnnotatedMatrixStore) -> pd.Series:
        values = store.get_matrix(self.source)
        return pd.Series(np.quantile(values, self.quantile, axis=0), index=store.sample_ids)


class NegativeBackgroundScaling(_ScalingTransform):
    """
    Scaling by the geometric mean of negative-control probes in each segment.

    Negative probes are taken from the ``Negative`` feature field (set by the
    PKC reader) or from ``CodeClass == "Negative"``.
    """

    def __init__(self, source: str = RAW_ASSAY, target: str = "neg_norm"):
        super().__init__("NegativeBackgroundScaling", {}, source, target)

    def validate(self, store: AnnotatedMatrixStore) -> list[str]:
        if self.source in store.assay_names and not negative_probe_mask(store).any():
            return ["No negative-control probes in feature annotation"]
        return super().validate(store)

    def scaling_factors(self, store: AnnotatedMatrixStore) -> pd.Series:
        values = store.get_matrix(self.source)[negative_probe_mask(store), :]
        return pd.Series(_geomean_per_column(values), index=store.sample_ids)


class HousekeepingScaling(_ScalingTransform):
    """
    Scaling by the geometric mean of housekeeping targets in each segment.

    Params:
        genes: Housekeeping target names, matched against ``label_field``
        label_field: Feature annotation field holding target names
    """

    def __init__(
        self,
        genes: Iterable[str],
        label_field: str = "TargetName",
        source: str = RAW_ASSAY,
        target: str = "hk_norm",
    ):
        genes = list(genes)
        if not genes:
            raise ValueError("At least one housekeeping gene is required")
        super().__init__("HousekeepingScaling", {"genes": genes}, source, target)
        self.genes = genes
        self.label_field = label_field

    def _mask(self, store: AnnotatedMatrixStore) -> np.ndarray:
        return store.get_annotation("features", self.label_field).isin(self.genes).to_numpy()

    def validate(self, store: AnnotatedMatrixStore) -> list[str]:
        if self.source in store.assay_names:
            if self.label_field not in store.feature_annotation.columns:
                return [f"Feature annotation has no '{self.label_field}' field"]
            if not self._mask(store).any():
                return [f"None of the housekeeping genes {self.genes} are in the panel"]
        return super().validate(store)

    def scaling_factors(self, store: AnnotatedMatrixStore) -> pd.Series:
        values = store.get_matrix(self.source)[self._mask(store), :]
        return pd.Series(_geomean_per_column(values), index=store.sample_ids)


class LogTransform(Transform):
    """
    log(x + pseudocount) in the given base.

    Examples:
        >>> logged = LogTransform(source="q_norm", target="log_q").apply(q_norm)
    """

    def __init__(
        self,
        base: float = 2.0,
        pseudocount: float = 1.0,
        source: str = "q_norm",
        target: str = "log_q",
    ):
        if base <= 0 or base == 1:
            raise ValueError(f"base must be positive and != 1, got {base}")
        super().__init__("LogTransform", {"base": base, "pseudocount": pseudocount}, source, target)
        self.base = base
        self.pseudocount = pseudocount

    def validate(self, store: AnnotatedMatrixStore) -> list[str]:
        errors = super().validate(store)
        if not errors and np.nanmin(store.get_matrix(self.source) + self.pseudocount) <= 0:
            errors.append("Values + pseudocount must be positive for a log transform")
        return errors

    def compute(self, store: AnnotatedMatrixStore) -> np.ndarray:
        values = store.get_matrix(self.source)
        return np.log(values + self.pseudocount) / np.log(self.base)


def normalize(
    store: AnnotatedMatrixStore,
    method: str | NormalizationMethod = NormalizationMethod.QUANTILE,
    source: str = RAW_ASSAY,
    target: str | None = None,
    **kwargs,
) -> AnnotatedMatrixStore:
    """
    Add a normalized matrix using the named method.

    Args:
        store: Input store
        method: "quant", "neg", "hk" or "none" (returns the store unchanged)
        source: Matrix to normalize
        target: Name of the result (default per method: q_norm, neg_norm, hk_norm)
        **kwargs: Method parameters (quantile=..., genes=..., label_field=...)
    """
    method = NormalizationMethod(method)
    if method is NormalizationMethod.NONE:
        return store

    if method is NormalizationMethod.QUANTILE:
        transform = QuantileScaling(source=source, target=target or "q_norm", **kwargs)
    elif method is NormalizationMethod.NEGATIVE:
        transform = NegativeBackgroundScaling(source=source, target=target or "neg_norm", **kwargs)
    else:
        transform = HousekeepingScaling(source=source, target=target or "hk_norm", **kwargs)
    return transform.apply(store)
