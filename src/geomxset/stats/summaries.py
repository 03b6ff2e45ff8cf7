"""
Descriptive statistics for features (probes) and samples (segments).

Used for quick interrogation of a loaded experiment: which probes sit at
background, which segments have low signal, how groups of segments differ.

Functions:
    summarize_values: Statistics for each row or column of a 2-D array
    summarize: Statistics for each feature/sample of a store, optionally
        computed separately within groups of the other axis

Columns:
    GeomMean    geometric mean (non-positive values counted as 1)
    SizeFactor  GeomMean relative to the geometric mean of all GeomMeans
    MeanLog2    mean of log2 values (non-positive values counted as 1)
    SDLog2      standard deviation of log2 values
    Mean, SD, Skewness, Min, Q1, Median, Q3, Max
"""

from __future__ import annotations

import warnings
from typing import Any, Optional, TYPE_CHECKING

import numpy as np
import pandas as pd
from scipy.stats import gmean, skew

from geomxset.core.axis import Axis
from geomxset.core.store import RAW_ASSAY

if TYPE_CHECKING:
    from geomxset.core.store import AnnotatedMatrixStore

__all__ = ['SUMMARY_COLUMNS', 'summarize_values', 'summarize']


SUMMARY_COLUMNS = [
    'GeomMean', 'SizeFactor', 'MeanLog2', 'SDLog2',
    'Mean', 'SD', 'Skewness',
    'Min', 'Q1', 'Median', 'Q3', 'Max',
]


def summarize_values(values: np.ndarray, axis: Axis | str = Axis.FEATURES) -> pd.DataFrame:
    """
    Compute summary statistics for each row (features) or column (samples).

    Args:
        values: 2-D array (features × samples)
        axis: "features" summarizes each row, "samples" each column

    Returns:
        DataFrame with one row per summarized element and SUMMARY_COLUMNS,
        positionally indexed

    Raises:
        ValueError: If values is not 2-D or has nothing to summarize over

    Example:
        >>> counts = np.array([[1, 3], [10, 40]])
        >>> summarize_values(counts, "features")["Mean"].tolist()
        [2.0, 25.0]
    """
    axis = Axis.coerce(axis)
    values = np.asarray(values, dtype=float)
    if values.ndim != 2:
        raise ValueError(f"values must be 2D, got shape {values.shape}")

    # Put the summarized elements on rows
    rows = values if axis is Axis.FEATURES else values.T
    if rows.shape[1] == 0:
        raise ValueError(f"Cannot summarize {axis.value} over zero observations")

    floored = np.where(rows <= 0, 1.0, rows)
    log2 = np.log2(floored)
    geom = gmean(floored, axis=1)
    size_factor = geom / gmean(geom) if len(geom) else geom

    with warnings.catch_warnings():
        # Single observations and constant rows give NaN SD / skewness
        warnings.simplefilter("ignore", RuntimeWarning)
        sd_log2 = np.std(log2, axis=1, ddof=1) if rows.shape[1] > 1 else np.full(len(rows), np.nan)
        sd = np.std(rows, axis=1, ddof=1) if rows.shape[1] > 1 else np.full(len(rows), np.nan)
        skewness = skew(rows, axis=1)

    q1, median, q3 = np.quantile(rows, [0.25, 0.5, 0.75], axis=1)

    return pd.DataFrame({
        'GeomMean': geom,
        'SizeFactor': size_factor,
        'MeanLog2': log2.mean(axis=1),
        'SDLog2': sd_log2,
        'Mean': rows.mean(axis=1),
        'SD': sd,
        'Skewness': skewness,
        'Min': rows.min(axis=1),
        'Q1': q1,
        'Median': median,
        'Q3': q3,
        'Max': rows.max(axis=1),
    }, columns=SUMMARY_COLUMNS)


def summarize(
    store: AnnotatedMatrixStore,
    axis: Axis | str = Axis.FEATURES,
    assay: str = RAW_ASSAY,
    group_by: Optional[str] = None,
) -> pd.DataFrame | dict[Any, pd.DataFrame]:
    """
    Summarize every feature or every sample of a store.

    Args:
        store: Store to summarize
        axis: Which elements to summarize ("features" or "samples")
        assay: Matrix name
        group_by: Optional annotation field of the *other* axis. Statistics
            are then computed separately within each group, e.g. per-probe
            statistics within each tissue (axis="features",
            group_by="tissue").

    Returns:
        DataFrame indexed by the axis IDs, or a dict of group -> DataFrame

    Raises:
        NotFoundError: If the matrix or the grouping field is absent

    Examples:
        >>> per_probe = summarize(store, "features")
        >>> per_segment_by_class = summarize(store, "samples", group_by="CodeClass")
    """
    axis = Axis.coerce(axis)
    index = store.ids(axis)

    def _summary(values: np.ndarray) -> pd.DataFrame:
        frame = summarize_values(values, axis)
        frame.index = index
        return frame

    if group_by is None:
        return _summary(store.get_matrix(assay))
    return store.group_apply(axis.other, group_by, _summary, assay=assay)
