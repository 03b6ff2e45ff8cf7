"""
Core data structures for GeoMx experiments.

This module provides the foundational types that all other modules build upon:

1. AnnotatedMatrixStore: named count matrices with feature, sample and
   protocol annotations
2. Axis: features (rows) / samples (columns) selector
3. Transform: abstract base class for derived-matrix operations
4. SchemaMismatchError / NotFoundError: the store's error types

Design Philosophy:
    - Immutability: all operations return new instances
    - Alignment: every matrix and annotation table shares the same keys
    - Composability: transforms chain into normalization pipelines

Examples:
    >>> from geomxset.core import AnnotatedMatrixStore, Axis
    >>>
    >>> by_tissue = store.group_by(Axis.SAMPLES, "tissue")
    >>> library_sizes = store.element_apply("samples", np.sum)
"""

from geomxset.core.axis import Axis
from geomxset.core.errors import NotFoundError, SchemaMismatchError
from geomxset.core.store import DEFAULT_DIM_LABELS, RAW_ASSAY, AnnotatedMatrixStore
from geomxset.core.transform import Transform

__all__ = [
    'AnnotatedMatrixStore',
    'Axis',
    'Transform',
    'SchemaMismatchError',
    'NotFoundError',
    'RAW_ASSAY',
    'DEFAULT_DIM_LABELS',
]
