"""
geomxset - load and interrogate GeoMx spatial transcriptomics experiments.

Reads DCC count files, PKC probe configuration and lab-worksheet
annotations into an immutable annotated-matrix store with uniform
accessors, subsetting, group-wise aggregation and derived matrices.
"""

__version__ = "0.1.0"

from geomxset.core.axis import Axis
from geomxset.core.errors import NotFoundError, SchemaMismatchError
from geomxset.core.store import AnnotatedMatrixStore
from geomxset.core.transform import Transform
from geomxset.io.loaders import load_geomx_set, load_store

__all__ = [
    "AnnotatedMatrixStore",
    "Axis",
    "Transform",
    "SchemaMismatchError",
    "NotFoundError",
    "load_store",
    "load_geomx_set",
]
