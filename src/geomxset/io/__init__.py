"""
I/O module for GeoMx inputs and exports.

Key Functions:
    - read_dcc / read_dcc_files: per-segment DCC count files
    - read_pkc / read_pkcs: PKC probe configuration (feature annotation)
    - read_annotation_table: lab worksheet (sample / protocol / experiment)
    - load_store: build a store from named matrices + annotation tables
    - load_geomx_set: build a store from DCC + PKC + worksheet
    - write_store: CSV export with a JSON manifest

Examples:
    >>> from geomxset.io import load_geomx_set, write_store
    >>>
    >>> store = load_geomx_set("dccs/", "panel.pkc", "annotations.xlsx")
    >>> write_store(store, "export/")
"""

from geomxset.io.annotations import AnnotationTables, read_annotation_table, split_annotation_frame
from geomxset.io.dcc import (
    DccRecord,
    counts_from_records,
    find_dcc_files,
    iter_dcc_counts,
    read_dcc,
    read_dcc_files,
)
from geomxset.io.formats import PRESETS, AnnotationLayout
from geomxset.io.loaders import load_geomx_set, load_store, read_matrix_csv
from geomxset.io.pkc import PkcModule, read_pkc, read_pkcs
from geomxset.io.writers import write_annotation, write_store

__all__ = [
    'AnnotationLayout',
    'AnnotationTables',
    'DccRecord',
    'PkcModule',
    'PRESETS',
    'counts_from_records',
    'find_dcc_files',
    'iter_dcc_counts',
    'load_geomx_set',
    'load_store',
    'read_annotation_table',
    'read_dcc',
    'read_dcc_files',
    'read_matrix_csv',
    'read_pkc',
    'read_pkcs',
    'split_annotation_frame',
    'write_annotation',
    'write_store',
]
