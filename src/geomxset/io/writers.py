"""
CSV export for annotated matrix stores.

Writes every matrix and annotation table of a store into one directory so
the data can be picked up by R, spreadsheets or other pipelines:

    <directory>/
        raw.csv                  one file per matrix (features × samples)
        q_norm.csv
        feature_annotation.csv
        sample_annotation.csv
        protocol_annotation.csv
        manifest.json            shape, matrix names, dim labels, experiment

List-valued annotation cells (e.g. GeneID) are joined with ``;``.

Examples:
    >>> from geomxset.io.writers import write_store
    >>>
    >>> written = write_store(store, "export/kidney")
    >>> sorted(p.name for p in written)
    ['feature_annotation.csv', 'manifest.json', 'protocol_annotation.csv', 'raw.csv', 'sample_annotation.csv']
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional, Union

import pandas as pd

from geomxset.core.store import AnnotatedMatrixStore
from geomxset.utils.fileio import atomic_write_json, atomic_write_text

logger = logging.getLogger(__name__)

__all__ = ['write_store', 'write_annotation']

LIST_SEP = ';'


def _flatten_lists(frame: pd.DataFrame) -> pd.DataFrame:
    frame = frame.copy()
    for col in frame.columns:
        if frame[col].map(lambda v: isinstance(v, (list, tuple))).any():
            frame[col] = frame[col].map(
                lambda v: LIST_SEP.join(map(str, v)) if isinstance(v, (list, tuple)) else v
            )
    return frame


def write_annotation(frame: pd.DataFrame, path: Union[str, Path], id_label: str) -> Path:
    """Write one annotation table with its index as the first column."""
    path = Path(path)
    out = _flatten_lists(frame).rename_axis(id_label)
    atomic_write_text(path, out.to_csv())
    return path


def write_store(
    store: AnnotatedMatrixStore,
    directory: Union[str, Path],
    assays: Optional[Iterable[str]] = None,
) -> list[Path]:
    """
    Export a store to CSV files plus a JSON manifest.

    Args:
        store: Store to export
        directory: Output directory (created if needed)
        assays: Matrix names to write (default: all)

    Returns:
        Paths of the written files

    Raises:
        TypeError: If store is not an AnnotatedMatrixStore
        NotFoundError: If a requested matrix is absent
    """
    if not isinstance(store, AnnotatedMatrixStore):
        raise TypeError(f"store must be AnnotatedMatrixStore, got {type(store)}")

    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    names = list(assays) if assays is not None else store.assay_names
    written: list[Path] = []

    for name in names:
        frame = store.get_frame(name).rename_axis('feature_id')
        path = directory / f"{name}.csv"
        atomic_write_text(path, frame.to_csv())
        written.append(path)
        logger.info(f"Wrote matrix '{name}' to {path}")

    written.append(write_annotation(store.feature_annotation, directory / "feature_annotation.csv", 'feature_id'))
    written.append(write_annotation(store.sample_annotation, directory / "sample_annotation.csv", 'sample_id'))
    written.append(write_annotation(store.protocol_annotation, directory / "protocol_annotation.csv", 'sample_id'))

    manifest = {
        'n_features': store.n_features,
        'n_samples': store.n_samples,
        'matrices': names,
        'dim_labels': list(store.dim_labels),
        'experiment': store.experiment,
    }
    manifest_path = directory / "manifest.json"
    atomic_write_json(manifest_path, manifest)
    written.append(manifest_path)

    logger.info(f"Exported {len(names)} matrices and annotations to {directory}")
    return written
