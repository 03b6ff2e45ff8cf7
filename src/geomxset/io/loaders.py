"""
Loaders that assemble an AnnotatedMatrixStore from raw inputs.

Two entry points:

    - ``load_store``: generic. Takes named matrices (DataFrames, arrays or
      CSV paths) plus annotation tables and validates that every key set
      agrees before building the store.
    - ``load_geomx_set``: GeoMx. Reads DCC count files, PKC probe
      configuration and a lab-worksheet annotation table.

Biological Context:
    The three GeoMx inputs come from different systems (sequencer pipeline,
    panel vendor, lab worksheet) and drift apart easily: a segment is
    re-named in the worksheet, a DCC is missing from the export, a PKC of
    the wrong panel version is used. Loading fails fast with a
    SchemaMismatchError that names the disagreeing keys instead of
    silently dropping data.

Examples:
    >>> from geomxset.io.loaders import load_geomx_set
    >>>
    >>> store = load_geomx_set(
    ...     dcc_files="data/dccs",
    ...     pkc_files="data/Hs_R_NGS_WTA_v1.0.pkc",
    ...     annotation_file="data/annotations.xlsx",
    ... )
    >>> store.get_matrix("raw").shape
    (18815, 235)
"""

from __future__ import annotations

import logging
import warnings
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Union

import numpy as np
import pandas as pd

from geomxset.core.errors import SchemaMismatchError
from geomxset.core.store import DEFAULT_DIM_LABELS, RAW_ASSAY, AnnotatedMatrixStore, describe_key_mismatch
from geomxset.io.annotations import AnnotationTables, read_annotation_table, split_annotation_frame
from geomxset.io.dcc import find_dcc_files, read_dcc_files
from geomxset.io.formats import AnnotationLayout, sniff_delimiter
from geomxset.io.pkc import read_pkcs

logger = logging.getLogger(__name__)

__all__ = ['load_store', 'load_geomx_set', 'read_matrix_csv']

PathLike = Union[str, Path]
MatrixSource = Union[pd.DataFrame, np.ndarray, PathLike]


def read_matrix_csv(path: PathLike) -> pd.DataFrame:
    """
    Read a features × samples matrix from a delimited text file.

    First column: feature IDs; header: sample IDs; cells: numbers.

    Raises:
        FileNotFoundError: If path does not exist
        ValueError: If the file is empty or holds non-numeric/infinite values
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Matrix file not found: {path}")
    if not path.is_file():
        raise ValueError(f"Path is not a file: {path}")

    try:
        df = pd.read_csv(path, sep=sniff_delimiter(path), index_col=0)
    except pd.errors.EmptyDataError as e:
        raise ValueError(f"Matrix file is empty: {path}") from e
    except (OSError, ValueError, pd.errors.ParserError) as e:
        raise ValueError(f"Failed to read matrix file {path}: {e}") from e

    if df.empty:
        raise ValueError(f"Matrix file contains no data: {path}")

    try:
        df = df.astype(float)
    except ValueError as e:
        # Find non-numeric values for a better error message
        non_numeric = []
        for col in df.columns:
            converted = pd.to_numeric(df[col], errors='coerce')
            for feature_id in df.index[converted.isna() & df[col].notna()]:
                non_numeric.append(f"row '{feature_id}', col '{col}': {df.at[feature_id, col]}")
                if len(non_numeric) >= 5:
                    break
            if len(non_numeric) >= 5:
                break
        raise ValueError(
            f"Matrix file {path} contains non-numeric values:\n"
            + "\n".join(f"  - {x}" for x in non_numeric)
        ) from e

    if np.isinf(df.to_numpy()).any():
        raise ValueError(f"Matrix file {path} contains infinite values")

    return df


def _as_frame(name: str, source: MatrixSource) -> Union[pd.DataFrame, np.ndarray]:
    if isinstance(source, (pd.DataFrame, np.ndarray)):
        return source
    if isinstance(source, (str, Path)):
        return read_matrix_csv(source)
    raise TypeError(f"matrix '{name}' must be a DataFrame, ndarray or path, got {type(source)}")


def _check_keys(expected: pd.Index, actual: pd.Index, what: str) -> None:
    if actual.has_duplicates:
        dupes = list(actual[actual.duplicated()].unique()[:5])
        raise SchemaMismatchError(f"{what} has duplicate keys: {dupes}")
    if len(expected) != len(actual) or not actual.isin(expected).all():
        raise SchemaMismatchError(describe_key_mismatch(expected, actual, what))


def load_store(
    matrix_sources: Mapping[str, MatrixSource],
    sample_annotation: Union[pd.DataFrame, AnnotationTables],
    feature_annotation: pd.DataFrame,
    protocol_annotation: Optional[pd.DataFrame] = None,
    experiment: Optional[Mapping[str, Any]] = None,
    dim_labels: tuple[str, str] = DEFAULT_DIM_LABELS,
) -> AnnotatedMatrixStore:
    """
    Build a store from named matrices and annotation tables.

    Key order is taken from the annotation tables: feature order from
    ``feature_annotation``, sample order from ``sample_annotation``.
    Labelled matrices (DataFrames, CSV files) are re-ordered to it;
    unlabelled arrays must already follow it.

    Args:
        matrix_sources: Matrix name -> DataFrame (features × samples),
            ndarray, or path to a delimited text file
        sample_annotation: DataFrame indexed by sample ID, or the
            AnnotationTables returned by read_annotation_table (its protocol
            and experiment parts are used unless given explicitly)
        feature_annotation: DataFrame indexed by feature ID
        protocol_annotation: DataFrame indexed by sample ID (any order)
        experiment: Experiment-wide metadata
        dim_labels: (feature field, sample field) for display labels

    Returns:
        Validated AnnotatedMatrixStore

    Raises:
        SchemaMismatchError: If any matrix or protocol key set differs from
            the annotation key sets, or keys repeat
        TypeError: If inputs have unsupported types

    Examples:
        >>> store = load_store(
        ...     {"raw": counts_df},
        ...     sample_annotation=pheno_df,
        ...     feature_annotation=probes_df,
        ... )
        >>> store.get_frame("raw").columns.equals(pheno_df.index)
        True
    """
    if isinstance(sample_annotation, AnnotationTables):
        if protocol_annotation is None:
            protocol_annotation = sample_annotation.protocol
        if experiment is None:
            experiment = sample_annotation.experiment
        sample_annotation = sample_annotation.sample

    if not isinstance(sample_annotation, pd.DataFrame):
        raise TypeError(f"sample_annotation must be pd.DataFrame, got {type(sample_annotation)}")
    if not isinstance(feature_annotation, pd.DataFrame):
        raise TypeError(f"feature_annotation must be pd.DataFrame, got {type(feature_annotation)}")
    if not matrix_sources:
        raise ValueError("At least one matrix source is required")

    feature_ids = pd.Index(feature_annotation.index)
    sample_ids = pd.Index(sample_annotation.index)
    _check_keys(feature_ids, feature_ids, "feature_annotation")
    _check_keys(sample_ids, sample_ids, "sample_annotation")

    assays: dict[str, np.ndarray] = {}
    for name, source in matrix_sources.items():
        matrix = _as_frame(name, source)
        if isinstance(matrix, pd.DataFrame):
            _check_keys(feature_ids, matrix.index, f"matrix '{name}' rows")
            _check_keys(sample_ids, matrix.columns, f"matrix '{name}' columns")
            assays[name] = matrix.loc[feature_ids, sample_ids].to_numpy(dtype=float)
        else:
            assays[name] = matrix

    if protocol_annotation is not None:
        _check_keys(sample_ids, pd.Index(protocol_annotation.index), "protocol_annotation")
        protocol_annotation = protocol_annotation.loc[sample_ids]

    for name, values in assays.items():
        if np.isnan(values).any():
            n_nan = int(np.isnan(values).sum())
            warnings.warn(
                f"Matrix '{name}' has {n_nan:,} NaN values ({100 * n_nan / values.size:.2f}%)",
                UserWarning,
            )

    store = AnnotatedMatrixStore(
        assays=assays,
        feature_ids=feature_ids,
        sample_ids=sample_ids,
        feature_annotation=feature_annotation,
        sample_annotation=sample_annotation,
        protocol_annotation=protocol_annotation,
        experiment=experiment,
        dim_labels=dim_labels,
    )
    logger.info(
        f"Loaded {store.n_features:,} features x {store.n_samples:,} samples "
        f"(matrices: {store.assay_names})"
    )
    return store


def load_geomx_set(
    dcc_files: Union[PathLike, Iterable[PathLike]],
    pkc_files: Union[PathLike, Iterable[PathLike]],
    annotation_file: Union[PathLike, pd.DataFrame],
    layout: Optional[AnnotationLayout] = None,
    assay: str = RAW_ASSAY,
    dim_labels: tuple[str, str] = DEFAULT_DIM_LABELS,
) -> AnnotatedMatrixStore:
    """
    Load a GeoMx experiment: DCC counts + PKC probes + annotation table.

    Args:
        dcc_files: Directory of ``*.dcc`` files, or an iterable of DCC paths
        pkc_files: One PKC path or several (multi-module panels)
        annotation_file: Lab worksheet path (CSV/TSV/XLSX) or DataFrame
        layout: Column layout of the annotation table
            (default: PRESETS['geomx_lab_worksheet'])
        assay: Name of the count matrix
        dim_labels: (feature field, sample field) for display labels

    Returns:
        Store with one matrix (counts), PKC feature annotation, worksheet
        sample annotation, DCC + worksheet protocol annotation, and an
        experiment record (panel, PKC modules)

    Raises:
        FileNotFoundError: If an input path does not exist
        SchemaMismatchError: If DCC files list probes absent from the PKC
            modules, or DCC and annotation sample IDs differ
    """
    if isinstance(dcc_files, (str, Path)) and Path(dcc_files).is_dir():
        dcc_paths = find_dcc_files(dcc_files)
    elif isinstance(dcc_files, (str, Path)):
        dcc_paths = [Path(dcc_files)]
    else:
        dcc_paths = [Path(p) for p in dcc_files]

    counts, dcc_protocol = read_dcc_files(dcc_paths)
    features, pkc_experiment = read_pkcs(pkc_files)

    unknown = counts.index.difference(features.index)
    if len(unknown):
        raise SchemaMismatchError(
            f"{len(unknown)} probes in DCC files are not in the PKC modules "
            f"(e.g. {list(unknown[:3])})"
        )
    counts = counts.reindex(features.index, fill_value=0.0)

    if isinstance(annotation_file, pd.DataFrame):
        tables = split_annotation_frame(annotation_file, layout)
    else:
        tables = read_annotation_table(annotation_file, layout)

    sample_ids = tables.sample_ids
    _check_keys(sample_ids, counts.columns, "DCC files vs annotation table samples")

    # Worksheet columns win over DCC fields of the same name
    dcc_protocol = dcc_protocol.loc[sample_ids]
    overlap = dcc_protocol.columns.intersection(tables.protocol.columns.union(tables.sample.columns))
    if len(overlap):
        logger.warning(f"Annotation table columns override DCC fields: {list(overlap)}")
        dcc_protocol = dcc_protocol.drop(columns=overlap)
    protocol = pd.concat([dcc_protocol, tables.protocol], axis=1)

    experiment = {**tables.experiment, **pkc_experiment}
    return load_store(
        {assay: counts},
        sample_annotation=tables.sample,
        feature_annotation=features,
        protocol_annotation=protocol,
        experiment=experiment,
        dim_labels=dim_labels,
    )
