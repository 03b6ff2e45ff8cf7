"""
Reader for segment annotation tables (lab worksheets).

Splits a table keyed by sample ID into sample annotation, protocol
annotation and an experiment record according to an ``AnnotationLayout``.
Reads ``.xlsx``/``.xls`` via pandas + openpyxl and delimited text otherwise.

Examples:
    >>> from geomxset.io.annotations import read_annotation_table
    >>> from geomxset.io.formats import PRESETS
    >>>
    >>> tables = read_annotation_table("annotations.xlsx", PRESETS['geomx_lab_worksheet'])
    >>> tables.sample.columns.tolist()
    ['slide name', 'segment', 'class', 'region']
    >>> tables.experiment
    {'panel': 'TAP_H_WTA_v1.0'}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import pandas as pd

from geomxset.core.errors import NotFoundError, SchemaMismatchError
from geomxset.io.formats import PRESETS, AnnotationLayout, sniff_delimiter, strip_dcc_suffix

logger = logging.getLogger(__name__)

__all__ = ['AnnotationTables', 'read_annotation_table', 'split_annotation_frame']


EXCEL_SUFFIXES = ('.xlsx', '.xls')


@dataclass
class AnnotationTables:
    """Sample, protocol and experiment parts of an annotation table."""
    sample: pd.DataFrame
    protocol: pd.DataFrame
    experiment: dict[str, Any] = field(default_factory=dict)

    @property
    def sample_ids(self) -> pd.Index:
        return self.sample.index


def _split_list(value: Any, sep: str) -> Any:
    if isinstance(value, str):
        return [part.strip() for part in value.split(sep) if part.strip()]
    return value


def split_annotation_frame(frame: pd.DataFrame, layout: Optional[AnnotationLayout] = None) -> AnnotationTables:
    """
    Split an in-memory annotation table according to a layout.

    Sample IDs are converted to strings with whitespace and a trailing
    ``.dcc`` removed.

    Raises:
        NotFoundError: If the sample ID column is absent
        ValueError: If sample IDs are missing
        SchemaMismatchError: If sample IDs repeat
    """
    layout = layout or PRESETS['geomx_lab_worksheet']
    frame = frame.copy()

    id_col = layout.sample_id_col if layout.sample_id_col is not None else frame.columns[0]
    if id_col not in frame.columns:
        raise NotFoundError(
            f"Sample ID column '{id_col}' not in annotation table. "
            f"Available: {list(frame.columns)}"
        )

    if frame[id_col].isna().any():
        raise ValueError(f"{int(frame[id_col].isna().sum())} annotation rows have no sample ID")

    frame.index = pd.Index([strip_dcc_suffix(v) for v in frame[id_col]])
    frame = frame.drop(columns=[id_col])
    if frame.index.has_duplicates:
        dupes = list(frame.index[frame.index.duplicated()].unique()[:5])
        raise SchemaMismatchError(f"Duplicate sample IDs in annotation table: {dupes}")

    for col in layout.list_columns:
        if col in frame.columns:
            frame[col] = frame[col].map(lambda v: _split_list(v, layout.list_sep))
        else:
            logger.warning(f"List column '{col}' not in annotation table; skipped")

    experiment: dict[str, Any] = {}
    for col in layout.experiment_columns:
        if col not in frame.columns:
            logger.warning(f"Experiment column '{col}' not in annotation table; skipped")
            continue
        values = frame[col].dropna().unique().tolist()
        if len(values) > 1:
            logger.warning(f"Experiment column '{col}' varies across segments: {values}")
        experiment[col] = values[0] if len(values) == 1 else values

    protocol_cols = [c for c in layout.protocol_columns if c in frame.columns]
    for col in layout.protocol_columns:
        if col not in frame.columns:
            logger.warning(f"Protocol column '{col}' not in annotation table; skipped")

    sample_cols = [
        c for c in frame.columns
        if c not in protocol_cols and c not in experiment
    ]
    return AnnotationTables(
        sample=frame[sample_cols],
        protocol=frame[protocol_cols],
        experiment=experiment,
    )


def read_annotation_table(
    path: Union[str, Path],
    layout: Optional[AnnotationLayout] = None,
) -> AnnotationTables:
    """
    Read an annotation table (CSV/TSV/XLSX) and split it by layout.

    Raises:
        FileNotFoundError: If path does not exist
        ValueError: If the file cannot be parsed or is empty
    """
    layout = layout or PRESETS['geomx_lab_worksheet']
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Annotation file not found: {path}")

    try:
        if path.suffix.lower() in EXCEL_SUFFIXES:
            frame = pd.read_excel(path, sheet_name=layout.sheet_name, na_values=layout.na_values)
        else:
            delimiter = layout.delimiter or sniff_delimiter(path)
            frame = pd.read_csv(
                path,
                sep=delimiter,
                encoding=layout.encoding,
                na_values=layout.na_values,
            )
    except pd.errors.EmptyDataError as e:
        raise ValueError(f"Annotation file is empty: {path}") from e
    except (OSError, ValueError, pd.errors.ParserError) as e:
        raise ValueError(f"Failed to read annotation file {path}: {e}") from e

    if frame.empty:
        raise ValueError(f"Annotation file contains no rows: {path}")

    tables = split_annotation_frame(frame, layout)
    logger.info(
        f"Read annotations for {len(tables.sample)} segments "
        f"({tables.sample.shape[1]} sample, {tables.protocol.shape[1]} protocol fields) "
        f"using layout '{layout.name}'"
    )
    return tables
