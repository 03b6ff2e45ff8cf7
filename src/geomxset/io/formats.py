"""
Layout configuration for GeoMx annotation tables.

A lab worksheet carries one row per segment, keyed by the DCC file name,
and mixes three kinds of columns:

    - biological sample annotation (tissue, class, segment, ...)
    - run protocol annotation (aoi, roi, scan name, ...)
    - experiment-wide values repeated on every row (panel)

Which column belongs where is institution-specific, so it is configured
explicitly with an ``AnnotationLayout``; the delimiter of text files is
auto-detected.

Examples:
    >>> from geomxset.io.formats import AnnotationLayout, PRESETS
    >>>
    >>> layout = PRESETS['geomx_lab_worksheet']
    >>> custom = AnnotationLayout(
    ...     sample_id_col='Sample_ID',
    ...     protocol_columns=['aoi', 'roi', 'scan name'],
    ...     list_columns=['keywords'],
    ... )
"""

from __future__ import annotations

import csv
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

__all__ = [
    'AnnotationLayout',
    'PRESETS',
    'sniff_delimiter',
    'strip_dcc_suffix',
]


DCC_SUFFIX = '.dcc'


@dataclass
class AnnotationLayout:
    """
    Column layout of an annotation table.

    Attributes:
        name: Human-readable layout name
        sample_id_col: Column holding sample IDs (None = first column)
        protocol_columns: Columns moved to the protocol annotation
        experiment_columns: Columns collapsed into the experiment record
        list_columns: Columns whose string cells hold ``list_sep``-joined lists
        list_sep: Separator for list columns
        delimiter: Text delimiter (None = auto-detect)
        sheet_name: Sheet to read from .xlsx files
        encoding: Text encoding
        na_values: Values treated as missing
    """

    name: str = "Custom layout"
    sample_id_col: Optional[str] = "Sample_ID"
    protocol_columns: list[str] = field(default_factory=list)
    experiment_columns: list[str] = field(default_factory=list)
    list_columns: list[str] = field(default_factory=list)
    list_sep: str = ';'
    delimiter: Optional[str] = None
    sheet_name: Union[str, int] = 0
    encoding: str = 'utf-8'
    na_values: list[str] = field(default_factory=lambda: ['', 'NA', 'NaN', 'nan', 'NULL', 'null'])

    def __post_init__(self):
        """Reject columns assigned to more than one role."""
        roles = {
            'protocol_columns': set(self.protocol_columns),
            'experiment_columns': set(self.experiment_columns),
        }
        both = roles['protocol_columns'] & roles['experiment_columns']
        if both:
            raise ValueError(f"Columns assigned to protocol and experiment: {sorted(both)}")
        if self.sample_id_col is not None:
            for role, columns in roles.items():
                if self.sample_id_col in columns:
                    raise ValueError(f"sample_id_col '{self.sample_id_col}' also listed in {role}")
        if not self.list_sep:
            raise ValueError("list_sep must be a non-empty string")


# =============================================================================
# Layout Presets
# =============================================================================

PRESETS: dict[str, AnnotationLayout] = {
    # GeoMx DSP lab worksheet export
    'geomx_lab_worksheet': AnnotationLayout(
        name="GeoMx lab worksheet",
        sample_id_col="Sample_ID",
        protocol_columns=["aoi", "roi"],
        experiment_columns=["panel"],
    ),

    # Plain table: first column holds sample IDs, everything else is annotation
    'generic': AnnotationLayout(
        name="Generic table",
        sample_id_col=None,
    ),
}


# =============================================================================
# Utility Functions
# =============================================================================

def sniff_delimiter(path: Path, sample_size: int = 8192) -> str:
    """
    Auto-detect delimiter from file content.

    Uses Python's csv.Sniffer with a fallback that counts candidate
    delimiters on the first line.

    Raises:
        ValueError: If delimiter cannot be determined
    """
    with open(path, 'r', encoding='utf-8', errors='ignore') as f:
        sample = f.read(sample_size)

    try:
        dialect = csv.Sniffer().sniff(sample, delimiters='\t,;|')
        return dialect.delimiter
    except csv.Error:
        pass

    first_line = sample.split('\n')[0]
    counts = {
        '\t': first_line.count('\t'),
        ',': first_line.count(','),
        ';': first_line.count(';'),
    }

    if max(counts.values()) == 0:
        raise ValueError(
            f"Could not detect delimiter in {path}. "
            "Please specify it explicitly with layout.delimiter"
        )

    return max(counts, key=counts.get)


def strip_dcc_suffix(sample_id: object) -> str:
    """'DSP-1001-A02.dcc' -> 'DSP-1001-A02' (whitespace trimmed)."""
    sid = str(sample_id).strip()
    if sid.lower().endswith(DCC_SUFFIX):
        sid = sid[: -len(DCC_SUFFIX)]
    return sid
