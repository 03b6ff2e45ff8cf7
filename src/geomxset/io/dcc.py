"""
Reader for GeoMx DCC (digital count conversion) files.

Each DCC file holds the counts of one segment, produced by the GeoMx NGS
pipeline, in a sectioned text format:

```
<Header>
FileVersion,0.02
SoftwareVersion,"GeoMx_NGS_Pipeline_2.0.21"
Date,2020-07-14
</Header>

<Scan_Attributes>
ID,DSP-1001250002642-H-A02
Plate_ID,1001250002642
Well,A02
</Scan_Attributes>

<NGS_Processing_Attributes>
SeqSetId,VH00121:3:AAAG2YWM5
Raw,1000
Trimmed,990
...
DeduplicatedReads,400
</NGS_Processing_Attributes>

<Code_Summary>
RTS0020877,12
RTS0020878,3
</Code_Summary>
```

The sample ID is the file name without ``.dcc``. Header, scan and NGS
attributes become protocol annotation; ``Code_Summary`` rows are
``RTS_ID,Count`` pairs. Probes not listed have a count of zero.

Examples:
    >>> from geomxset.io.dcc import read_dcc, read_dcc_files
    >>>
    >>> record = read_dcc("DSP-1001250002642-H-A02.dcc")
    >>> record.protocol["SoftwareVersion"]
    'GeoMx_NGS_Pipeline_2.0.21'
    >>> counts, protocol = read_dcc_files(find_dcc_files("dccs/"))
"""

from __future__ import annotations

import logging
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional, Union

import pandas as pd

from geomxset.core.errors import SchemaMismatchError
from geomxset.io.formats import strip_dcc_suffix

logger = logging.getLogger(__name__)

__all__ = [
    'DccRecord',
    'read_dcc',
    'iter_dcc_counts',
    'counts_from_records',
    'find_dcc_files',
    'read_dcc_files',
]


ATTRIBUTE_SECTIONS = ('Header', 'Scan_Attributes', 'NGS_Processing_Attributes')
COUNT_SECTION = 'Code_Summary'

_TAG = re.compile(r'^<(/?)([A-Za-z0-9_]+)>$')


@dataclass(frozen=True)
class DccRecord:
    """Parsed content of one DCC file."""
    sample_id: str
    counts: pd.Series
    protocol: dict[str, Any] = field(default_factory=dict)

    @property
    def n_probes(self) -> int:
        return len(self.counts)


def _convert(value: str) -> Any:
    """Strip quotes; convert to int/float where possible; '' -> None."""
    value = value.strip().strip('"').strip()
    if value == '':
        return None
    for cast in (int, float):
        try:
            return cast(value)
        except ValueError:
            continue
    return value


def read_dcc(path: Union[str, Path]) -> DccRecord:
    """
    Parse one DCC file.

    Raises:
        FileNotFoundError: If path does not exist
        ValueError: If sections are unbalanced, the Code_Summary section is
            missing, or a count is not numeric or repeated
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"DCC file not found: {path}")
    if not path.is_file():
        raise ValueError(f"Path is not a file: {path}")

    sample_id = strip_dcc_suffix(path.name)
    protocol: dict[str, Any] = {}
    counts: dict[str, float] = {}
    seen_sections: set[str] = set()
    section: Optional[str] = None

    with open(path, 'r', encoding='utf-8-sig') as handle:
        for line_no, raw_line in enumerate(handle, start=1):
            line = raw_line.strip()
            if not line:
                continue

            tag = _TAG.match(line)
            if tag:
                closing, name = tag.group(1) == '/', tag.group(2)
                if closing:
                    if name != section:
                        raise ValueError(f"{path}:{line_no}: unexpected </{name}> (open section: {section})")
                    section = None
                else:
                    if section is not None:
                        raise ValueError(f"{path}:{line_no}: <{name}> opened inside <{section}>")
                    section = name
                    seen_sections.add(name)
                continue

            if section is None:
                raise ValueError(f"{path}:{line_no}: content outside of a section: {line!r}")

            key, sep, value = line.partition(',')
            key = key.strip()
            if section == COUNT_SECTION:
                if not sep:
                    raise ValueError(f"{path}:{line_no}: expected 'RTS_ID,Count', got {line!r}")
                if key in counts:
                    raise ValueError(f"{path}:{line_no}: probe {key} listed twice")
                try:
                    counts[key] = float(value)
                except ValueError as e:
                    raise ValueError(f"{path}:{line_no}: non-numeric count for {key}: {value!r}") from e
            elif section in ATTRIBUTE_SECTIONS:
                protocol[key] = _convert(value)
            else:
                logger.debug(f"{path.name}: ignoring line in unknown section <{section}>")

    if section is not None:
        raise ValueError(f"{path}: section <{section}> is never closed")
    if COUNT_SECTION not in seen_sections:
        raise ValueError(f"{path}: no <{COUNT_SECTION}> section")
    if not counts:
        warnings.warn(f"{path.name}: empty {COUNT_SECTION}; all counts will be zero", UserWarning)

    logger.debug(f"Read {len(counts)} probe counts from {path.name}")
    return DccRecord(
        sample_id=sample_id,
        counts=pd.Series(counts, dtype=float, name=sample_id),
        protocol=protocol,
    )


def iter_dcc_counts(paths: Iterable[Union[str, Path]]) -> Iterator[tuple[str, str, float]]:
    """Yield (feature ID, sample ID, count) records from DCC files."""
    for path in paths:
        record = read_dcc(path)
        for feature_id, count in record.counts.items():
            yield feature_id, record.sample_id, count


def counts_from_records(
    records: Iterable[tuple[str, str, float]],
    feature_ids: Optional[Iterable[str]] = None,
    sample_ids: Optional[Iterable[str]] = None,
) -> pd.DataFrame:
    """
    Pivot (feature ID, sample ID, count) records into a features × samples table.

    Pairs without a record are zero counts. Without explicit orders, rows and
    columns follow first appearance.

    Raises:
        ValueError: If a (feature, sample) pair appears twice
    """
    frame = pd.DataFrame(list(records), columns=['feature_id', 'sample_id', 'count'])
    if frame.duplicated(['feature_id', 'sample_id']).any():
        dupes = frame[frame.duplicated(['feature_id', 'sample_id'])].head(3)
        raise ValueError(f"Repeated (feature, sample) records: {dupes[['feature_id', 'sample_id']].values.tolist()}")

    rows = pd.Index(feature_ids if feature_ids is not None else frame['feature_id'].unique())
    cols = pd.Index(sample_ids if sample_ids is not None else frame['sample_id'].unique())
    table = frame.pivot(index='feature_id', columns='sample_id', values='count')
    table = table.reindex(index=rows, columns=cols).fillna(0.0)
    table.index.name = None
    table.columns.name = None
    return table


def find_dcc_files(directory: Union[str, Path]) -> list[Path]:
    """Sorted list of ``*.dcc`` files in a directory."""
    directory = Path(directory)
    if not directory.is_dir():
        raise FileNotFoundError(f"DCC directory not found: {directory}")
    paths = sorted(p for p in directory.iterdir() if p.is_file() and p.suffix.lower() == '.dcc')
    if not paths:
        raise ValueError(f"No .dcc files in {directory}")
    return paths


def read_dcc_files(paths: Iterable[Union[str, Path]]) -> tuple[pd.DataFrame, pd.DataFrame]:
    """
    Read several DCC files.

    Returns:
        (counts, protocol): counts is features × samples (absent probes = 0,
        probes in first-appearance order); protocol is indexed by sample ID

    Raises:
        SchemaMismatchError: If two files map to the same sample ID
    """
    records = [read_dcc(path) for path in paths]
    if not records:
        raise ValueError("No DCC files given")

    sample_ids = pd.Index([r.sample_id for r in records])
    if sample_ids.has_duplicates:
        raise SchemaMismatchError(
            f"Several DCC files share a sample ID: {list(sample_ids[sample_ids.duplicated()].unique())}"
        )

    counts = pd.concat([r.counts for r in records], axis=1).fillna(0.0)
    counts.columns = sample_ids
    protocol = pd.DataFrame([r.protocol for r in records], index=sample_ids)

    logger.info(f"Read {len(records)} DCC files covering {counts.shape[0]:,} probes")
    return counts, protocol
