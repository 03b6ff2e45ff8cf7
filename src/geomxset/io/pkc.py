"""
Reader for GeoMx PKC (probe kit configuration) files.

A PKC file is JSON describing one probe module of a panel:

```
{
  "Name": "Six gene test",
  "Version": 0.1,
  "Targets": [
    {"DisplayName": "ACTA2", "CodeClass": "Endogenous", "GeneID": ["59"],
     "Probes": [{"RTS_ID": "RTS0039454", "ProbeID": "1", "DisplayName": "ACTA2"}]},
    {"DisplayName": "NegProbe-WTX", "CodeClass": "Negative", "GeneID": null,
     "Probes": [{"RTS_ID": "RTS0050001", "ProbeID": "9"}]}
  ]
}
```

Every probe becomes one feature, indexed by its RTS_ID, annotated with its
target. ``GeneID`` stays list-valued; use
``AnnotatedMatrixStore.expand_annotation`` to get one row per gene ID.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Union

import pandas as pd

from geomxset.core.errors import SchemaMismatchError

logger = logging.getLogger(__name__)

__all__ = ['PkcModule', 'FEATURE_COLUMNS', 'read_pkc', 'read_pkcs']


FEATURE_COLUMNS = ['TargetName', 'ProbeID', 'Module', 'CodeClass', 'GeneID', 'Negative']


@dataclass(frozen=True)
class PkcModule:
    """One probe module: its name, version and per-probe annotation."""
    name: str
    version: Any
    features: pd.DataFrame

    @property
    def n_probes(self) -> int:
        return len(self.features)


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def read_pkc(path: Union[str, Path]) -> PkcModule:
    """
    Parse one PKC file into per-probe feature annotation.

    The module name is the file name without ``.pkc``.

    Raises:
        FileNotFoundError: If path does not exist
        ValueError: If the JSON is invalid or lacks targets/probe IDs
        SchemaMismatchError: If an RTS_ID is listed twice
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"PKC file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as handle:
            config = json.load(handle)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in PKC file {path}: {e}") from e

    if not isinstance(config, dict) or not isinstance(config.get('Targets'), list):
        raise ValueError(f"PKC file {path} has no 'Targets' list")

    module = path.stem
    rows = []
    for target in config['Targets']:
        target_name = target.get('DisplayName')
        code_class = target.get('CodeClass')
        for probe in target.get('Probes') or []:
            rts_id = probe.get('RTS_ID')
            if not rts_id:
                raise ValueError(f"PKC file {path}: probe of target {target_name!r} has no RTS_ID")
            rows.append({
                'RTS_ID': rts_id,
                'TargetName': target_name,
                'ProbeID': probe.get('ProbeID'),
                'Module': module,
                'CodeClass': code_class,
                'GeneID': _as_list(probe.get('GeneID', target.get('GeneID'))),
                'Negative': str(code_class).lower() == 'negative',
            })

    features = pd.DataFrame(rows, columns=['RTS_ID'] + FEATURE_COLUMNS).set_index('RTS_ID')
    features.index.name = None
    if features.index.has_duplicates:
        dupes = list(features.index[features.index.duplicated()].unique()[:5])
        raise SchemaMismatchError(f"PKC file {path}: RTS_IDs listed twice: {dupes}")

    logger.debug(f"PKC module {module}: {len(features)} probes")
    return PkcModule(name=module, version=config.get('Version'), features=features)


def read_pkcs(paths: Union[str, Path, Iterable[Union[str, Path]]]) -> tuple[pd.DataFrame, dict[str, Any]]:
    """
    Read and combine one or more PKC modules.

    Returns:
        (features, experiment): combined feature annotation and an experiment
        record with ``PKCModule`` and ``PKCFileVersion`` lists

    Raises:
        SchemaMismatchError: If a probe appears in more than one module
    """
    if isinstance(paths, (str, Path)):
        paths = [paths]
    modules = [read_pkc(p) for p in paths]
    if not modules:
        raise ValueError("No PKC files given")

    features = pd.concat([m.features for m in modules])
    if features.index.has_duplicates:
        dupes = list(features.index[features.index.duplicated()].unique()[:5])
        raise SchemaMismatchError(f"Probes present in several PKC modules: {dupes}")

    experiment = {
        'PKCModule': [m.name for m in modules],
        'PKCFileVersion': [m.version for m in modules],
    }
    logger.info(f"Read {len(modules)} PKC module(s) with {len(features):,} probes")
    return features, experiment
