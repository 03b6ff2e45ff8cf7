"""
Configuration file support for the geomxset CLI.

Supports YAML and JSON config files with CLI argument override:

```yaml
dcc_dir: data/dccs
pkc:
  - data/Hs_R_NGS_WTA_v1.0.pkc
annotation: data/annotations.xlsx
layout:
  sample_id_col: Sample_ID
  protocol_columns: [aoi, roi]
  experiment_columns: [panel]
normalization:
  method: quant
  quantile: 0.75
  log: true
```
"""

import json
from argparse import Namespace
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from geomxset.io.formats import AnnotationLayout


@dataclass
class LayoutConfig:
    """Annotation table layout configuration."""
    sample_id_col: Optional[str] = "Sample_ID"
    protocol_columns: List[str] = field(default_factory=lambda: ["aoi", "roi"])
    experiment_columns: List[str] = field(default_factory=lambda: ["panel"])
    list_columns: List[str] = field(default_factory=list)
    list_sep: str = ";"
    sheet_name: Union[str, int] = 0

    def to_layout(self) -> AnnotationLayout:
        return AnnotationLayout(
            name="CLI layout",
            sample_id_col=self.sample_id_col,
            protocol_columns=list(self.protocol_columns),
            experiment_columns=list(self.experiment_columns),
            list_columns=list(self.list_columns),
            list_sep=self.list_sep,
            sheet_name=self.sheet_name,
        )


def load_config(config_path: Path) -> Dict[str, Any]:
    """
    Load configuration from YAML or JSON file.

    Parameters:
        config_path: Path to config file (.yaml, .yml, or .json)

    Returns:
        Dictionary with configuration values

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If file format is unsupported or invalid

    Examples:
        >>> config = load_config(Path("geomx.yaml"))
        >>> print(config['normalization']['method'])
        quant
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    suffix = config_path.suffix.lower()

    try:
        with open(config_path, 'r') as f:
            if suffix in ('.yaml', '.yml'):
                config = yaml.safe_load(f)
            elif suffix == '.json':
                config = json.load(f)
            else:
                raise ValueError(
                    f"Unsupported config format: {suffix}. "
                    f"Use .yaml, .yml, or .json"
                )
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in config file: {e}")
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file: {e}")

    if config is None:
        return {}

    if not isinstance(config, dict):
        raise ValueError("Config file must contain a dictionary/mapping at top level")

    unknown = set(config) - {'dcc_dir', 'pkc', 'annotation', 'output', 'layout', 'normalization'}
    if unknown:
        raise ValueError(f"Unknown config keys: {sorted(unknown)}")

    return config


def _merge_value(cli_value: Any, config_value: Any, was_explicitly_set: bool) -> Any:
    """
    Merge a single config value with a CLI argument.

    Rules:
    - CLI args ALWAYS override config if explicitly set
    - If CLI arg not set, use config value
    - If neither set, keep CLI default
    """
    if was_explicitly_set:
        return cli_value
    if config_value is not None:
        return config_value
    return cli_value


_SHORT_TO_LONG = {
    'd': 'dcc_dir',
    'p': 'pkc',
    'a': 'annotation',
    'o': 'output',
}

# config section -> {config key: argparse dest}
_SECTIONS = {
    'layout': {
        'sample_id_col': 'sample_id_col',
        'protocol_columns': 'protocol_columns',
        'experiment_columns': 'experiment_columns',
        'list_columns': 'list_columns',
        'list_sep': 'list_sep',
        'sheet_name': 'sheet',
    },
    'normalization': {
        'method': 'normalize',
        'quantile': 'quantile',
        'housekeeping': 'housekeeping',
        'log': 'log',
    },
}


def _explicit_args(cli_args: Optional[List[str]]) -> set:
    explicit = set()
    for arg in cli_args or []:
        if arg.startswith('--'):
            explicit.add(arg[2:].split('=', 1)[0].replace('-', '_'))
        elif arg.startswith('-') and len(arg) == 2 and arg[1] in _SHORT_TO_LONG:
            explicit.add(_SHORT_TO_LONG[arg[1]])
    return explicit


def merge_config_with_args(config: Dict[str, Any], args: Namespace, cli_args: Optional[List[str]] = None) -> Namespace:
    """
    Merge config file values with CLI arguments.

    Priority (highest to lowest):
    1. Explicitly provided CLI arguments
    2. Config file values
    3. CLI argument defaults

    Parameters:
        config: Configuration dictionary from load_config()
        args: Parsed CLI arguments (argparse.Namespace)
        cli_args: Raw CLI arguments list (for detecting explicit values)
                  If None, assumes all args are defaults

    Returns:
        Updated Namespace with merged values
    """
    explicit = _explicit_args(cli_args)
    merged = Namespace(**vars(args))

    for key in ('dcc_dir', 'annotation', 'output'):
        if key in config and hasattr(merged, key):
            value = Path(config[key]) if config[key] is not None else None
            setattr(merged, key, _merge_value(getattr(merged, key), value, key in explicit))

    if 'pkc' in config and hasattr(merged, 'pkc'):
        pkc = config['pkc']
        pkc = [Path(p) for p in ([pkc] if isinstance(pkc, (str, Path)) else pkc or [])]
        merged.pkc = _merge_value(merged.pkc, pkc or None, 'pkc' in explicit)

    for section, mapping in _SECTIONS.items():
        values = config.get(section) or {}
        if not isinstance(values, dict):
            raise ValueError(f"Config section '{section}' must be a mapping")
        for config_key, dest in mapping.items():
            if config_key in values and hasattr(merged, dest):
                setattr(merged, dest, _merge_value(getattr(merged, dest), values[config_key], dest in explicit))

    return merged


def layout_from_args(args: Namespace) -> AnnotationLayout:
    """Build the annotation layout from (merged) CLI arguments."""
    return LayoutConfig(
        sample_id_col=args.sample_id_col,
        protocol_columns=list(args.protocol_columns),
        experiment_columns=list(args.experiment_columns),
        list_columns=list(args.list_columns),
        list_sep=args.list_sep,
        sheet_name=args.sheet,
    ).to_layout()
