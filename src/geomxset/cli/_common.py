"""Argument groups and loading shared by the geomxset subcommands."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from geomxset.core.store import AnnotatedMatrixStore

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _quantile(value: str) -> float:
    """argparse type for quantiles in the half-open interval (0, 1]."""
    fvalue = float(value)
    if not (0 < fvalue <= 1):
        raise argparse.ArgumentTypeError(
            f"{value} is not a valid quantile (must be in (0, 1])"
        )
    return fvalue


def add_input_arguments(parser: argparse.ArgumentParser) -> None:
    """Add the DCC / PKC / annotation inputs and layout options."""
    parser.add_argument("--config", "-c", type=Path, default=None,
                        help="Path to YAML/JSON config file (CLI args override config values)")
    parser.add_argument("--dcc-dir", "-d", type=Path, default=None,
                        help="Directory of per-segment .dcc count files")
    parser.add_argument("--pkc", "-p", type=Path, action="append", default=None,
                        help="PKC probe configuration file (repeat for multi-module panels)")
    parser.add_argument("--annotation", "-a", type=Path, default=None,
                        help="Lab worksheet (CSV, TSV or XLSX)")

    layout = parser.add_argument_group("annotation layout")
    layout.add_argument("--sample-id-col", default="Sample_ID",
                        help="Annotation column holding the DCC sample IDs")
    layout.add_argument("--protocol-columns", nargs="*", default=["aoi", "roi"],
                        help="Annotation columns describing how segments were collected")
    layout.add_argument("--experiment-columns", nargs="*", default=["panel"],
                        help="Annotation columns that are constant across the experiment")
    layout.add_argument("--list-columns", nargs="*", default=[],
                        help="Annotation columns holding delimited lists")
    layout.add_argument("--list-sep", default=";",
                        help="Separator for list columns")
    layout.add_argument("--sheet", default=0,
                        help="Excel sheet name or index")

    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Enable debug logging")


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT)


def resolve_config(args: argparse.Namespace) -> argparse.Namespace:
    """Merge the config file (if any) into args; CLI values take priority."""
    if not args.config:
        return args

    from geomxset.cli.config import load_config, merge_config_with_args

    print(f"Loading configuration from: {args.config}")
    config = load_config(args.config)
    return merge_config_with_args(config, args, getattr(args, "cli_args", None))


def missing_inputs(args: argparse.Namespace) -> list[str]:
    """Names of the required inputs still unset after config merge."""
    missing = []
    if not args.dcc_dir:
        missing.append("--dcc-dir")
    if not args.pkc:
        missing.append("--pkc")
    if not args.annotation:
        missing.append("--annotation")
    return missing


def load_from_args(args: argparse.Namespace) -> AnnotatedMatrixStore:
    """Load the GeoMx experiment described by (merged) CLI arguments."""
    from geomxset.cli.config import layout_from_args
    from geomxset.io.loaders import load_geomx_set

    sheet = args.sheet
    if isinstance(sheet, str) and sheet.isdigit():
        args.sheet = int(sheet)

    return load_geomx_set(
        args.dcc_dir,
        args.pkc,
        args.annotation,
        layout=layout_from_args(args),
    )
