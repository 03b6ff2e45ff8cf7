"""
geomxset export - load, optionally normalize, and write CSV files.

Usage:
    geomxset export -d dccs/ -p panel.pkc -a annotations.xlsx -o export/
    geomxset export -c geomx.yaml --normalize quant --log
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from geomxset.cli._common import (
    _quantile,
    add_input_arguments,
    configure_logging,
    load_from_args,
    missing_inputs,
    resolve_config,
)


def register_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the export subcommand."""
    parser = subparsers.add_parser(
        "export",
        help="Export counts, normalized matrices and annotations to CSV",
        description="Load a GeoMx experiment and write every matrix and annotation table to a directory",
    )
    add_input_arguments(parser)
    parser.add_argument("--output", "-o", type=Path, default=None,
                        help="Output directory")

    norm = parser.add_argument_group("normalization")
    norm.add_argument("--normalize", choices=["quant", "neg", "hk", "none"], default="none",
                      help="Normalization method (quant: upper quartile, neg: negative probes, hk: housekeeping)")
    norm.add_argument("--quantile", type=_quantile, default=0.75,
                      help="Quantile for --normalize quant")
    norm.add_argument("--housekeeping", nargs="+", default=[],
                      help="Housekeeping target names for --normalize hk")
    norm.add_argument("--log", action="store_true",
                      help="Also write a log2(x + 1) matrix of the normalized counts")
    parser.set_defaults(func=run_export)


def run_export(args: argparse.Namespace) -> int:
    """Execute the export command."""
    from geomxset.core.errors import NotFoundError, SchemaMismatchError
    from geomxset.io.writers import write_store
    from geomxset.transforms.normalization import LogTransform, normalize

    configure_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        args = resolve_config(args)
    except (FileNotFoundError, ValueError) as e:
        print(f"ERROR: Config file error: {e}")
        return 1

    missing = missing_inputs(args)
    if not args.output:
        missing.append("--output")
    if missing:
        print(f"ERROR: {', '.join(missing)} required (via CLI or config file)")
        return 1

    try:
        store = load_from_args(args)
    except (FileNotFoundError, SchemaMismatchError, NotFoundError, ValueError) as e:
        logger.error(f"Failed to load experiment: {e}")
        return 1

    try:
        if args.normalize == "quant":
            store = normalize(store, "quant", quantile=args.quantile)
        elif args.normalize == "hk":
            store = normalize(store, "hk", genes=args.housekeeping)
        elif args.normalize == "neg":
            store = normalize(store, "neg")

        if args.log:
            source = store.assay_names[-1]
            store = LogTransform(source=source, target=f"log_{source}").apply(store)
    except (NotFoundError, ValueError) as e:
        logger.error(f"Normalization failed: {e}")
        return 1

    written = write_store(store, Path(args.output))
    print(f"Wrote {len(written)} files to {args.output}")
    for path in written:
        print(f"  {path.name}")

    return 0
