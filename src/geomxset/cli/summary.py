"""
geomxset summary - print per-feature or per-segment statistics.

Usage:
    geomxset summary --dcc-dir dccs/ --pkc panel.pkc --annotation annotations.xlsx
    geomxset summary -c geomx.yaml --axis features --group-by segment
"""

from __future__ import annotations

import argparse
import logging

import pandas as pd

from geomxset.cli._common import (
    _quantile,
    add_input_arguments,
    configure_logging,
    load_from_args,
    missing_inputs,
    resolve_config,
)


def register_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the summary subcommand."""
    parser = subparsers.add_parser(
        "summary",
        help="Summarize counts per segment or per probe",
        description="Load a GeoMx experiment and print summary statistics",
    )
    add_input_arguments(parser)
    parser.add_argument("--axis", choices=["samples", "features"], default="samples",
                        help="Summarize each segment (samples) or each probe (features)")
    parser.add_argument("--assay", default="raw",
                        help="Matrix to summarize")
    parser.add_argument("--group-by", default=None,
                        help="Annotation field of the other axis to stratify by")
    parser.add_argument("--normalize", choices=["quant", "neg", "none"], default="none",
                        help="Normalize before summarizing (the summary then uses the normalized matrix)")
    parser.add_argument("--quantile", type=_quantile, default=0.75,
                        help="Quantile for --normalize quant")
    parser.set_defaults(func=run_summary)


def _print_frame(title: str, frame: pd.DataFrame) -> None:
    print(f"\n{title}")
    print(frame.to_string(float_format=lambda v: f"{v:.4g}"))


def run_summary(args: argparse.Namespace) -> int:
    """Execute the summary command."""
    from geomxset.core.errors import NotFoundError, SchemaMismatchError
    from geomxset.stats.summaries import summarize
    from geomxset.transforms.normalization import normalize

    configure_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        args = resolve_config(args)
    except (FileNotFoundError, ValueError) as e:
        print(f"ERROR: Config file error: {e}")
        return 1

    missing = missing_inputs(args)
    if missing:
        print(f"ERROR: {', '.join(missing)} required (via CLI or config file)")
        return 1

    try:
        store = load_from_args(args)
    except (FileNotFoundError, SchemaMismatchError, NotFoundError, ValueError) as e:
        logger.error(f"Failed to load experiment: {e}")
        return 1

    print(store)

    assay = args.assay
    if args.normalize != "none":
        try:
            kwargs = {"quantile": args.quantile} if args.normalize == "quant" else {}
            store = normalize(store, args.normalize, **kwargs)
        except (NotFoundError, TypeError, ValueError) as e:
            logger.error(f"Normalization failed: {e}")
            return 1
        assay = store.assay_names[-1]

    try:
        result = summarize(store, args.axis, assay=assay, group_by=args.group_by)
    except (NotFoundError, TypeError) as e:
        logger.error(f"Summary failed: {e}")
        return 1

    if isinstance(result, dict):
        for group, frame in result.items():
            _print_frame(f"[{args.group_by} = {group}] {args.axis} summary of '{assay}'", frame)
    else:
        _print_frame(f"{args.axis} summary of '{assay}'", result)

    return 0
