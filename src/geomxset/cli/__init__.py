"""
geomxset CLI - Command-line access to GeoMx experiments.

Commands:
    geomxset summary   - Print per-segment or per-probe count statistics
    geomxset export    - Write matrices and annotations to CSV
"""

import argparse
import sys
from typing import Optional, List


def main(args: Optional[List[str]] = None) -> int:
    """Main CLI dispatcher for geomxset."""
    parser = argparse.ArgumentParser(
        prog="geomxset",
        description="Load and interrogate GeoMx DCC/PKC experiments",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  summary   Print per-segment or per-probe count statistics
  export    Write matrices and annotations to CSV

Examples:
  geomxset summary --dcc-dir dccs/ --pkc panel.pkc --annotation annotations.xlsx
  geomxset summary -c geomx.yaml --axis features --group-by segment
  geomxset export -c geomx.yaml --output export/ --normalize quant --log
        """
    )

    from geomxset import __version__
    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    from geomxset.cli import export, summary
    summary.register_parser(subparsers)
    export.register_parser(subparsers)

    raw_args = list(sys.argv[1:] if args is None else args)
    parsed_args = parser.parse_args(raw_args)

    if parsed_args.command is None:
        parser.print_help()
        return 0

    # Raw tokens after the subcommand, used to tell explicit flags from defaults
    parsed_args.cli_args = raw_args[raw_args.index(parsed_args.command) + 1:]

    return parsed_args.func(parsed_args)


if __name__ == "__main__":
    sys.exit(main())
