"""Command line interface.

Runs one or more repetitions of the model from a YAML configuration, with
optional scenario layer and section.key=value overrides, and writes one R
result file per repetition.
"""

from __future__ import annotations

import logging
import sys
from typing import List, Optional

from natal_philopatry import __version__
from natal_philopatry.config import SimulationConfig, load_config, validate_config
from natal_philopatry.model import run_repetitions

logger = logging.getLogger(__name__)

# Console flag → OutputSection field
CONSOLE_FLAGS = {
    'ot': 'time',
    'og': 'group_size',
    'om': 'males',
    'off': 'female_floaters',
    'omf': 'male_floaters',
    'oa': 'alleles',
    'oxy': 'votes',
    'oto': 'takeovers',
}


def build_parser():
    import argparse

    parser = argparse.ArgumentParser(
        prog="natal-philopatry",
        description="Individual-based model of the evolution of natal philopatry",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Defaults with 100 male floaters, 5000 ticks, full progress output
  natal-philopatry --set population.nmf=100 --set simulation.ticks=5000 \\
    --file res.R -v

  # Base config plus scenario, 10 repetitions -> res_1.R ... res_10.R
  natal-philopatry configs/default.yaml --scenario kin.yaml \\
    --file results/res.R --reps 10

  # Residency mating with an egalitarian vote
  natal-philopatry --set strategy.mode=residency --set strategy.bvote=egalitarian \\
    --set genetics.alleles="5 0 0 5 0 0" --file res.R
        """,
    )
    parser.add_argument("config", nargs="?", default=None,
                        help="Base configuration YAML (built-in defaults if omitted)")
    parser.add_argument("--scenario", default=None,
                        help="Scenario YAML merged over the base configuration")
    parser.add_argument("--set", dest="overrides", action="append", default=[],
                        metavar="SECTION.KEY=VALUE",
                        help="Override a single parameter (repeatable)")
    parser.add_argument("--file", default=None,
                        help="R result file (required unless output.file is set)")
    parser.add_argument("--reps", type=int, default=None,
                        help="Number of repetitions (overrides simulation.repetitions)")
    parser.add_argument("--seed", type=int, default=None,
                        help="Master seed (overrides simulation.seed)")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable every console column")
    for flag, field_name in CONSOLE_FLAGS.items():
        parser.add_argument(f"-{flag}", action="store_true",
                            help=f"Console column: {field_name.replace('_', ' ')}")
    parser.add_argument("--profile", action="store_true",
                        help="Console column: seconds between progress lines")
    parser.add_argument("--version", action="version",
                        version=f"%(prog)s {__version__}")
    return parser


def config_from_args(args) -> SimulationConfig:
    """Load the configuration and apply command line switches.

    Raises:
        FileNotFoundError: If a configuration file does not exist.
        ValueError: If the resulting configuration is invalid or names no
            result file.
    """
    config = load_config(args.config, args.scenario, args.overrides)
    if args.file is not None:
        config.output.file = args.file
    if args.reps is not None:
        config.simulation.repetitions = args.reps
    if args.seed is not None:
        config.simulation.seed = args.seed
    out = config.output
    if args.verbose:
        out.set_verbose()
    for flag, field_name in CONSOLE_FLAGS.items():
        if getattr(args, flag):
            setattr(out, field_name, True)
    if args.profile:
        out.profile = True
    if not config.output.file:
        raise ValueError("no result file: pass --file or set output.file")
    validate_config(config)
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """Command line entry point. Returns the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    try:
        config = config_from_args(args)
    except (FileNotFoundError, ValueError) as e:
        logger.error("Invalid configuration: %s", e)
        return 2

    run_repetitions(config)
    return 0


if __name__ == "__main__":
    sys.exit(main())
