#!/usr/bin/env python
"""
xls2cql – CLI entry point.

Usage:
    python -m xls2cql.main --generate=who.dak.l2.dt.cql --input=dak.xlsx [--output=out]
        [--skel=skel.cql] [--replace] [--refresh] [--rules-only] [--config config.yaml]

    xls2cql --help          lists the available generators

Outputs land under ``<output>/input/cql`` and ``<output>/input/resources``.
"""

import argparse
import logging
import os
import sys

from .config import DEFAULTS, load_config
from .errors import Xls2CqlError
from .generator import GenerateOptions
from .registry import GENERATORS, get_generator
from .worksheet import load_workbook

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1


def setup_logging(level_str: str = "INFO"):
    """Configure logging."""
    level = getattr(logging, level_str.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%H:%M:%S'
    )
    logging.getLogger().setLevel(level)


def _generator_help():
    lines = ["generators:"]
    for name, cls in GENERATORS.items():
        lines.append(f"  {name:<26}{cls.description}")
    return "\n".join(lines)


def build_parser():
    parser = argparse.ArgumentParser(
        prog="xls2cql",
        description="Generate CQL libraries and FHIR resources from DAK spreadsheets",
        epilog=_generator_help(),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--generate", action="append", default=[], metavar="NAME",
        help="Generator to run (repeatable)",
    )
    parser.add_argument("--input", default=None, help="Input Excel workbook (.xlsx)")
    parser.add_argument(
        "--output", default=".",
        help="Output directory (files go to input/cql and input/resources below it)",
    )
    parser.add_argument(
        "--skel", default=None,
        help="Skeleton CQL with your includes and header contents (default: skel.cql)",
    )
    parser.add_argument(
        "--replace", action="store_true", help="Replace/overwrite existing files",
    )
    parser.add_argument(
        "--refresh", action="store_true",
        help="Refresh the contents of the define statements",
    )
    parser.add_argument(
        "--rules-only", action="store_true",
        help="Do not emit data element placeholder defines",
    )
    parser.add_argument("--config", default="config.yaml", help="Path to config YAML file")
    parser.add_argument(
        "--log-level", default=None, help="Logging level: DEBUG, INFO, WARNING, ERROR",
    )
    return parser


def read_skeleton(path):
    """Read the skeleton file; a missing skeleton is fatal."""
    if not os.path.exists(path):
        raise FileNotFoundError(f"Skeleton file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def run(args, config):
    """Run every requested generator over the input workbook."""
    if not args.input:
        raise ValueError("Must pass --input parameter")
    if not os.path.exists(args.input):
        raise FileNotFoundError(f"Excel file not found: {args.input}")

    generators = [get_generator(name) for name in args.generate]
    skeleton = read_skeleton(args.skel or config["skeleton"])
    options = GenerateOptions(
        replace=args.replace,
        refresh=args.refresh,
        rules_only=args.rules_only,
        config=config,
    )

    workbook = load_workbook(args.input)
    written = []
    try:
        for generator in generators:
            logger.info(f"Running {generator.name} ({generator.description})")
            written.extend(generator.generate(workbook, args.output, skeleton, options))
    finally:
        workbook.close()

    logger.info(f"Done: {len(written)} files written")
    return written


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.generate:
        parser.print_help()
        return EXIT_OK

    # Handler for config warnings; the configured level is applied after loading
    setup_logging(args.log_level or DEFAULTS["log_level"])
    try:
        config = load_config(args.config)
        if not args.log_level:
            setup_logging(config["log_level"])
        run(args, config)
    except (Xls2CqlError, OSError, ValueError) as e:
        logger.error(f"Fatal error: {e}")
        logger.debug("Traceback", exc_info=True)
        return EXIT_FATAL
    except Exception:
        logger.exception("Fatal error")
        return EXIT_FATAL
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
