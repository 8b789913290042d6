"""Command-line entry point for the calculator.

Usage:
    exprcalc                      start the interactive REPL
    exprcalc -e EXPR [-e EXPR]    evaluate expressions in order and print results
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError

from .config import CalculatorSettings, load_settings
from .repl import REPL


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Interactive expression calculator.")
    parser.add_argument(
        "-e", "--eval",
        dest="expressions",
        action="append",
        metavar="EXPR",
        help="Evaluate EXPR and print the result (can be repeated).",
    )
    parser.add_argument(
        "--radix",
        choices=["dec", "hex", "bin"],
        help="Display radix for integer results (default: dec).",
    )
    parser.add_argument(
        "--rc-file",
        type=str,
        help="Definitions file loaded at startup and written by :save.",
    )
    parser.add_argument(
        "--no-rc",
        action="store_true",
        help="Do not load a definitions file.",
    )
    parser.add_argument(
        "--history-file",
        type=str,
        help="File used for input history.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        help="Logging level (default: WARNING).",
    )
    return parser


def configure_logging(settings: CalculatorSettings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def run_expressions(repl: REPL, expressions: List[str]) -> int:
    status = 0
    for expr in expressions:
        try:
            ok, out = repl.evaluate_line(expr)
        except EOFError:
            break
        print(out, file=sys.stdout if ok else sys.stderr)
        if not ok:
            status = 1
    return status


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings(
            radix=args.radix,
            rc_file="" if args.no_rc else args.rc_file,
            history_file=args.history_file,
            log_level=args.log_level,
        )
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2
    configure_logging(settings)

    repl = REPL(settings)
    rc_out = repl.load_rc()
    if rc_out:
        logging.getLogger(__name__).info(rc_out)

    if args.expressions:
        return run_expressions(repl, args.expressions)
    try:
        repl.repl_loop()
    except EOFError:
        # graceful exit
        pass
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
