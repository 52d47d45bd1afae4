import argparse
import csv
import logging
import sys
from typing import List, Optional

from config import EngineConfig, LOG_LEVELS
from output import write_accounts
from payments_engine import PaymentsEngine

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class LedgerArgumentParser(argparse.ArgumentParser):
    """Reports usage errors with exit status 1, like every other failed run."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = LedgerArgumentParser(
        prog="client-ledger",
        description="Apply a CSV of client transactions and print the resulting account balances.",
    )
    parser.add_argument("input", help="path to the input CSV file (type, client, tx, amount)")
    parser.add_argument("--workers", type=int, help="number of consumer threads (default: 1)")
    parser.add_argument("--log-level", choices=LOG_LEVELS, type=str.upper, help="logging threshold (default: WARNING)")
    parser.add_argument("--log-file", help="write logs to this file instead of stderr")
    return parser


def load_config(args: argparse.Namespace) -> EngineConfig:
    """Environment settings, overridden by any option given on the command line."""
    config = EngineConfig.from_env()
    return EngineConfig(
        num_workers=args.workers if args.workers is not None else config.num_workers,
        log_level=args.log_level or config.log_level,
        log_file=args.log_file or config.log_file,
        precision=config.precision,
    )


def setup_logging(config: EngineConfig) -> None:
    handler: logging.Handler
    if config.log_file:
        handler = logging.FileHandler(config.log_file)
    else:
        handler = logging.StreamHandler(sys.stderr)
    logging.basicConfig(
        level=config.logging_level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=[handler],
        force=True,
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args)
    except ValueError as e:
        parser.error(str(e))

    try:
        setup_logging(config)
    except OSError as e:
        parser.error(f"cannot open log file: {e}")

    engine = PaymentsEngine(config)
    try:
        accounts = engine.process_file(args.input)
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        logger.error(f"Cannot read {args.input}: {e}")
        print(f"Error: cannot read {args.input}: {e}", file=sys.stderr)
        return 1

    write_accounts(accounts, sys.stdout, config.precision)
    return 0


if __name__ == "__main__":
    sys.exit(main())
