#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from argparse import (
    ArgumentParser,
    ArgumentTypeError,
    RawTextHelpFormatter,
    Namespace,
)
from typing import List, Optional
import asyncio
import logging
import signal
import copy
import sys

from invest_instruments.utils import LOGGER_CONFIG
from invest_instruments.config import Config, load_config
from invest_instruments.client import new_client
from invest_instruments.common.errors import ConfigError, InvestError
from invest_instruments.runner import (
    InstrumentsRunner,
    STEPS,
    DEFAULT_QUERIES,
    DEFAULT_EXCHANGE,
    DEFAULT_SHARE_UID,
    DEFAULT_BOND_FIGI,
    DEFAULT_BONDS_LIMIT,
)
from invest_instruments.utils.logging import CustomFormatter, proc_logger, flush_logger


DESCRIPTION = """
Invest API instruments example

Connects to the Invest API using the client configuration file and issues a fixed sequence of read-only
instrument queries (search, trading schedules, share and bond lookups, accrued interests, coupons and dividends),
printing the results to standard output. A failed query is logged and the remaining queries still run.
"""

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

SIGNALS = (signal.SIGINT, signal.SIGTERM)


def _non_negative_int(value: str) -> int:
    _value = int(value)
    if _value < 0:
        raise ArgumentTypeError(f"must not be negative, got: '{value}'")

    return _value


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="invest-instruments",
        description=DESCRIPTION,
        formatter_class=RawTextHelpFormatter,
    )
    parser.add_argument(
        "-c",
        "--config",
        help="Path to the YAML client configuration file",
        type=str,
        default="config.yaml",
    )
    parser.add_argument(
        "-d",
        "--debug",
        help="Run with debug logging enabled",
        action="store_true",
    )

    queries = parser.add_argument_group("Queries")
    queries.add_argument(
        "--queries",
        help="Search strings for the instrument search, one call per string",
        type=str,
        nargs="+",
        default=list(DEFAULT_QUERIES),
    )
    queries.add_argument(
        "--exchange",
        help="Exchange to fetch the trading schedule for, e.g 'MOEX'",
        type=str,
        default=DEFAULT_EXCHANGE,
    )
    queries.add_argument(
        "--share-uid",
        help="Instrument uid used for the share lookup and the interest, coupon and dividend queries",
        type=str,
        default=DEFAULT_SHARE_UID,
    )
    queries.add_argument(
        "--bond-figi",
        help="FIGI used for the bond lookup",
        type=str,
        default=DEFAULT_BOND_FIGI,
    )
    queries.add_argument(
        "--bonds-limit",
        help="Maximum number of bonds to display from the bond listing",
        type=_non_negative_int,
        default=DEFAULT_BONDS_LIMIT,
    )
    queries.add_argument(
        "--steps",
        help="Only run these queries, the order of execution is fixed",
        type=str,
        nargs="+",
        choices=STEPS,
        default=None,
    )

    return parser


def setup_logger(debug: bool = False) -> logging.Logger:
    logger_config = copy.deepcopy(LOGGER_CONFIG)
    if debug:
        logger_config["loggers"]["__main__"]["handlers"] = ["DEBUG"]
        logger_config["loggers"]["__main__"]["level"] = "DEBUG"

    logger = proc_logger(logger_config=logger_config)
    for handler in logger.handlers:
        handler.setFormatter(
            CustomFormatter(
                logger_config["formatters"]["DEBUG" if debug else "INFO"]["format"]
            )
        )

    return logger


def _install_signal_handlers(
    loop: asyncio.AbstractEventLoop, task: asyncio.Task, logger: logging.Logger
) -> None:
    def _cancel(signum: signal.Signals) -> None:
        logger.warning(f"Main: Received '{signum.name}', cancelling pending queries ...")
        task.cancel()

    for signum in SIGNALS:
        loop.add_signal_handler(signum, _cancel, signum)


def _ignore_signal_handlers(
    loop: asyncio.AbstractEventLoop, logger: logging.Logger
) -> None:
    def _ignore(signum: signal.Signals) -> None:
        logger.warning(
            f"Main: Received '{signum.name}' while closing client connection, ignoring"
        )

    for signum in SIGNALS:
        loop.add_signal_handler(signum, _ignore, signum)


def _remove_signal_handlers(loop: asyncio.AbstractEventLoop) -> None:
    for signum in SIGNALS:
        loop.remove_signal_handler(signum)


async def start(config: Config, args: Namespace, logger: logging.Logger) -> int:
    loop = asyncio.get_running_loop()
    _install_signal_handlers(loop, asyncio.current_task(), logger)
    try:
        try:
            client = await new_client(config, logger=logger)
        except InvestError as exc:
            logger.critical(f"Main: Client creating error: {exc}")
            return EXIT_FAILURE

        try:
            runner = InstrumentsRunner(
                client.instruments_service(),
                queries=args.queries,
                exchange=args.exchange,
                share_uid=args.share_uid,
                bond_figi=args.bond_figi,
                bonds_limit=args.bonds_limit,
                steps=args.steps,
            )
            await runner.run()
        finally:
            # A second signal must not interrupt the close
            _ignore_signal_handlers(loop, logger)
            logger.info("Main: Closing client connection ...")
            try:
                await client.stop()
            except Exception as exc:
                logger.error(f"Main: Client shutdown error: {exc}")
    except asyncio.CancelledError:
        logger.warning("Main: Interrupted")
        return EXIT_INTERRUPTED
    finally:
        _remove_signal_handlers(loop)

    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        print(f"Config loading error: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    try:
        logger = setup_logger(debug=args.debug)
    except (ValueError, TypeError, AttributeError, ImportError) as exc:
        print(f"Logger creating error: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    logger.debug(f"Main: Loaded {config!r} from: '{args.config}'")
    try:
        return asyncio.run(start(config, args, logger))
    finally:
        flush_logger(logger)


if __name__ == "__main__":
    sys.exit(main())
