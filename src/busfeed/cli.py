"""Command line entry point: ``busfeed``."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from collections.abc import Sequence

from busfeed.client import BusApiClient
from busfeed.config import BusFeedConfig
from busfeed.exceptions import BootstrapError, BusFeedConfigError, BusFeedError
from busfeed.service import BusSyncService
from busfeed.state.cache import BusCache
from busfeed.state.store import FileCacheStore

_logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_BOOTSTRAP = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="busfeed",
        description="Reconcile a spreadsheet bus feed against the remote bus service.",
    )
    parser.add_argument(
        "-c",
        "--config",
        help="JSON config file (BUSFEED_* environment variables override it)",
    )
    parser.add_argument("--dry-run", action="store_true", help="compute changes but send no mutations")
    parser.add_argument("--once", action="store_true", help="run a single pass and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def _load_config(args: argparse.Namespace) -> BusFeedConfig:
    overrides: dict[str, object] = {}
    if args.dry_run:
        overrides["dry_run"] = True
    if args.once:
        overrides["single_run"] = True
    if args.config:
        return BusFeedConfig.from_file(args.config, **overrides)
    return BusFeedConfig.from_env(**overrides)


def _configure_logging(config: BusFeedConfig, verbose: bool) -> None:
    if verbose:
        level = logging.DEBUG
    elif config.log:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


async def run(config: BusFeedConfig) -> int:
    async with BusApiClient(config) as client:
        cache = BusCache(FileCacheStore(config.data_path))
        service = BusSyncService(config, client, client, cache)
        try:
            await service.bootstrap()
        except BootstrapError:
            _logger.critical("Could not bootstrap the bus cache. Terminating.", exc_info=True)
            return EXIT_BOOTSTRAP

        if config.single_run or not config.periodic:
            try:
                result = await service.run_once()
            except BusFeedError:
                _logger.exception("Reconciliation pass failed")
                return EXIT_FAILED
            print(
                f"{len(result.seen)} buses seen, {len(result.sent)} mutations sent, "
                f"{len(result.swept)} marked unavailable"
            )
            return EXIT_OK

        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, stop.set)
        await service.run_forever(stop)
        return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    try:
        config = _load_config(args)
    except BusFeedConfigError as exc:
        print(f"busfeed: {exc}", file=sys.stderr)
        return EXIT_FAILED
    _configure_logging(config, args.verbose)
    return asyncio.run(run(config))
