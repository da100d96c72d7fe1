"""Command line entry point: ``python -m trackhub``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from trackhub._logging import configure_logging
from trackhub.app import TrackHub
from trackhub.config import HubConfig
from trackhub.exceptions import ConfigError

_logger = logging.getLogger("trackhub")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="trackhub", description="Feed tracking positions into Sankhya.")
    parser.add_argument("--once", action="store_true", help="Run one cycle per source and exit")
    parser.add_argument(
        "--source",
        action="append",
        dest="sources",
        metavar="NAME",
        help="Only run this source (repeatable)",
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    parser.add_argument("--log-dir", default=None, help="Override LOG_DIR")
    return parser


def request_stop(hub: TrackHub, pending: set[asyncio.Task[None]]) -> None:
    """Schedule ``hub.stop()`` and hold the task in *pending* until it finishes."""
    task = asyncio.ensure_future(hub.stop())
    pending.add(task)
    task.add_done_callback(pending.discard)


async def _run(config: HubConfig, args: argparse.Namespace) -> None:
    async with TrackHub(config) as hub:
        if args.once:
            await hub.run_once(args.sources)
            return

        loop = asyncio.get_running_loop()
        stopping: set[asyncio.Task[None]] = set()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, request_stop, hub, stopping)
            except NotImplementedError:
                # Windows event loops have no signal handlers.
                pass
        _logger.info("trackhub started with %s", ", ".join(hub.jobs) or "no sources")
        await hub.run_forever(args.sources)
        _logger.info("trackhub stopped")


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        overrides = {}
        if args.log_level:
            overrides["log_level"] = args.log_level.upper()
        if args.log_dir:
            overrides["log_dir"] = args.log_dir
        config = HubConfig.from_env(**overrides)
    except ConfigError as exc:
        configure_logging("INFO")
        _logger.critical("Invalid configuration: %s", exc)
        return 2

    configure_logging(config.log_level, config.log_dir)
    try:
        asyncio.run(_run(config, args))
    except ConfigError as exc:
        _logger.critical("%s", exc)
        return 2
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
