"""Console runner: server text on stdout, stdin lines sent as chat."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from .address import StartupOptions, parse_startup_query
from .collaborators import StreamLogSink
from .config import ClientConfig, load_config
from .session import ArchipelagoSession, ConnectionState

_LOGGER = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="archipelago-client",
        description="Text-only spectator client for Archipelago servers.",
    )
    parser.add_argument(
        "--query",
        default="",
        help="startup overrides as a query string, e.g. 'server=host&player=Alice'",
    )
    parser.add_argument("--server", help="server address (host or host:port)")
    parser.add_argument("--player", help="player slot name")
    parser.add_argument("--password", help="room password")
    parser.add_argument("--config", help="YAML client configuration file")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def _merge_options(args: argparse.Namespace) -> StartupOptions:
    query = parse_startup_query(args.query)
    return StartupOptions(
        server=args.server or query.server,
        player=args.player or query.player,
        password=args.password if args.password is not None else query.password,
        hide_ui=query.hide_ui,
    )


def _report_state(state: ConnectionState) -> None:
    _LOGGER.info("Server status: %s", state.value)


async def _run(config: ClientConfig, options: StartupOptions) -> int:
    session = ArchipelagoSession(config, log_sink=StreamLogSink(sys.stdout))
    session.on_connection_state_changed(_report_state)

    if not await session.connect(options.server or "", options.player or "", options.password):
        return 2

    if options.hide_ui:
        await session.wait_closed()
    else:
        loop = asyncio.get_running_loop()
        while True:
            line = await loop.run_in_executor(None, sys.stdin.readline)
            if not line:
                break
            text = line.rstrip("\n")
            if text and not await session.say(text):
                _LOGGER.warning("Not connected; message not sent")

    await session.close()
    return 1 if session.last_error is not None else 0


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    config = load_config(args.config) if args.config else ClientConfig()
    try:
        return asyncio.run(_run(config, _merge_options(args)))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
