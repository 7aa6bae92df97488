#!/usr/bin/env python3
"""
CLI for listing and polling platform data links.

Usage:
    python -m src.cli list my-data-link --path results --depth 2
    python -m src.cli poll my-data-link --interval 05:00 --type files
    python -m src.cli check
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from src.datalink import (
    DeliveryMode,
    ListingConfig,
    ListingService,
    PlatformClient,
    PlatformConfig,
    PollConfig,
    PollOutput,
    PollScheduler,
)

# Load .env from project root
_env_file = Path(__file__).parent.parent / ".env"
if _env_file.exists():
    load_dotenv(_env_file)
else:
    load_dotenv()


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("cli")


def _platform_config(args) -> PlatformConfig:
    return PlatformConfig(
        base_url=args.base_url,
        workspace_id=getattr(args, "workspace_id", None),
        token=args.token,
        timeout_seconds=args.timeout,
    )


def _listing_config(args) -> ListingConfig:
    return ListingConfig(
        data_link_name=args.name,
        base_path=args.path,
        search=args.search,
        pattern=args.pattern,
        max_results=args.max_results,
        max_depth=args.depth,
        kind_filter=args.type,
    )


def cmd_list(args):
    """List a data link once."""
    async def run():
        async with PlatformClient(_platform_config(args)) as client:
            return await ListingService(client).list(_listing_config(args))

    try:
        result = asyncio.run(run())
    except Exception as exc:
        logger.error(f"Data link list failed: {exc}")
        sys.exit(1)

    for warning in result.warnings:
        logger.warning(warning)

    if args.json:
        print(json.dumps(result.to_payload(), indent=2))
        return

    print(f"\n{len(result)} item(s) in {result.resource_ref} ({result.provider}):")
    for path in result.paths:
        print(f"  {path}")


def _print_outputs(outputs: List[Optional[PollOutput]], as_json: bool) -> None:
    for output in outputs:
        if output is None:
            continue
        if as_json:
            print(json.dumps({"channel": output.kind.value, **output.to_payload()}))
            continue
        print(f"[{output.kind.value}] {len(output.names)} item(s)")
        for path in output.paths:
            print(f"  {path}")


def cmd_poll(args):
    """Poll a data link until interrupted."""
    config = PollConfig(
        listing=_listing_config(args),
        interval_seconds=args.interval,
        delivery_mode=DeliveryMode.CHANGES if args.changes_only else DeliveryMode.ALL_AND_CHANGES,
        once=args.once,
    )

    async def run() -> bool:
        async with PlatformClient(_platform_config(args)) as client:
            poller = PollScheduler(
                config,
                ListingService(client),
                on_output=lambda outputs: _print_outputs(outputs, args.json),
            )
            if not poller.start():
                return False

            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                try:
                    loop.add_signal_handler(sig, poller.stop)
                except NotImplementedError:
                    pass

            logger.info("Press Ctrl+C to stop")
            await poller.wait()
            return poller.last_error is None

    if not asyncio.run(run()):
        sys.exit(1)
    logger.info("Poller stopped")


def cmd_check(args):
    """Check connectivity and token validity."""
    async def run():
        async with PlatformClient(_platform_config(args)) as client:
            return await client.connectivity_check()

    try:
        user = asyncio.run(run())
    except Exception as exc:
        logger.error(f"Connection failed: {exc}")
        sys.exit(1)

    print(f"Connected as {user['userName']} <{user['email']}>")


def _add_connection_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--base-url", default=None, help="API endpoint (or TOWER_API_ENDPOINT env)")
    parser.add_argument("--token", default=None, help="API token (or TOWER_ACCESS_TOKEN env)")
    parser.add_argument("--timeout", type=float, default=30.0, help="HTTP timeout in seconds")


def _add_listing_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("name", help="Data link name")
    parser.add_argument("--path", default="", help="Base path inside the data link")
    parser.add_argument("--search", default="", help="Server-side search prefix")
    parser.add_argument("--pattern", default=None, help="Regular expression applied to item names")
    parser.add_argument("--max-results", type=int, default=100, help="Maximum items (default: 100)")
    parser.add_argument("--depth", type=int, default=0, help="Folder recursion depth (default: 0)")
    parser.add_argument("--type", default="all", choices=["files", "folders", "all"], help="Item kinds to keep")
    parser.add_argument("--workspace-id", default=None, help="Workspace id (or TOWER_WORKSPACE_ID env)")
    parser.add_argument("--json", action="store_true", help="Print JSON payloads")
    _add_connection_args(parser)


def main():
    parser = argparse.ArgumentParser(
        description="Data link listing and polling",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # List command
    list_parser = subparsers.add_parser("list", help="List a data link once")
    _add_listing_args(list_parser)
    list_parser.set_defaults(func=cmd_list)

    # Poll command
    poll_parser = subparsers.add_parser("poll", help="Poll a data link for added and removed items")
    _add_listing_args(poll_parser)
    poll_parser.add_argument("--interval", default="15:00", help="Poll interval: SS, MM:SS, HH:MM:SS or DD-HH:MM:SS")
    poll_parser.add_argument("--changes-only", action="store_true", help="Deliver only the added/removed channels")
    poll_parser.add_argument("--once", action="store_true", help="Stop after the first poll")
    poll_parser.set_defaults(func=cmd_poll)

    # Check command
    check_parser = subparsers.add_parser("check", help="Check API connectivity")
    _add_connection_args(check_parser)
    check_parser.set_defaults(func=cmd_check)

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    else:
        logging.getLogger("httpx").setLevel(logging.WARNING)

    args.func(args)


if __name__ == "__main__":
    main()
