"""
ccswitch - Command Line Interface

    ccswitch add NAME URL [-k KEY] [-m MODEL] [-p PRIORITY] [--disabled]
    ccswitch list
    ccswitch remove NAME
    ccswitch set NAME [--url URL] [-k KEY] [-m MODEL] [-p PRIORITY] [--enable|--disable] [--timeout S]
    ccswitch test [NAME ...]
    ccswitch request PROMPT [-m MODEL] [--max-tokens N] [-t TEMP] [--no-probe] [--json]

Exit status is 0 on success and 1 on any routing, config or registry error.
"""

import argparse
import asyncio
import json
import os
import sys
from typing import List, Optional

from . import __version__
from .config import Config, ConfigStore
from .core.errors import CCSwitchError
from .core.http_client import ChannelHttpClient
from .core.models import Channel, RequestSpec
from .observability.logging import configure_from_env, get_logger, setup_logging
from .observability.tracing import setup_tracing
from .routing.health import HealthStatus
from .routing.router import Router


logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ccswitch",
        description="Automatic switching between multiple model API channels",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", default=None, help="path to config.json")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR")

    sub = parser.add_subparsers(dest="command", metavar="COMMAND")
    sub.required = True

    add = sub.add_parser("add", help="add a new channel")
    add.add_argument("name", help="channel name")
    add.add_argument("url", help="API endpoint URL")
    add.add_argument("-k", "--key", default=None, help="API key")
    add.add_argument("-m", "--model", default=None, help="model served by this channel")
    add.add_argument("-p", "--priority", type=int, default=0, help="lower is tried first")
    add.add_argument("--disabled", action="store_true", help="add the channel disabled")

    sub.add_parser("list", help="list all configured channels")

    remove = sub.add_parser("remove", help="remove a channel")
    remove.add_argument("name", help="channel name to remove")

    update = sub.add_parser("set", help="update fields of a channel")
    update.add_argument("name", help="channel name")
    update.add_argument("--url", default=None)
    update.add_argument("-k", "--key", default=None)
    update.add_argument("-m", "--model", default=None)
    update.add_argument("-p", "--priority", type=int, default=None)
    update.add_argument("--timeout", type=float, default=None, help="per-channel timeout in seconds")
    toggle = update.add_mutually_exclusive_group()
    toggle.add_argument("--enable", dest="enabled", action="store_const", const=True, default=None)
    toggle.add_argument("--disable", dest="enabled", action="store_const", const=False)

    test = sub.add_parser("test", help="test channel availability")
    test.add_argument("names", nargs="*", metavar="NAME", help="channels to test (default: all)")

    request = sub.add_parser("request", help="make a request with automatic channel switching")
    request.add_argument("prompt", help="the prompt to send")
    request.add_argument("-m", "--model", default=None, help="preferred model name")
    request.add_argument("--max-tokens", type=int, default=None)
    request.add_argument("-t", "--temperature", type=float, default=None, help="0.0-2.0")
    request.add_argument("--no-probe", action="store_true", help="skip the health probe before each request")
    request.add_argument("--json", action="store_true", help="print the full result as JSON")

    return parser


def _configure_logging(level: Optional[str]):
    if level:
        json_output = os.getenv("LOG_FORMAT", "json").lower() == "json"
        setup_logging(level=level, json_output=json_output)
    else:
        configure_from_env()


def _print_error(message: str):
    print(f"❌ {message}", file=sys.stderr)


def format_status(status: HealthStatus) -> str:
    icon = "✓" if status.healthy else "❌"
    message = f"{icon} {status.channel_name} - {'Available' if status.healthy else 'Unavailable'}"
    if status.latency_ms is not None:
        message += f" ({status.latency_ms}ms)"
    if status.detail:
        message += f" - {status.detail}"
    return f"  {message}"


def format_channel(channel: Channel) -> str:
    state = "enabled" if channel.enabled else "disabled"
    return (
        f"  {channel.name} [{state}] - {channel.url} "
        f"(model: {channel.model or 'any'}, priority: {channel.priority})"
    )


# ============================================================
# Commands
# ============================================================

def cmd_add(store: ConfigStore, args) -> int:
    channel = Channel(
        name=args.name,
        url=args.url,
        api_key=args.key,
        model=args.model,
        enabled=not args.disabled,
        priority=args.priority,
    )
    store.add_channel(channel)
    print(f"✓ Channel '{args.name}' added successfully")
    return 0


def cmd_list(store: ConfigStore, args) -> int:
    channels = store.load().registry().all()
    if not channels:
        print("No channels configured")
        return 0

    print("Configured channels:")
    for channel in channels:
        print(format_channel(channel))
    return 0


def cmd_remove(store: ConfigStore, args) -> int:
    store.remove_channel(args.name)
    print(f"✓ Channel '{args.name}' removed successfully")
    return 0


def cmd_set(store: ConfigStore, args) -> int:
    changes = {
        "url": args.url,
        "api_key": args.key,
        "model": args.model,
        "priority": args.priority,
        "enabled": args.enabled,
        "timeout_seconds": args.timeout,
    }
    changes = {key: value for key, value in changes.items() if value is not None}
    if not changes:
        _print_error("Nothing to update")
        return 1

    store.update_channel(args.name, **changes)
    print(f"✓ Channel '{args.name}' updated successfully")
    return 0


async def _test(config: Config, names: List[str]) -> List[HealthStatus]:
    async with Router(config.registry(), config.settings(), http_client=ChannelHttpClient()) as router:
        return await router.test_channels(names or None)


def cmd_test(store: ConfigStore, args) -> int:
    config = store.load()
    if not config.channels and not args.names:
        print("No channels configured")
        return 0

    if len(args.names) == 1:
        print(f"Testing channel: {args.names[0]}")
    elif args.names:
        print("Testing channels:")
    else:
        print("Testing all channels:")

    statuses = asyncio.run(_test(config, args.names))
    for status in statuses:
        print(format_status(status))
    return 0 if all(status.healthy for status in statuses) else 1


async def _request(config: Config, request: RequestSpec, probe: bool):
    settings = config.settings(probe_before_request=config.probe_before_request and probe)
    async with Router(config.registry(), settings, http_client=ChannelHttpClient()) as router:
        return await router.route(request)


def cmd_request(store: ConfigStore, args) -> int:
    config = store.load()

    params = {"model": args.model}
    if args.max_tokens is not None:
        params["max_tokens"] = args.max_tokens
    if args.temperature is not None:
        params["temperature"] = args.temperature
    request = RequestSpec.from_prompt(args.prompt, **params)

    result = asyncio.run(_request(config, request, probe=not args.no_probe))

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return 0 if result.success else 1

    if not result.success:
        _print_error(f"Request failed: {result.to_error()}")
        return 1

    response = result.response
    print(f"✓ Response from {result.channel_used} (model: {response.model}):")
    print(response.content)
    if response.usage:
        print(f"\nUsage: {json.dumps(response.usage)}")
    return 0


COMMANDS = {
    "add": cmd_add,
    "list": cmd_list,
    "remove": cmd_remove,
    "set": cmd_set,
    "test": cmd_test,
    "request": cmd_request,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args.log_level)
    setup_tracing()

    store = ConfigStore(args.config)
    logger.debug(f"Running command: {args.command}", config_path=str(store.path))

    try:
        return COMMANDS[args.command](store, args)
    except CCSwitchError as e:
        _print_error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
