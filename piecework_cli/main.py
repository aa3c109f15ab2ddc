"""Command line surface for inspecting and exercising a piecework host."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Sequence

from piecework_core.config import ConfigError, HostConfig
from piecework_core.host import Host
from piecework_core.messages import Author, Message
from piecework_core.pieces import PieceError, PieceKind

CLI_VERSION = "0.1.0"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="piecework",
        description="Load, inspect and exercise piecework pieces.",
    )
    parser.add_argument("--version", action="version", version=f"piecework v{CLI_VERSION}")
    parser.add_argument("--config", help="path to piecework.toml (defaults to the user config dir)")
    parser.add_argument("-v", "--verbose", action="store_true", help="log at DEBUG level")
    subparsers = parser.add_subparsers(dest="command")
    subparsers.required = False

    status_cmd = subparsers.add_parser("status", help="show the host state after startup")
    status_cmd.add_argument("--json", action="store_true", help="emit JSON")
    status_cmd.set_defaults(func=_handle_status)

    list_cmd = subparsers.add_parser("list", help="list loaded pieces")
    list_cmd.add_argument(
        "--kind",
        choices=[kind.value for kind in PieceKind],
        help="only list pieces of this kind",
    )
    list_cmd.set_defaults(func=_handle_list)

    dispatch_cmd = subparsers.add_parser("dispatch", help="send one message through the monitors")
    dispatch_cmd.add_argument("content", help="message text")
    dispatch_cmd.add_argument("--author", default="user", help="author id")
    dispatch_cmd.add_argument("--bot", action="store_true", help="mark the author as a bot")
    dispatch_cmd.add_argument("--channel", help="channel the message arrives on")
    dispatch_cmd.set_defaults(func=_handle_dispatch)

    reload_cmd = subparsers.add_parser("reload", help="reload one piece and report the result")
    reload_cmd.add_argument("kind", choices=[kind.value for kind in PieceKind])
    reload_cmd.add_argument("name")
    reload_cmd.set_defaults(func=_handle_reload)

    return parser


async def _started_host(config: HostConfig) -> Host:
    host = Host(config)
    reports = await host.start()
    for report in reports.values():
        for locator, error in report.failed.items():
            print(f"warning: {report.kind.value} {locator} failed to load: {error}", file=sys.stderr)
    return host


async def _handle_status(args: argparse.Namespace, config: HostConfig) -> int:
    host = await _started_host(config)
    status = host.status()
    if args.json:
        print(json.dumps(status, indent=2))
        return 0
    print(f"user id: {status['user_id']}")
    print(f"config: {status['config']}")
    for kind in PieceKind:
        pieces = status[f"{kind.value}s"]
        enabled = sum(1 for value in pieces.values() if value)
        print(f"{kind.value}s: {len(pieces)} loaded, {enabled} enabled")
    return 0


async def _handle_list(args: argparse.Namespace, config: HostConfig) -> int:
    host = await _started_host(config)
    kinds = [PieceKind(args.kind)] if args.kind else list(PieceKind)
    for kind in kinds:
        for piece in host.store_for(kind).values():
            flag = "enabled" if piece.enabled else "disabled"
            print(f"{kind.value}:{piece.name:<24} {flag:<8} {piece.directory}/{piece.file}")
    return 0


async def _handle_dispatch(args: argparse.Namespace, config: HostConfig) -> int:
    host = await _started_host(config)
    message = Message(
        content=args.content,
        author=Author(id=args.author, bot=args.bot),
        channel=args.channel,
    )
    report = await host.dispatch(message)
    for name in report.ran:
        print(f"ran      {name}")
    for name, reason in report.skipped.items():
        print(f"skipped  {name} ({reason})")
    for name, error in report.errors.items():
        print(f"error    {name}: {error}")
    return 1 if report.errors else 0


async def _handle_reload(args: argparse.Namespace, config: HostConfig) -> int:
    host = await _started_host(config)
    piece = host.store_for(args.kind).get(args.name)
    if piece is None:
        print(f"{args.kind}:{args.name} is not loaded")
        return 1
    try:
        fresh = await piece.reload()
    except PieceError as exc:
        print(f"reload failed: {exc}")
        return 1
    print(f"reloaded {fresh.kind.value}:{fresh.name} from {fresh.directory}/{fresh.file}")
    return 0


def _configure_logging(args: argparse.Namespace, config: HostConfig) -> None:
    level = logging.DEBUG if args.verbose else logging.getLevelName(config.log_level)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def main(argv: Sequence[str] | None = None) -> int:
    """Resolve and run a piecework subcommand."""

    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    if not hasattr(args, "func"):
        parser.print_help()
        return 0

    try:
        config = HostConfig.load(args.config)
    except ConfigError as exc:
        print(f"configuration error: {exc}", file=sys.stderr)
        return 2

    _configure_logging(args, config)
    return asyncio.run(args.func(args, config))
