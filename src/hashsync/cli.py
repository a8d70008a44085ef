"""hashsync CLI: inspect hash entries and run bounded counter steps."""

import argparse
import importlib
import json
import logging
import sys
from importlib.metadata import version as get_version, PackageNotFoundError
from typing import Optional

from pydantic import ValidationError

from hashsync.codes import ErrorCode
from hashsync.config import LOG_LEVELS, get_settings
from hashsync.errors import HashSyncError, InvalidArgumentError
from hashsync.gateway.redis_gateway import RedisGateway
from hashsync.synchronizer import BoundedHashSynchronizer

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_SATURATED = 2


def load_record_type(spec: str) -> type:
    """Import a record type from a 'package.module:ClassName' reference."""
    module_name, sep, attr = spec.partition(":")
    if not sep or not module_name or not attr:
        raise InvalidArgumentError(f"--record must look like 'module:ClassName', got {spec!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise InvalidArgumentError(f"Cannot import module '{module_name}': {exc}") from exc
    record_type = getattr(module, attr, None)
    if not isinstance(record_type, type):
        raise InvalidArgumentError(f"'{attr}' in '{module_name}' is not a class")
    return record_type


def make_gateway(redis_url: Optional[str] = None) -> RedisGateway:
    """Build the gateway the CLI talks to (patched in tests)."""
    settings = get_settings()
    if redis_url:
        settings = settings.model_copy(update={"redis_url": redis_url})
    return RedisGateway.from_settings(settings)


def build_parser() -> argparse.ArgumentParser:
    try:
        hashsync_version = get_version("hashsync")
    except PackageNotFoundError:
        hashsync_version = "dev"

    parser = argparse.ArgumentParser(
        prog="hashsync",
        description="hashsync: record <-> hash sync with bounded counters"
    )
    parser.add_argument("--version", action="version", version=f"hashsync {hashsync_version}")
    # Common arguments
    parent_parser = argparse.ArgumentParser(add_help=False)
    parent_parser.add_argument(
        "--redis-url",
        default=None,
        help="Redis URL (defaults to HASHSYNC_REDIS_URL)"
    )
    parent_parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (defaults to HASHSYNC_LOG_LEVEL)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    show_parser = subparsers.add_parser("show", help="Print a hash entry as JSON", parents=[parent_parser])
    show_parser.add_argument("key")

    for name, bound_flag, help_text in (
        ("incr", "--max", "Bounded increment of a hash field"),
        ("decr", "--min", "Bounded decrement of a hash field"),
    ):
        step_parser = subparsers.add_parser(name, help=help_text, parents=[parent_parser])
        step_parser.add_argument("key")
        step_parser.add_argument("field")
        step_parser.add_argument(
            "--record",
            required=True,
            help="Record type declaring the field, as 'module:ClassName'"
        )
        step_parser.add_argument("--delta", type=int, default=1, help="Positive step (default 1)")
        step_parser.add_argument(bound_flag, dest="bound", type=int, required=True, help="Inclusive bound")
        step_parser.add_argument(
            "--strict",
            action="store_true",
            default=None,
            help="Run the step as one server-side atomic script"
        )

    ttl_parser = subparsers.add_parser("ttl", help="Print seconds left to live", parents=[parent_parser])
    ttl_parser.add_argument("key")

    expire_parser = subparsers.add_parser("expire", help="Set a key's time to live", parents=[parent_parser])
    expire_parser.add_argument("key")
    expire_parser.add_argument("seconds", type=int)

    delete_parser = subparsers.add_parser("delete", help="Delete keys", parents=[parent_parser])
    delete_parser.add_argument("keys", nargs="+")

    return parser


def _run(args) -> int:
    gateway = make_gateway(args.redis_url)

    if args.command == "show":
        print(json.dumps(gateway.hash_get_all(args.key), indent=2, sort_keys=True))
        return EXIT_OK

    if args.command in ("incr", "decr"):
        record_type = load_record_type(args.record)
        strict = get_settings().strict_bounds if args.strict is None else args.strict
        sync = BoundedHashSynchronizer(gateway, strict=strict)
        step = sync.try_increment if args.command == "incr" else sync.try_decrement
        outcome = step(record_type, args.key, args.field, args.delta, args.bound)
        if outcome.refused:
            print("SATURATED")
            return EXIT_SATURATED
        print(outcome.value)
        return EXIT_OK

    if args.command == "ttl":
        print(gateway.ttl(args.key))
        return EXIT_OK

    if args.command == "expire":
        print(gateway.expire(args.key, args.seconds))
        return EXIT_OK

    if args.command == "delete":
        print(gateway.delete(*args.keys))
        return EXIT_OK

    raise InvalidArgumentError(f"Unknown command {args.command!r}")


def main():
    """Main CLI entry point for hashsync commands."""
    parser = build_parser()
    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(EXIT_ERROR)

    if args.log_level and args.log_level.upper() not in LOG_LEVELS:
        print(
            f"Error [{ErrorCode.INVALID_ARGUMENT.value}]: --log-level must be one of {', '.join(LOG_LEVELS)}",
            file=sys.stderr,
        )
        sys.exit(EXIT_ERROR)

    try:
        settings = get_settings()
    except ValidationError as exc:
        print(f"Error [{ErrorCode.INVALID_ARGUMENT.value}]: invalid HASHSYNC_* settings: {exc}", file=sys.stderr)
        sys.exit(EXIT_ERROR)

    logging.basicConfig(
        level=(args.log_level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        code = _run(args)
    except HashSyncError as exc:
        print(f"Error [{exc.code.value}]: {exc}", file=sys.stderr)
        sys.exit(EXIT_ERROR)
    if code != EXIT_OK:
        sys.exit(code)


if __name__ == "__main__":
    main()
