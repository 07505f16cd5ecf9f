#!/usr/bin/env python3
"""
mcclient Command Line Entry Point

Usage:
    mcclient set mykey myvalue               # Store a string
    mcclient set counter 5 --type int        # Store an integer
    mcclient set user '{"id": 1}' --type json --exptime 60
    mcclient get mykey                       # Print the value
    mcclient get mykey --metadata            # Print flags, length, cas, frames
    mcclient delete mykey
    mcclient demo                            # set, get and delete a random key
    mcclient --host 10.0.0.5 --port 11212 get mykey

Exit status:
    0  success
    1  expected negative outcome (miss, not stored, not found)
    2  client error (connection, protocol, serialization, ...)

Environment Variables:
    MCCLIENT_HOST       - Daemon host
    MCCLIENT_PORT       - Daemon port
    MCCLIENT_TIMEOUT    - Connect timeout in seconds
    MCCLIENT_DEBUG      - Enable debug logging (true/false)
    MCCLIENT_LOG_LEVEL  - Log level when not debugging
"""

import argparse
import json
import logging
import secrets
import sys
from typing import Any, List, Optional

from .client import MemcachedClient
from .config.settings import settings
from .errors import MemcachedError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_NEGATIVE = 1
EXIT_ERROR = 2

_CONVERTERS = {
    "str": str,
    "int": int,
    "float": float,
    "bool": lambda raw: raw.lower() in ("1", "true", "yes", "on"),
    "json": json.loads,
}


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="mcclient",
        description="Memcached text protocol client (set, get, delete)",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument("--host", type=str, default=settings.HOST, help="Daemon host")
    parser.add_argument("--port", type=int, default=settings.PORT, help="Daemon port")
    parser.add_argument(
        "--timeout",
        type=float,
        default=settings.TIMEOUT,
        help="Connect timeout in seconds",
    )
    parser.add_argument(
        "--compression",
        action="store_true",
        help="Compress large payloads with zlib",
    )
    parser.add_argument("--debug", action="store_true", default=settings.DEBUG, help="Enable debug logging")

    commands = parser.add_subparsers(dest="command", required=True)

    set_parser = commands.add_parser("set", help="Store a value")
    set_parser.add_argument("key")
    set_parser.add_argument("value")
    set_parser.add_argument("--exptime", type=int, default=0, help="Expiration (0 = never)")
    set_parser.add_argument(
        "--type",
        choices=sorted(_CONVERTERS),
        default="str",
        help="How to interpret VALUE before storing it",
    )

    get_parser = commands.add_parser("get", help="Retrieve a value")
    get_parser.add_argument("key")
    get_parser.add_argument("--metadata", action="store_true", help="Show flags, length, cas and frames")

    delete_parser = commands.add_parser("delete", help="Delete a key")
    delete_parser.add_argument("key")

    commands.add_parser("demo", help="Set, get and delete a random key")

    return parser.parse_args(argv)


def setup_logging(debug: bool = False) -> None:
    """Configure logging based on debug flag."""
    level = logging.DEBUG if debug else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stderr),
        ]
    )


def _convert(raw: str, kind: str) -> Any:
    try:
        return _CONVERTERS[kind](raw)
    except ValueError as exc:
        raise SystemExit(f"mcclient: cannot read {raw!r} as {kind}: {exc}")


def run_demo(client: MemcachedClient) -> int:
    """Round-trip a random key, printing each step."""
    key = f"mcclient:demo:{secrets.token_hex(8)}"

    print(f"set {key} 5 -> {client.set(key, 5)}")
    value = client.get(key)
    print(f"get {key} -> {value!r} ({type(value).__name__})")
    print(f"delete {key} -> {client.delete(key)}")
    print(f"get {key} after delete -> {client.get(key)!r} ({client.last_response.name})")

    return EXIT_OK if value == 5 else EXIT_NEGATIVE


def run(args: argparse.Namespace, client: MemcachedClient) -> int:
    """Execute the selected sub-command and return the exit status."""
    if args.command == "set":
        stored = client.set(args.key, _convert(args.value, args.type), args.exptime)
        print("STORED" if stored else client.last_response.name)
        return EXIT_OK if stored else EXIT_NEGATIVE

    if args.command == "get":
        result = client.fetch(args.key)
        if not result.ok:
            print(result.code.name)
            return EXIT_NEGATIVE
        for item in result.value.values():
            if args.metadata:
                print(
                    f"{item.key}: value={item.value!r} flags={item.flags} "
                    f"length={item.length} cas={item.cas} frames={item.frames}"
                )
            elif isinstance(item.value, str):
                print(item.value)
            else:
                print(repr(item.value))
        return EXIT_OK

    if args.command == "delete":
        deleted = client.delete(args.key)
        print("DELETED" if deleted else client.last_response.name)
        return EXIT_OK if deleted else EXIT_NEGATIVE

    return run_demo(client)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the client."""
    args = parse_args(argv)
    setup_logging(debug=args.debug)

    logger.debug(f"Connecting to {args.host}:{args.port} (timeout={args.timeout})")

    try:
        with MemcachedClient(
                host=args.host,
                port=args.port,
                timeout=args.timeout,
                compression=args.compression,
        ) as client:
            return run(args, client)
    except MemcachedError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"mcclient: {e}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
