"""CLI entrypoints for social auth operational tasks."""

from __future__ import annotations

import argparse
import asyncio
import json
from collections.abc import Sequence

from app.config import get_settings
from app.main import build_key_resolver
from social_auth.exceptions import KeySourceUnavailableError


async def _run_list_apple_keys() -> int:
    """Fetch Apple's current key set and print the key ids it contains."""
    key_resolver = build_key_resolver(get_settings())
    async with key_resolver:
        try:
            await key_resolver.refresh()
        except KeySourceUnavailableError as exc:
            print(json.dumps({"jwks_uri": key_resolver.jwks_uri, "error": exc.detail}))
            return 1
        print(json.dumps({"jwks_uri": key_resolver.jwks_uri, "key_ids": key_resolver.key_ids()}))
    return 0


def _build_parser() -> argparse.ArgumentParser:
    """Build command-line parser for supported operational commands."""
    parser = argparse.ArgumentParser(prog="python -m app.cli")
    subcommands = parser.add_subparsers(dest="command", required=True)
    subcommands.add_parser("list-apple-keys", help="Print key ids from Apple's JWKS endpoint.")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run CLI command."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command == "list-apple-keys":
        return asyncio.run(_run_list_apple_keys())
    parser.error("Unsupported command")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
