#!/usr/bin/env python3
"""
Fetch the current payment signing keys and print them as JSON.

Handy for checking what the production or test key endpoint currently
publishes, or for saving a key document snapshot for offline use.
"""

import argparse
import asyncio
import json
from pathlib import Path
from typing import List, Optional
import sys

from payment_keys import PaymentKeyProvider
from shared.config import KeyProviderConfig
from shared.errors import PaymentKeysError
from shared.logging import configure_logging


async def prefetch(config: KeyProviderConfig, protocol_versions: List[str]) -> dict:
    """Prefetch keys and return a summary per protocol version."""
    async with PaymentKeyProvider.from_config(config) as provider:
        await provider.prefetch_keys()
        keys = {version: await provider.get_public_keys(version) for version in protocol_versions}
        window = provider.cache.freshness_window

    return {
        "url": config.resolved_key_url,
        "freshness_seconds": int(window.duration.total_seconds()),
        "freshness_source": window.source.value,
        "keys": keys,
    }


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fetch payment signing keys and print them as JSON.")
    parser.add_argument("--environment", choices=("production", "test"), default=None, help="Key endpoint environment")
    parser.add_argument("--url", default=None, help="Explicit key document URL (overrides --environment)")
    parser.add_argument("--protocol-version", action="append", dest="protocol_versions", default=None, help="Protocol version to print (repeatable, default ECv1 and ECv2)")
    parser.add_argument("--log-level", default=None, help="Log level (default from PAYMENT_KEYS_LOG_LEVEL)")
    parser.add_argument("--output", type=Path, default=None, help="Optional path to write the JSON summary")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)

    overrides = {}
    if args.environment:
        overrides["environment"] = args.environment
    if args.url:
        overrides["key_url"] = args.url
    if args.log_level:
        overrides["log_level"] = args.log_level
    config = KeyProviderConfig(**overrides)
    configure_logging("payment_keys", config.log_level, stream=sys.stderr)

    try:
        summary = asyncio.run(prefetch(config, args.protocol_versions or ["ECv1", "ECv2"]))
    except KeyboardInterrupt:
        return 130
    except PaymentKeysError as exc:
        print(f"[payment-keys] failed: {exc.to_report().model_dump_json()}", file=sys.stderr)
        return 1

    print(json.dumps(summary, indent=2))

    if args.output:
        args.output.write_text(json.dumps(summary, indent=2))

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
