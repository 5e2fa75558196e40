#!/usr/bin/env python3
"""Increment a counter held in a Redis-backed object and show what is stored.

Each run hydrates the object from Redis, bumps a counter a few times in
quick succession and prints the stored document after the debounce
interval, so you can see that only the final state is written.

Usage
-----
Point at a Redis server and run::

    export RBO_REDIS_URL="redis://localhost:6379/0"
    python scripts/watch_counter.py --key demo:counter

Options::

    --key KEY            Store key (default: RBO_KEY or "rbo:demo")
    --bumps N            Mutations to perform (default: 5)
    --interval SECONDS   Debounce interval (default: RBO_SAVE_INTERVAL or 1.0)
    --reset              Reset to the default instead of bumping
    --verbose, -v        Enable debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyrbo import MutationEvent, RboConfig, RedisBackedObject, RedisStore  # noqa: E402

_DEFAULT: dict[str, Any] = {"count": 0, "history": []}


def _print_event(event: MutationEvent) -> None:
    path = ".".join(event.path) or "<root>"
    print(f"  {event.kind:<6} {path}")


async def main() -> None:
    parser = argparse.ArgumentParser(description="Bump a Redis-backed counter")
    parser.add_argument("--key", default=os.environ.get("RBO_KEY", "rbo:demo"), help="Store key")
    parser.add_argument("--bumps", type=int, default=5, help="Mutations to perform")
    parser.add_argument("--interval", type=float, default=None, help="Debounce interval in seconds")
    parser.add_argument("--reset", action="store_true", help="Reset to the default value")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    overrides: dict[str, Any] = {"key": args.key}
    if args.interval is not None:
        overrides["save_interval"] = args.interval
    config = RboConfig.from_env(**overrides)
    store = RedisStore.from_url(config.redis_url)

    try:
        async with RedisBackedObject.from_config(config, _DEFAULT, store=store) as state:
            print(f"Hydrated {config.key}: {state.snapshot()}")
            state.on("*", _print_event)

            if args.reset:
                await state.reset()
            else:
                for _ in range(args.bumps):
                    state.root["count"] += 1
                    state.root["history"].append(state.root["count"])
                await asyncio.sleep(config.save_interval + 0.2)

            stored = await store.get(config.key)
            print(f"Stored {config.key}: {stored}")
    finally:
        await store.close()


if __name__ == "__main__":
    asyncio.run(main())
