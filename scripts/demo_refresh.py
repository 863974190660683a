#!/usr/bin/env python3
"""
Demonstrate refresh-ahead loading against a slow backend.

Builds a cache from loadcache.yaml (or built-in demo settings when the file
is absent), then reads one key in a loop so the log shows a blocking first
load, fresh hits, and stale hits served while a background refresh runs.

Usage: LOG_LEVEL=debug python scripts/demo_refresh.py
"""

import logging
import os
import sys
import time
from pathlib import Path

# Add project root to path
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root))

from loadcache.builder import CacheBuilder
from loadcache.config import load_config

logger = logging.getLogger("demo")


def slow_backend(key: str) -> str:
    """Pretend to fetch something expensive."""
    time.sleep(0.5)
    return f"{key}@{time.strftime('%H:%M:%S')}"


def make_builder() -> CacheBuilder:
    try:
        return CacheBuilder.from_config(load_config())
    except FileNotFoundError:
        logger.info("No config file, using demo settings")
        return (
            CacheBuilder.new_builder()
            .initial_capacity(8)
            .refresh_after_write(1000)
            .auto_refresh()
        )


def main():
    log_level = os.environ.get("LOG_LEVEL", "info").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    with make_builder().build(slow_backend) as cache:
        for _ in range(12):
            started = time.perf_counter()
            value = cache.get("greeting")
            took_ms = (time.perf_counter() - started) * 1000
            logger.info("get -> %s (%.0fms)", value, took_ms)
            time.sleep(0.3)
        logger.info("Stats: %s", cache.stats().model_dump())


if __name__ == "__main__":
    main()
