"""
Load Test Module - Black Box Interface

Purpose: Discover a Postgres target and launch pgbench against it
Interface: LoadTestDriver.run(), parse_args(), resolve_target(), scrape_viewer(), lookup_pgpass()
Hidden: viewer scraping patterns, .pgpass parsing, process replacement

Benchmark execution itself is delegated entirely to pgbench.
"""

from .discovery import (
    ScrapedDefaults,
    fetch_viewer,
    lookup_pgpass,
    scrape_viewer,
    split_pgpass_line,
)
from .driver import (
    PGBENCH,
    LoadTestArgs,
    LoadTestDriver,
    LoadTestTarget,
    build_pgbench_command,
    build_pgbench_env,
    parse_args,
    resolve_target,
)

__all__ = [
    "PGBENCH",
    "LoadTestArgs",
    "LoadTestDriver",
    "LoadTestTarget",
    "ScrapedDefaults",
    "build_pgbench_command",
    "build_pgbench_env",
    "fetch_viewer",
    "lookup_pgpass",
    "parse_args",
    "resolve_target",
    "scrape_viewer",
    "split_pgpass_line",
]
