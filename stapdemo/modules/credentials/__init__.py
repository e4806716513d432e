"""
Credentials Module - Black Box Interface

Purpose: Recover database credentials from a live Postgres deployment
Interface: read_credentials(), extract_credentials(), DatabaseCredentials
Hidden: env list layout, lookup strategy order
"""

from .credentials import (
    LOOKUP_STRATEGIES,
    REQUIRED_KEYS,
    DatabaseCredentials,
    all_containers_env,
    extract_credentials,
    first_container_env,
    read_credentials,
    resolve_values,
)

__all__ = [
    "LOOKUP_STRATEGIES",
    "REQUIRED_KEYS",
    "DatabaseCredentials",
    "all_containers_env",
    "extract_credentials",
    "first_container_env",
    "read_credentials",
    "resolve_values",
]
