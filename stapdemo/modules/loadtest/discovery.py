"""
Connection discovery for the load-test driver.

The viewer page is scraped with fixed patterns against markup this project
renders itself (see templates/index.html); it is not a general HTML parser.
"""

import html
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import httpx

from ...exceptions import StapDemoError

logger = logging.getLogger(__name__)

DISCOVERY_EXIT_CODE = 2


def _field_pattern(label: str, value: str = r"[^<]+") -> "re.Pattern[str]":
    return re.compile(
        rf"<dt[^>]*>{re.escape(label)}</dt><dd[^>]*><code>({value})</code></dd>"
    )


HOST_PATTERN = _field_pattern("Host")
PORT_PATTERN = _field_pattern("Port", r"[0-9]+")
USER_PATTERN = _field_pattern("User")
DATABASE_PATTERN = _field_pattern("Database")


@dataclass(frozen=True)
class ScrapedDefaults:
    host: Optional[str] = None
    port: Optional[str] = None
    user: Optional[str] = None
    database: Optional[str] = None


def _first(pattern: "re.Pattern[str]", page: str) -> Optional[str]:
    match = pattern.search(page)
    return html.unescape(match.group(1)) if match else None


def scrape_viewer(page: str) -> ScrapedDefaults:
    """Extract host, port, user and database from the viewer's rendered page, unescaped."""
    return ScrapedDefaults(
        host=_first(HOST_PATTERN, page),
        port=_first(PORT_PATTERN, page),
        user=_first(USER_PATTERN, page),
        database=_first(DATABASE_PATTERN, page),
    )


def fetch_viewer(url: str, timeout: float = 10.0) -> str:
    """
    Download the viewer page.

    Raises:
        StapDemoError: exit code 2 when the page cannot be fetched
    """
    try:
        response = httpx.get(url, timeout=timeout, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.debug(f"Viewer fetch failed: {e}")
        raise StapDemoError("unable to fetch viewer URL", exit_code=DISCOVERY_EXIT_CODE) from e
    return response.text


# .pgpass handling


def default_pgpass_path() -> Path:
    return Path(os.environ.get("PGPASSFILE") or Path.home() / ".pgpass")


def split_pgpass_line(line: str) -> List[str]:
    """Split a .pgpass line on unescaped colons, honouring \\: and \\\\."""
    fields: List[str] = []
    current: List[str] = []
    chars = iter(line)
    for ch in chars:
        if ch == "\\":
            nxt = next(chars, "")
            current.append(nxt)
        elif ch == ":":
            fields.append("".join(current))
            current = []
        else:
            current.append(ch)
    fields.append("".join(current))
    return fields


def _entries(path: Path) -> List[List[str]]:
    entries = []
    for raw in path.read_text(encoding="utf-8").splitlines():
        if not raw.strip() or raw.lstrip().startswith("#"):
            continue
        fields = split_pgpass_line(raw)
        if len(fields) >= 5:
            # A password may itself contain unescaped colons
            entries.append(fields[:4] + [":".join(fields[4:])])
    return entries


def lookup_pgpass(
    path: Path,
    host: Optional[str],
    port: Optional[str],
    database: str,
    user: str,
) -> Optional[str]:
    """
    Find a password in a .pgpass file.

    An exact match on host:port:database:user is preferred; otherwise the
    first line whose fields each equal the value or are '*' wins.
    Unknown host/port only match a '*' field.
    """
    if not path.is_file():
        return None
    wanted = [host or "*", port or "*", database, user]
    entries = _entries(path)

    for entry in entries:
        if entry[:4] == wanted:
            return entry[4]

    for entry in entries:
        if all(pattern == "*" or pattern == value for pattern, value in zip(entry[:4], wanted)):
            return entry[4]
    return None
