import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Sequence

import click

from ...config import TARGET_PORT
from ...console import Reporter
from ...exceptions import PreconditionError, StapDemoError
from .discovery import (
    DISCOVERY_EXIT_CODE,
    ScrapedDefaults,
    default_pgpass_path,
    fetch_viewer,
    lookup_pgpass,
    scrape_viewer,
)

logger = logging.getLogger(__name__)

PGBENCH = "pgbench"
PGBENCH_INSTALL_HINT = """pgbench not installed.
  - macOS:   brew install libpq && brew link --force libpq
  - Debian:  apt-get update && apt-get install -y postgresql-client
  - Docker:  docker run --rm -it postgres:16 pgbench --version"""

USAGE = """Usage:
  stapdemo loadtest [pgbench options] [--viewer URL] [--dsn DSN]

Connection discovery order:
  1) --dsn "postgres://..."
  2) PG* envs (PGHOST/PGPORT/PGUSER/PGPASSWORD/PGDATABASE)
  3) --viewer URL: scrape Host/Port and default User/Database
     - prompts for PGUSER and PGDATABASE (defaults shown if scraped)
     - PGPASSWORD comes from $PGPASSWORD or ~/.pgpass

Common pgbench flags (any are passed through):
  -c/--clients N   -j/--threads N
  -T/--duration S  -t/--transactions N
  -S (select-only) -f FILE (custom SQL)  -M prepared|simple

Examples:
  stapdemo loadtest --viewer "http://<route>/" -T 60 -c 40 -j 4
  stapdemo loadtest --dsn "postgres://u:pw@host:8888/db" -T 30 -c 50"""

Prompt = Callable[[str, str], str]


@dataclass
class LoadTestArgs:
    """Our own flags, with everything else passed through to pgbench."""
    viewer_url: Optional[str] = None
    dsn: Optional[str] = None
    show_help: bool = False
    pgbench_options: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class LoadTestTarget:
    host: Optional[str] = None
    port: Optional[str] = None
    user: Optional[str] = None
    database: Optional[str] = None
    dsn: Optional[str] = None
    password: Optional[str] = None
    password_source: Optional[str] = None

    def __repr__(self) -> str:
        secret = "<set>" if self.password else None
        return (
            f"LoadTestTarget(host={self.host!r}, port={self.port!r}, user={self.user!r}, "
            f"database={self.database!r}, dsn={'<set>' if self.dsn else None!r}, password={secret!r})"
        )


def parse_args(argv: Sequence[str]) -> LoadTestArgs:
    """
    Extract --viewer, --dsn and -h/--help; keep all other args for pgbench.

    Raises:
        StapDemoError: a meta flag is missing its value
    """
    parsed = LoadTestArgs()
    args = list(argv)
    i = 0
    while i < len(args):
        arg = args[i]
        if arg in ("--viewer", "--dsn"):
            if i + 1 >= len(args):
                raise StapDemoError(f"{arg} requires a value", exit_code=DISCOVERY_EXIT_CODE)
            if arg == "--viewer":
                parsed.viewer_url = args[i + 1]
            else:
                parsed.dsn = args[i + 1]
            i += 2
            continue
        if arg.startswith("--viewer="):
            parsed.viewer_url = arg.split("=", 1)[1]
        elif arg.startswith("--dsn="):
            parsed.dsn = arg.split("=", 1)[1]
        elif arg in ("-h", "--help"):
            parsed.show_help = True
        else:
            parsed.pgbench_options.append(arg)
        i += 1
    return parsed


def click_prompt(label: str, default: str) -> str:
    return click.prompt(label, default=default, show_default=True)


def resolve_target(
    args: LoadTestArgs,
    environ: Mapping[str, str],
    prompt: Prompt = click_prompt,
    fetch: Callable[[str], str] = fetch_viewer,
    pgpass_path: Optional[Path] = None,
) -> LoadTestTarget:
    """
    Resolve where pgbench should connect.

    Priority:
    1. --dsn overrides everything (no prompts, no scraping)
    2. PG* environment values
    3. values scraped from the viewer page fill unset host/port and provide
       the defaults when user/database must be prompted for

    The password comes from PGPASSWORD, else .pgpass, else nothing (pgbench
    may then prompt by itself).

    Raises:
        StapDemoError: exit code 2 when user, database or host stay empty
    """
    if args.dsn:
        return LoadTestTarget(dsn=args.dsn)

    host = environ.get("PGHOST") or None
    port = environ.get("PGPORT") or None
    scraped = ScrapedDefaults()
    if args.viewer_url:
        scraped = scrape_viewer(fetch(args.viewer_url))
        logger.debug(f"Scraped from viewer: host={scraped.host} port={scraped.port}")
        host = host or scraped.host
        port = port or scraped.port
    port = port or str(TARGET_PORT)

    user = environ.get("PGUSER") or (prompt("PGUSER", scraped.user or "") or "").strip()
    if not user:
        raise StapDemoError("PGUSER is required.", exit_code=DISCOVERY_EXIT_CODE)

    database = environ.get("PGDATABASE") or (prompt("PGDATABASE", scraped.database or "") or "").strip()
    if not database:
        raise StapDemoError("PGDATABASE is required.", exit_code=DISCOVERY_EXIT_CODE)

    if not host:
        raise StapDemoError("PGHOST not set", exit_code=DISCOVERY_EXIT_CODE)

    password = environ.get("PGPASSWORD") or None
    source = "env" if password else None
    if password is None:
        path = pgpass_path or Path(environ.get("PGPASSFILE") or default_pgpass_path())
        password = lookup_pgpass(path, host, port, database, user)
        if password:
            source = str(path)

    return LoadTestTarget(
        host=host,
        port=port,
        user=user,
        database=database,
        password=password,
        password_source=source,
    )


def build_pgbench_command(target: LoadTestTarget, options: Sequence[str]) -> List[str]:
    if target.dsn:
        return [PGBENCH, "-d", target.dsn] + list(options)
    return [
        PGBENCH,
        "-h", target.host or "",
        "-p", str(target.port),
        "-U", target.user or "",
        "-d", target.database or "",
    ] + list(options)


def build_pgbench_env(target: LoadTestTarget, environ: Mapping[str, str]) -> Dict[str, str]:
    env = dict(environ)
    if target.password:
        env["PGPASSWORD"] = target.password
    return env


class LoadTestDriver:
    """Resolves a connection target and hands the process over to pgbench."""

    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        reporter: Optional[Reporter] = None,
        prompt: Prompt = click_prompt,
        fetch: Callable[[str], str] = fetch_viewer,
        execvpe: Callable[[str, List[str], Dict[str, str]], None] = os.execvpe,
    ):
        self.environ = dict(os.environ if environ is None else environ)
        self.reporter = reporter or Reporter()
        self.prompt = prompt
        self.fetch = fetch
        self._execvpe = execvpe

    def check_pgbench(self) -> None:
        if shutil.which(PGBENCH) is None:
            raise PreconditionError(PGBENCH_INSTALL_HINT, exit_code=127)

    def run(self, argv: Sequence[str]) -> None:
        """
        Resolve the target and exec pgbench.

        The resolved password is never printed; only where it came from.
        """
        args = parse_args(argv)
        if args.show_help:
            self.reporter.raw(USAGE)
            return
        self.check_pgbench()
        target = resolve_target(args, self.environ, prompt=self.prompt, fetch=self.fetch)

        command = build_pgbench_command(target, args.pgbench_options)
        if target.dsn:
            self.reporter.step("Target: from --dsn")
        else:
            self.reporter.step(f"Target: {target.user}@{target.host}:{target.port}/{target.database}")
            if target.password_source and target.password_source != "env":
                self.reporter.detail(f"(Using password from {target.password_source})")
            if target.password:
                self.reporter.console.print("=> Password: from env/pgpass")
            else:
                self.reporter.console.print("=> Password: (none)")
                logger.warning("No password resolved; pgbench may prompt or fail to authenticate")

        logger.debug(f"Executing pgbench for {target!r}")
        self._execvpe(PGBENCH, command, build_pgbench_env(target, self.environ))
