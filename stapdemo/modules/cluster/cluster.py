import json
import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from ...exceptions import CommandError, PreconditionError

logger = logging.getLogger(__name__)

# Slack on top of a command's own --timeout before the subprocess is killed
SUBPROCESS_GRACE_SECONDS = 30


@dataclass
class CommandResult:
    """Outcome of one external command."""
    argv: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def require_tools(*names: str) -> None:
    """
    Fail before any mutation when a required CLI is not on PATH.

    Raises:
        PreconditionError: naming the first missing tool
    """
    for name in names:
        if shutil.which(name) is None:
            raise PreconditionError(f"'{name}' not found")


def require_file(path: Path, description: str = "file") -> None:
    if not Path(path).is_file():
        raise PreconditionError(f"missing {description} {path}")


def require_dir(path: Path, description: str = "dir") -> None:
    if not Path(path).is_dir():
        raise PreconditionError(f"{description} {path} not found")


def _execute(argv: List[str], timeout: Optional[int], capture: bool = True) -> CommandResult:
    logger.debug(f"Running: {' '.join(argv)}")
    try:
        process = subprocess.run(
            argv,
            capture_output=capture,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        logger.error(f"Command timed out after {timeout}s: {' '.join(argv)}")
        return CommandResult(argv=argv, returncode=-1, stderr="Command timed out")
    except FileNotFoundError:
        raise PreconditionError(f"'{argv[0]}' not found") from None

    result = CommandResult(
        argv=argv,
        returncode=process.returncode,
        stdout=process.stdout or "",
        stderr=process.stderr or "",
    )
    logger.debug(f"Exit code {result.returncode}: {' '.join(argv)}")
    return result


class OcClient:
    """
    Adapter over the OpenShift `oc` CLI.

    Each call is synchronous and blocking; no state is held between calls
    apart from the namespace the client is bound to.
    """

    def __init__(self, namespace: Optional[str] = None, executable: str = "oc"):
        self.namespace = namespace
        self.executable = executable

    def in_namespace(self, namespace: str) -> "OcClient":
        return OcClient(namespace=namespace, executable=self.executable)

    def cluster_scoped(self) -> "OcClient":
        return OcClient(executable=self.executable)

    def _argv(self, args: Sequence[str]) -> List[str]:
        argv = [self.executable]
        if self.namespace:
            argv.extend(["-n", self.namespace])
        argv.extend(args)
        return argv

    def run(
        self,
        args: Sequence[str],
        check: bool = True,
        timeout: Optional[int] = None,
        capture: bool = True,
    ) -> CommandResult:
        """
        Run an oc command.

        Args:
            args: oc arguments (namespace flag is added automatically)
            check: raise CommandError on a non-zero exit code
            timeout: subprocess timeout in seconds
            capture: capture output instead of streaming it to the terminal

        Returns:
            CommandResult
        """
        result = _execute(self._argv(args), timeout, capture=capture)
        if check and not result.ok:
            raise CommandError(result.argv, result.returncode, result.stderr)
        return result

    def try_run(self, args: Sequence[str], timeout: Optional[int] = None) -> CommandResult:
        """Run an oc command whose failure is expected and tolerated."""
        result = self.run(args, check=False, timeout=timeout)
        if not result.ok:
            logger.debug(f"Ignoring failure of {' '.join(result.argv)}: {result.stderr.strip()}")
        return result

    def exists(self, kind: str, name: str) -> bool:
        return self.run(["get", kind, name], check=False).ok

    def get_json(self, kind: str, name: Optional[str] = None) -> Dict[str, Any]:
        """Fetch a resource (or a list of resources) as parsed JSON."""
        args = ["get", kind]
        if name:
            args.append(name)
        args.extend(["-o", "json"])
        result = self.run(args)
        try:
            return json.loads(result.stdout or "{}")
        except json.JSONDecodeError as e:
            raise CommandError(result.argv, result.returncode, f"invalid JSON output: {e}") from e

    def try_get_json(self, kind: str, name: str) -> Optional[Dict[str, Any]]:
        """Like get_json, but None when the resource does not exist."""
        result = self.run(["get", kind, name, "-o", "json"], check=False)
        if not result.ok:
            return None
        try:
            return json.loads(result.stdout or "{}")
        except json.JSONDecodeError:
            logger.warning(f"Unparseable JSON for {kind}/{name}")
            return None

    def rollout_status(self, deployment: str, timeout_seconds: int) -> bool:
        """
        Block until a deployment's rollout completes.

        Returns:
            True when the rollout finished inside the timeout
        """
        result = self.run(
            ["rollout", "status", f"deploy/{deployment}", f"--timeout={timeout_seconds}s"],
            check=False,
            timeout=timeout_seconds + SUBPROCESS_GRACE_SECONDS,
        )
        if not result.ok:
            logger.info(f"Rollout of deploy/{deployment} not complete: {result.stderr.strip()}")
        return result.ok


class HelmClient:
    """Adapter over the `helm` CLI."""

    def __init__(self, executable: str = "helm"):
        self.executable = executable

    def upgrade_install(
        self,
        release: str,
        chart: Path,
        namespace: str,
        values_files: Sequence[Path] = (),
    ) -> CommandResult:
        """
        Install the release, or upgrade it when it already exists.

        helm decides create-vs-update itself, so callers never branch on it.
        """
        argv = [self.executable, "upgrade", "--install", release, str(chart), "-n", namespace]
        for values in values_files:
            argv.extend(["-f", str(values)])
        result = _execute(argv, timeout=None)
        if not result.ok:
            raise CommandError(result.argv, result.returncode, result.stderr)
        return result
