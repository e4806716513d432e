"""
Shared pytest fixtures for stapdemo tests.

This module provides common fixtures including:
- ClusterCliMocker: Mock oc/helm subprocess calls with canned responses
- Reporter capture for asserting on user-facing output
- Configuration objects rooted in a temporary work directory
"""

import os
import re
import sys
from dataclasses import dataclass, field
from io import StringIO
from pathlib import Path
from typing import Iterator, List, Optional, Pattern, Union
from unittest.mock import MagicMock, patch

import pytest
from rich.console import Console

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from stapdemo.config import DeployConfig, PollingConfig
from stapdemo.console import Reporter


# =============================================================================
# oc / helm Mocking Infrastructure
# =============================================================================

@dataclass
class CliResponse:
    """Represents a mocked oc or helm command response."""
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0

    def to_completed_process(self) -> MagicMock:
        """Convert to a subprocess.CompletedProcess-like mock."""
        result = MagicMock()
        result.stdout = self.stdout
        result.stderr = self.stderr
        result.returncode = self.returncode
        return result


NOT_FOUND = CliResponse(stderr="Error from server (NotFound)", returncode=1)


@dataclass
class CliCall:
    """Record of a cluster CLI call made during testing."""
    command: List[str]
    full_command_str: str
    matched_pattern: Optional[str] = None
    response: Optional[CliResponse] = None


@dataclass
class _Registration:
    pattern: Union[str, Pattern]
    responses: List[CliResponse]
    priority: int = 0
    served: int = field(default=0)

    def matches(self, command: str) -> bool:
        if isinstance(self.pattern, str):
            return self.pattern in command
        return bool(self.pattern.search(command))

    def next_response(self) -> CliResponse:
        # The last response repeats once a sequence is exhausted
        index = min(self.served, len(self.responses) - 1)
        self.served += 1
        return self.responses[index]


class ClusterCliMocker:
    """
    Mock oc and helm subprocess calls with pattern-matched responses.

    Patterns are matched against the whole command line, e.g.
    "oc -n bank-test1 get svc estap-bank1-estap-lb -o json". Register a list
    of responses to simulate state that changes between polls.

    Usage:
        def test_lb_scan(cli_mocker):
            cli_mocker.register("get svc -o json", CliResponse(stdout=services))
            resolver.locate()
            assert cli_mocker.was_called_with("get svc -o json")
    """

    TOOLS = ("oc", "helm")

    def __init__(self):
        self._registrations: List[_Registration] = []
        self._call_history: List[CliCall] = []
        self._default_response = CliResponse(
            stderr="Error: mock not configured for this command",
            returncode=1,
        )

    def register(
        self,
        pattern: Union[str, Pattern],
        response: Union[CliResponse, List[CliResponse]],
        priority: int = 0,
    ) -> "ClusterCliMocker":
        """
        Register a response (or a sequence of responses) for matching commands.

        Args:
            pattern: String (substring match) or compiled regex
            response: CliResponse, or a list served in order
            priority: Higher priority patterns are checked first

        Returns:
            self for chaining
        """
        responses = response if isinstance(response, list) else [response]
        self._registrations.append(_Registration(pattern, responses, priority))
        # Stable sort keeps registration order within a priority
        self._registrations.sort(key=lambda r: r.priority, reverse=True)
        return self

    def set_default_response(self, response: CliResponse) -> "ClusterCliMocker":
        """Set the default response for unmatched commands."""
        self._default_response = response
        return self

    def mock_run(self, cmd: List[str], **kwargs) -> MagicMock:
        """Side effect for subprocess.run."""
        cmd_str = " ".join(cmd)
        if cmd[0] not in self.TOOLS:
            raise RuntimeError(f"Unexpected command blocked: {cmd_str}")

        matched_pattern = None
        response = self._default_response
        for registration in self._registrations:
            if registration.matches(cmd_str):
                pattern = registration.pattern
                matched_pattern = pattern if isinstance(pattern, str) else pattern.pattern
                response = registration.next_response()
                break

        self._call_history.append(CliCall(
            command=list(cmd),
            full_command_str=cmd_str,
            matched_pattern=matched_pattern,
            response=response,
        ))
        return response.to_completed_process()

    @property
    def calls(self) -> List[CliCall]:
        return self._call_history

    @property
    def call_count(self) -> int:
        return len(self._call_history)

    @property
    def commands(self) -> List[str]:
        return [c.full_command_str for c in self._call_history]

    def was_called_with(self, pattern: str) -> bool:
        """Check if any call contained the given pattern."""
        return any(pattern in call.full_command_str for call in self._call_history)

    def was_called_matching(self, regex: str) -> bool:
        compiled = re.compile(regex)
        return any(compiled.search(call.full_command_str) for call in self._call_history)

    def get_calls_matching(self, pattern: str) -> List[CliCall]:
        """Get all calls containing the given pattern."""
        return [c for c in self._call_history if pattern in c.full_command_str]

    def reset(self):
        """Clear call history (but keep registered responses)."""
        self._call_history = []


@pytest.fixture
def cli_mocker() -> Iterator[ClusterCliMocker]:
    """
    Fixture that provides a ClusterCliMocker with subprocess.run patched.

    Unregistered oc/helm commands fail with exit code 1, which is what the
    cluster returns for a missing resource.
    """
    mocker = ClusterCliMocker()
    with patch("subprocess.run", side_effect=mocker.mock_run):
        yield mocker


@pytest.fixture
def cli_mocker_strict() -> Iterator[ClusterCliMocker]:
    """Strict mocker that answers unregistered commands with exit code 127."""
    mocker = ClusterCliMocker()
    mocker.set_default_response(CliResponse(
        stderr="STRICT MODE: No mock registered for this command",
        returncode=127,
    ))
    with patch("subprocess.run", side_effect=mocker.mock_run):
        yield mocker


# =============================================================================
# Output and Configuration
# =============================================================================

class CapturedReporter(Reporter):
    """Reporter writing to an in-memory buffer."""

    def __init__(self):
        self.buffer = StringIO()
        super().__init__(Console(file=self.buffer, width=400, highlight=False, color_system=None))

    @property
    def text(self) -> str:
        return self.buffer.getvalue()


@pytest.fixture
def reporter() -> CapturedReporter:
    return CapturedReporter()


@pytest.fixture
def no_sleep() -> MagicMock:
    """Recording stand-in for time.sleep."""
    return MagicMock()


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    """
    Work directory laid out the way deploy-banks expects.

        Postgres-bank-test1/postgres.yaml
        Postgres-bank-test2/postgres.yaml
        Guardium_External_S-TAP/charts/estap/
        Guardium_External_S-TAP/charts/bank-test1.yaml
        Guardium_External_S-TAP/charts/bank-test2.yaml
    """
    charts = tmp_path / "Guardium_External_S-TAP" / "charts"
    (charts / "estap").mkdir(parents=True)
    for ns in ("bank-test1", "bank-test2"):
        pg_dir = tmp_path / f"Postgres-{ns}"
        pg_dir.mkdir()
        (pg_dir / "postgres.yaml").write_text("kind: Deployment\n")
        (charts / f"{ns}.yaml").write_text("estap: {}\n")
    return tmp_path


@pytest.fixture
def deploy_config(workdir: Path) -> DeployConfig:
    return DeployConfig(
        workdir=workdir,
        chart_dir=workdir / "Guardium_External_S-TAP" / "charts" / "estap",
        rollout_timeout=5,
        polling=PollingConfig(attempts=3, interval=0.5),
    )


# =============================================================================
# Test Markers Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "cli_mock: Tests using mocked oc/helm subprocess calls"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests requiring infrastructure"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests requiring a real cluster"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take a long time to run"
    )
