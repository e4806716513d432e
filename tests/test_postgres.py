"""Tests for the Postgres install-and-wait stage."""

import pytest
from conftest import CliResponse

from stapdemo.exceptions import CommandError, PreconditionError, RolloutTimeoutError
from stapdemo.modules.cluster import OcClient
from stapdemo.modules.provision import POSTGRES_DEPLOYMENT, install_and_wait

pytestmark = pytest.mark.cli_mock


@pytest.fixture
def manifest(workdir):
    return workdir / "Postgres-bank-test1" / "postgres.yaml"


def test_applies_manifest_and_waits(cli_mocker, reporter, manifest):
    cli_mocker.register("apply -f", CliResponse(stdout="deployment.apps/postgres configured\n"))
    cli_mocker.register("rollout status deploy/postgres", CliResponse(stdout="successfully rolled out"))
    cli_mocker.register("get svc postgres -o wide", CliResponse(stdout="postgres  ClusterIP  5432/TCP\n"))

    ready = install_and_wait(OcClient(), "bank-test1", manifest, timeout=120, reporter=reporter)

    assert ready.name == POSTGRES_DEPLOYMENT
    assert ready.namespace == "bank-test1"
    assert cli_mocker.commands == [
        f"oc -n bank-test1 apply -f {manifest}",
        "oc -n bank-test1 rollout status deploy/postgres --timeout=120s",
        "oc -n bank-test1 get svc postgres -o wide",
    ]
    assert "deployment.apps/postgres configured" in reporter.text


def test_rollout_timeout_is_fatal(cli_mocker, reporter, manifest):
    cli_mocker.register("apply -f", CliResponse(stdout="unchanged"))
    cli_mocker.register(
        "rollout status",
        CliResponse(stderr="error: timed out waiting for the condition", returncode=1),
    )

    with pytest.raises(RolloutTimeoutError) as exc_info:
        install_and_wait(OcClient(), "bank-test1", manifest, timeout=5, reporter=reporter)

    assert exc_info.value.deployment == "postgres"
    assert exc_info.value.timeout == 5
    assert not cli_mocker.was_called_with("get svc")


def test_missing_manifest_fails_before_any_command(cli_mocker, reporter, tmp_path):
    with pytest.raises(PreconditionError) as exc_info:
        install_and_wait(OcClient(), "bank-test1", tmp_path / "absent.yaml", reporter=reporter)

    assert "absent.yaml" in exc_info.value.message
    assert cli_mocker.call_count == 0


def test_apply_failure_propagates(cli_mocker, reporter, manifest):
    cli_mocker.register("apply -f", CliResponse(stderr="invalid manifest", returncode=1))

    with pytest.raises(CommandError) as exc_info:
        install_and_wait(OcClient(), "bank-test1", manifest, reporter=reporter)

    assert "invalid manifest" in str(exc_info.value)
    assert not cli_mocker.was_called_with("rollout status")
