"""
Tests for the stapdemo command line.

Workflows are patched out; these tests cover option handling, exit codes
and error reporting.
"""

from pathlib import Path
from unittest.mock import patch

import pytest
from botocore.exceptions import ClientError
from click.testing import CliRunner

from stapdemo import __version__
from stapdemo.cli import main
from stapdemo.modules.provision import BankSpec


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def tools_present():
    with patch("stapdemo.modules.cluster.cluster.shutil.which", return_value="/usr/bin/tool"):
        yield


def test_version(runner):
    result = runner.invoke(main, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


class TestDeployBanks:
    def test_options_flow_into_config(self, runner, tools_present, tmp_path):
        with patch("stapdemo.cli.BankProvisioner") as provisioner:
            result = runner.invoke(main, [
                "deploy-banks",
                "--workdir", str(tmp_path),
                "--poll-attempts", "4",
                "--rollout-timeout", "60",
                "--parallel",
            ])

        assert result.exit_code == 0, result.output
        config = provisioner.call_args[0][0]
        assert config.workdir == tmp_path
        assert config.chart_dir == tmp_path / "Guardium_External_S-TAP" / "charts" / "estap"
        assert config.polling.attempts == 4
        assert config.polling.interval == 3.0
        assert config.rollout_timeout == 60
        specs = provisioner.return_value.deploy_banks.call_args[0][0]
        assert [s.namespace for s in specs] == ["bank-test1", "bank-test2"]
        assert provisioner.return_value.deploy_banks.call_args.kwargs["parallel"] is True

    def test_custom_banks(self, runner, tools_present):
        with patch("stapdemo.cli.BankProvisioner") as provisioner:
            result = runner.invoke(main, ["deploy-banks", "--bank", "bank-x:sa:rel-x"])

        assert result.exit_code == 0, result.output
        specs = provisioner.return_value.deploy_banks.call_args[0][0]
        assert specs == [BankSpec(namespace="bank-x", service_account="sa", release="rel-x")]

    def test_invalid_bank(self, runner, tools_present):
        result = runner.invoke(main, ["deploy-banks", "--bank", "only-two:parts"])

        assert result.exit_code == 1
        assert "ERROR: invalid --bank" in result.output

    def test_missing_tool(self, runner):
        with patch("stapdemo.modules.cluster.cluster.shutil.which", return_value=None):
            with patch("stapdemo.cli.BankProvisioner") as provisioner:
                result = runner.invoke(main, ["deploy-banks"])

        assert result.exit_code == 1
        assert "ERROR: 'oc' not found" in result.output
        provisioner.assert_not_called()

    def test_invalid_polling_env(self, runner, tools_present):
        result = runner.invoke(main, ["deploy-banks"], env={"STAPDEMO_LB_POLL_ATTEMPTS": "many"})

        assert result.exit_code == 1
        assert "STAPDEMO_LB_POLL_ATTEMPTS must be an integer" in result.output

    @pytest.mark.parametrize("option,value", [("--poll-interval", "-1"), ("--poll-attempts", "0")])
    def test_invalid_polling_option(self, runner, tools_present, option, value):
        with patch("stapdemo.cli.BankProvisioner") as provisioner:
            result = runner.invoke(main, ["deploy-banks", option, value])

        assert result.exit_code == 1
        assert "ERROR: load-balancer polling needs at least one attempt" in result.output
        provisioner.assert_not_called()


class TestDeployViewer:
    def test_delegates(self, runner, tools_present, tmp_path):
        with patch("stapdemo.cli.ViewerDeployer") as deployer:
            result = runner.invoke(main, ["deploy-viewer", "bank-test1", str(tmp_path), "--release", "estap-bank1"])

        assert result.exit_code == 0, result.output
        deployer.return_value.deploy.assert_called_once_with("bank-test1", Path(tmp_path), release="estap-bank1")


class TestLoadtest:
    def test_help_is_ours(self, runner):
        result = runner.invoke(main, ["loadtest", "-h"])

        assert result.exit_code == 0
        assert "Connection discovery order:" in result.output

    def test_missing_pgbench(self, runner):
        with patch("stapdemo.modules.loadtest.driver.shutil.which", return_value=None):
            result = runner.invoke(main, ["loadtest", "--dsn", "postgres://u@h/db", "-T", "5"])

        assert result.exit_code == 127
        assert "pgbench not installed" in result.output

    def test_discovery_failure_exits_2(self, runner):
        with patch("stapdemo.modules.loadtest.driver.shutil.which", return_value="/usr/bin/pgbench"):
            result = runner.invoke(
                main,
                ["loadtest", "-c", "4"],
                env={"PGHOST": "", "PGUSER": "u", "PGDATABASE": "d", "PGPASSWORD": ""},
            )

        assert result.exit_code == 2
        assert "ERROR: PGHOST not set" in result.output


class TestSecurityGroups:
    def test_reports_group(self, runner):
        group = {
            "GroupId": "sg-1",
            "IpPermissions": [{"IpProtocol": "tcp", "FromPort": 22, "ToPort": 22}],
        }
        with patch("stapdemo.cli.ensure_collector_security_group", return_value=group) as ensure:
            result = runner.invoke(main, ["security-groups", "--region", "us-east-1", "--vpc-id", "vpc-1"])

        assert result.exit_code == 0, result.output
        config = ensure.call_args[0][0]
        assert (config.region, config.vpc_id, config.group_name) == ("us-east-1", "vpc-1", "GuardiumCollectorSG")
        assert "Security group: sg-1" in result.output
        assert "tcp 22-22" in result.output

    def test_aws_error_is_reported(self, runner):
        error = ClientError({"Error": {"Code": "UnauthorizedOperation", "Message": "denied"}}, "CreateSecurityGroup")
        with patch("stapdemo.cli.ensure_collector_security_group", side_effect=error):
            result = runner.invoke(main, ["security-groups"])

        assert result.exit_code == 1
        assert "ERROR: AWS request failed" in result.output


def test_viewer_serves(runner):
    with patch("stapdemo.main.serve") as serve:
        result = runner.invoke(main, ["viewer", "--port", "9000"])

    assert result.exit_code == 0, result.output
    serve.assert_called_once_with(host=None, port=9000)
