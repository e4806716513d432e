"""
stapdemo command line.

    stapdemo deploy-banks               # Postgres + E-STAP in bank-test1 and bank-test2
    stapdemo deploy-viewer NS APP_DIR   # build and wire the viewer in one namespace
    stapdemo loadtest [--viewer URL] [--dsn DSN] [pgbench options]
    stapdemo security-groups            # Guardium collector security group on AWS
    stapdemo viewer                     # serve the viewer locally
"""

import dataclasses
import logging
import os
import sys
from pathlib import Path
from typing import Callable, Optional

import click
from botocore.exceptions import BotoCoreError, ClientError
from dotenv import load_dotenv

from stapdemo import __version__
from stapdemo.config import EnvConfigProvider, PollingConfig
from stapdemo.console import Reporter
from stapdemo.exceptions import StapDemoError
from stapdemo.logging_config import configure_logging
from stapdemo.modules.cluster import require_tools
from stapdemo.modules.loadtest import LoadTestDriver
from stapdemo.modules.provision import DEFAULT_BANKS, BankProvisioner, BankSpec
from stapdemo.modules.security_groups import ensure_collector_security_group
from stapdemo.modules.viewer_deploy import ViewerDeployer

logger = logging.getLogger(__name__)


def _run(reporter: Reporter, action: Callable[[], None]) -> None:
    """Run an action, turning workflow errors into an ERROR line and exit code."""
    try:
        action()
    except StapDemoError as e:
        logger.debug(f"{type(e).__name__} (exit {e.exit_code}): {e.message}")
        reporter.error(e.message)
        sys.exit(e.exit_code)


def _parse_bank(value: str) -> BankSpec:
    parts = value.split(":")
    if len(parts) != 3 or not all(parts):
        raise StapDemoError(f"invalid --bank {value!r}, expected NS:SA:RELEASE")
    return BankSpec(namespace=parts[0], service_account=parts[1], release=parts[2])


@click.group()
@click.version_option(__version__, prog_name="stapdemo")
@click.option("--log-level", default=None, help="Diagnostic log level (default: LOG_LEVEL or WARNING)")
@click.option("--env-file", type=click.Path(dir_okay=False), default=None, help="Load variables from a .env file")
@click.pass_context
def main(ctx: click.Context, log_level: Optional[str], env_file: Optional[str]):
    load_dotenv(env_file)
    configure_logging(log_level or os.getenv("LOG_LEVEL") or "WARNING")
    ctx.obj = {"provider": EnvConfigProvider(), "reporter": Reporter()}


@main.command("deploy-banks")
@click.option("--workdir", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Directory holding Postgres-<ns>/ and the chart (default: STAPDEMO_WORKDIR or cwd)")
@click.option("--chart-dir", type=click.Path(path_type=Path), default=None, help="E-STAP chart directory")
@click.option("--rollout-timeout", type=int, default=None, help="Rollout timeout in seconds")
@click.option("--poll-attempts", type=int, default=None, help="Load-balancer address polling attempts")
@click.option("--poll-interval", type=float, default=None, help="Seconds between polling attempts")
@click.option("--parallel/--sequential", default=False, help="Provision the banks concurrently")
@click.option("--bank", "banks", multiple=True, metavar="NS:SA:RELEASE",
              help="Bank to deploy (repeatable); defaults to bank-test1 and bank-test2")
@click.pass_obj
def deploy_banks(obj, workdir, chart_dir, rollout_timeout, poll_attempts, poll_interval, parallel, banks):
    """Deploy Postgres + Guardium External S-TAP into each bank namespace."""
    reporter: Reporter = obj["reporter"]

    def action():
        provider = obj["provider"]
        if workdir is not None:
            provider = EnvConfigProvider({**os.environ, "STAPDEMO_WORKDIR": str(workdir)})
        config = provider.get_deploy_config()
        if chart_dir is not None:
            config = dataclasses.replace(config, chart_dir=chart_dir)
        if rollout_timeout is not None:
            config = dataclasses.replace(config, rollout_timeout=rollout_timeout)
        if poll_attempts is not None or poll_interval is not None:
            config = dataclasses.replace(config, polling=PollingConfig(
                attempts=poll_attempts if poll_attempts is not None else config.polling.attempts,
                interval=poll_interval if poll_interval is not None else config.polling.interval,
            ))

        specs = [_parse_bank(b) for b in banks] or list(DEFAULT_BANKS)
        require_tools("oc", "helm")
        BankProvisioner(config, reporter=reporter).deploy_banks(specs, parallel=parallel)

    _run(reporter, action)


@main.command("deploy-viewer")
@click.argument("namespace")
@click.argument("app_dir", type=click.Path(path_type=Path))
@click.option("--release", default=None, help="E-STAP release name, to prefer <release>-estap-lb")
@click.pass_obj
def deploy_viewer(obj, namespace, app_dir, release):
    """Build the viewer from APP_DIR and point it at the E-STAP endpoint in NAMESPACE."""
    reporter: Reporter = obj["reporter"]

    def action():
        config = obj["provider"].get_deploy_config()
        require_tools("oc")
        ViewerDeployer(config, reporter=reporter).deploy(namespace, app_dir, release=release)

    _run(reporter, action)


@main.command(
    "loadtest",
    context_settings={"ignore_unknown_options": True, "allow_extra_args": True, "help_option_names": []},
)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_obj
def loadtest(obj, args):
    """PostgreSQL load test using pgbench (-h for discovery options)."""
    reporter: Reporter = obj["reporter"]
    _run(reporter, lambda: LoadTestDriver(reporter=reporter).run(list(args)))


@main.command("security-groups")
@click.option("--region", default=None, help="AWS region (default: AWS_REGION or ap-southeast-2)")
@click.option("--vpc-id", default=None, help="VPC to create the group in")
@click.option("--group-name", default=None, help="Security group name")
@click.pass_obj
def security_groups(obj, region, vpc_id, group_name):
    """Create or reuse the Guardium collector security group and open its ports."""
    reporter: Reporter = obj["reporter"]

    def action():
        config = obj["provider"].get_security_group_config()
        config = dataclasses.replace(
            config,
            region=region or config.region,
            vpc_id=vpc_id or config.vpc_id,
            group_name=group_name or config.group_name,
        )
        reporter.step(f"Ensure security group {config.group_name} in {config.region}")
        try:
            group = ensure_collector_security_group(config)
        except (BotoCoreError, ClientError) as e:
            raise StapDemoError(f"AWS request failed: {e}") from e
        reporter.detail(f"Security group: {group.get('GroupId')}")
        for permission in group.get("IpPermissions", []):
            reporter.detail(
                f"{permission.get('IpProtocol')} {permission.get('FromPort')}-{permission.get('ToPort')}"
            )

    _run(reporter, action)


@main.command("viewer")
@click.option("--host", default=None, help="Bind address (default: VIEWER_HOST or 0.0.0.0)")
@click.option("--port", type=int, default=None, help="Listen port (default: PORT or 8080)")
@click.pass_obj
def viewer(obj, host, port):
    """Serve the PostgreSQL viewer."""
    from stapdemo.main import serve

    _run(obj["reporter"], lambda: serve(host=host, port=port))


if __name__ == "__main__":
    main()
