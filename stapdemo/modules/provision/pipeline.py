import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence

from ...config import DeployConfig
from ...console import Reporter
from ...exceptions import StapDemoError
from ..cluster import HelmClient, OcClient, require_dir, require_file
from . import namespace as namespace_ensurer
from .endpoint import recheck_command
from .estap import EstapInstaller
from .models import DEFAULT_BANKS, BankResult, BankSpec
from .postgres import install_and_wait

logger = logging.getLogger(__name__)


class BankProvisioner:
    """
    Runs the per-bank pipeline: namespace -> Postgres -> SCC grant -> E-STAP.

    Data flows strictly forward; a fatal error in one stage stops that bank.
    """

    def __init__(
        self,
        config: DeployConfig,
        oc: Optional[OcClient] = None,
        helm: Optional[HelmClient] = None,
        reporter: Optional[Reporter] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.oc = oc or OcClient()
        self.helm = helm or HelmClient()
        self.reporter = reporter or Reporter()
        self._sleep = sleep

    def check_inputs(self, specs: Sequence[BankSpec]) -> None:
        """
        Check every bank's local files before anything touches the cluster.

        Raises:
            PreconditionError: chart dir, a values file or a Postgres manifest missing
        """
        require_dir(self.config.chart_dir, "chart dir")
        for spec in specs:
            require_file(self.config.postgres_manifest(spec.namespace), "Postgres manifest")
            require_file(self.config.values_file(spec.namespace), "values file")

    def deploy_bank(self, spec: BankSpec) -> BankResult:
        self.check_inputs([spec])
        self.reporter.banner(f"{spec.namespace} (release: {spec.release})")
        namespace_ensurer.ensure(self.oc, spec.namespace, spec.service_account, self.reporter)
        install_and_wait(
            self.oc,
            spec.namespace,
            self.config.postgres_manifest(spec.namespace),
            timeout=self.config.rollout_timeout,
            reporter=self.reporter,
        )
        namespace_ensurer.grant_anyuid(self.oc, spec.namespace, spec.service_account, self.reporter)
        installer = EstapInstaller(
            self.oc,
            self.helm,
            polling=self.config.polling,
            rollout_timeout=self.config.rollout_timeout,
            port=self.config.target_port,
            reporter=self.reporter,
            sleep=self._sleep,
        )
        endpoint = installer.install_or_upgrade(
            spec.namespace,
            spec.release,
            self.config.chart_dir,
            self.config.values_file(spec.namespace),
        )
        return BankResult(spec=spec, endpoint=endpoint)

    def _deploy_isolated(self, spec: BankSpec) -> BankResult:
        try:
            return self.deploy_bank(spec)
        except StapDemoError as e:
            logger.error(f"Bank {spec.namespace} failed: {e.message}")
            return BankResult(spec=spec, error=e.message)

    def deploy_banks(
        self,
        specs: Sequence[BankSpec] = DEFAULT_BANKS,
        parallel: bool = False,
    ) -> List[BankResult]:
        """
        Deploy every bank and print a summary.

        Sequential runs stop at the first fatal error. Parallel runs give each
        bank its own thread, share no mutable state between them, and join
        before the summary; a failure is reported after all banks finish.

        Raises:
            PreconditionError: a local file is missing; raised before any bank starts
            StapDemoError: the first failure (sequential) or a combined
                failure listing every failed bank (parallel)
        """
        self.check_inputs(specs)
        if parallel:
            with ThreadPoolExecutor(max_workers=len(specs) or 1) as pool:
                results = list(pool.map(self._deploy_isolated, specs))
        else:
            results = [self.deploy_bank(spec) for spec in specs]

        self._summarize(results)
        failed = [r for r in results if not r.ok]
        if failed:
            raise StapDemoError(
                "; ".join(f"{r.spec.namespace}: {r.error}" for r in failed)
            )
        return results

    def _summarize(self, results: Sequence[BankResult]) -> None:
        if all(r.ok for r in results):
            self.reporter.success("Done.")
        self.reporter.console.print("Show E-STAP LBs:")
        for result in results:
            if result.ok and result.endpoint is not None:
                self.reporter.detail(f"{result.spec.namespace}: {result.endpoint.service} -> {result.endpoint}")
                if not result.endpoint.ready:
                    self.reporter.detail(f"  {recheck_command(result.spec.namespace, result.endpoint.service)}")
            else:
                self.reporter.detail(f"{result.spec.namespace}: failed ({result.error})")
        namespaces = " ".join(r.spec.namespace for r in results)
        self.reporter.detail(
            f"for ns in {namespaces}; do oc -n $ns get svc | grep estap | grep LoadBalancer; done"
        )
