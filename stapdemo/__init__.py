"""
stapdemo - E-STAP Postgres Demo Environment

Tooling that stands up demo "banks" (Postgres behind a Guardium External
S-TAP proxy) on OpenShift, a small viewer web app that connects through
the proxy, and a pgbench wrapper for load tests.

Architecture:
- Each module is self-contained with clear interfaces
- Configuration is resolved once at process start
- External tools (oc, helm, pgbench, AWS) are driven through thin adapters

Modules:
- cluster: oc/helm command adapters
- provision: namespace, Postgres and E-STAP installation
- credentials: database credential extraction from live deployments
- viewer_deploy: build and configure the viewer deployment
- loadtest: pgbench connection discovery and launch
- security_groups: collector security group on AWS
- viewer: the web viewer application
"""

__version__ = "1.0.0"
