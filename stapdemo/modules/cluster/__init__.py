"""
Cluster Module - Black Box Interface

Purpose: Drive the orchestration CLIs (oc, helm)
Interface: OcClient, HelmClient, require_tools(), require_file(), require_dir()
Hidden: subprocess handling, argument layout, JSON decoding

Can be replaced with a direct Kubernetes API client.
"""

from .cluster import (
    CommandResult,
    HelmClient,
    OcClient,
    require_dir,
    require_file,
    require_tools,
)

__all__ = [
    "CommandResult",
    "HelmClient",
    "OcClient",
    "require_dir",
    "require_file",
    "require_tools",
]
