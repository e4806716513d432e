"""
Security Groups Module - Black Box Interface

Purpose: Open the Guardium collector ports in an AWS security group
Interface: ensure_collector_security_group()
Hidden: EC2 filters, rule layout, duplicate handling
"""

from .security_groups import (
    COLLECTOR_PORTS,
    authorize_collector_ports,
    ensure_collector_security_group,
    find_security_group,
    ingress_rule,
)

__all__ = [
    "COLLECTOR_PORTS",
    "authorize_collector_ports",
    "ensure_collector_security_group",
    "find_security_group",
    "ingress_rule",
]
