import logging
from typing import Any, Dict, List, Optional, Tuple

import boto3
from botocore.exceptions import ClientError

from ...config import SecurityGroupConfig

logger = logging.getLogger(__name__)

DESCRIPTION = "IBM Guardium Data Protection Collector - Open Access"
OPEN_CIDR = "0.0.0.0/0"

# (label, from_port, to_port)
COLLECTOR_PORTS: Tuple[Tuple[str, int, int], ...] = (
    ("SSH", 22, 22),
    ("Guardium Web UI", 8443, 8443),
    ("GIM", 8081, 8081),
    ("GIM", 8444, 8446),
    ("Unix STAP", 16016, 16018),
    ("Windows STAP", 9500, 9501),
    ("Quick Search", 8983, 8983),
    ("Quick Search", 9983, 9983),
    ("MySQL", 3306, 3306),
)


def _ec2(region: str):
    return boto3.client("ec2", region_name=region)


def ingress_rule(from_port: int, to_port: int, cidr: str = OPEN_CIDR) -> Dict[str, Any]:
    return {
        "IpProtocol": "tcp",
        "FromPort": from_port,
        "ToPort": to_port,
        "IpRanges": [{"CidrIp": cidr}],
    }


def find_security_group(client, group_name: str, vpc_id: Optional[str]) -> Optional[str]:
    filters = [{"Name": "group-name", "Values": [group_name]}]
    if vpc_id:
        filters.append({"Name": "vpc-id", "Values": [vpc_id]})
    resp = client.describe_security_groups(Filters=filters)
    groups = resp.get("SecurityGroups", [])
    if groups:
        return groups[0]["GroupId"]
    return None


def authorize_collector_ports(client, group_id: str) -> List[str]:
    """
    Authorize every collector port range, one call per range.

    Duplicate rules are expected on re-runs and are skipped.

    Returns:
        Labels of the rules that were newly added
    """
    added = []
    for label, from_port, to_port in COLLECTOR_PORTS:
        try:
            client.authorize_security_group_ingress(
                GroupId=group_id, IpPermissions=[ingress_rule(from_port, to_port)]
            )
            added.append(label)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") != "InvalidPermission.Duplicate":
                raise
            logger.debug(f"{label} {from_port}-{to_port} already authorized on {group_id}")
    return added


def ensure_collector_security_group(config: SecurityGroupConfig, client=None) -> Dict[str, Any]:
    """
    Create or reuse the collector security group and open its ports.

    Returns:
        The group's description from describe_security_groups
    """
    client = client or _ec2(config.region)
    group_id = find_security_group(client, config.group_name, config.vpc_id)
    if group_id is None:
        logger.info(f"Security group {config.group_name} does not exist, creating it")
        create_params = {"GroupName": config.group_name, "Description": DESCRIPTION}
        if config.vpc_id:
            create_params["VpcId"] = config.vpc_id
        group_id = client.create_security_group(**create_params)["GroupId"]
    else:
        logger.info(f"Reusing existing security group: {group_id}")

    added = authorize_collector_ports(client, group_id)
    logger.info(f"Authorized {len(added)} new ingress rules on {group_id}")
    resp = client.describe_security_groups(GroupIds=[group_id])
    groups = resp.get("SecurityGroups", [])
    return groups[0] if groups else {"GroupId": group_id}
