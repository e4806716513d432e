"""Tests for the Guardium collector security group."""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from stapdemo.config import SecurityGroupConfig
from stapdemo.modules.security_groups import (
    COLLECTOR_PORTS,
    authorize_collector_ports,
    ensure_collector_security_group,
    find_security_group,
    ingress_rule,
)


def client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, "AuthorizeSecurityGroupIngress")


@pytest.fixture
def ec2():
    client = MagicMock()
    client.describe_security_groups.return_value = {"SecurityGroups": []}
    client.create_security_group.return_value = {"GroupId": "sg-0123456789abcdef0"}
    return client


@pytest.fixture
def config():
    return SecurityGroupConfig(region="ap-southeast-2", vpc_id="vpc-0abc", group_name="GuardiumCollectorSG")


def test_collector_ports():
    ranges = [(start, end) for _, start, end in COLLECTOR_PORTS]

    assert (22, 22) in ranges
    assert (8444, 8446) in ranges
    assert (16016, 16018) in ranges
    assert (9500, 9501) in ranges
    assert (3306, 3306) in ranges
    assert len(ranges) == 9


def test_ingress_rule_is_open_tcp():
    assert ingress_rule(8443, 8443) == {
        "IpProtocol": "tcp",
        "FromPort": 8443,
        "ToPort": 8443,
        "IpRanges": [{"CidrIp": "0.0.0.0/0"}],
    }


def test_find_filters_by_vpc(ec2):
    ec2.describe_security_groups.return_value = {"SecurityGroups": [{"GroupId": "sg-1"}]}

    assert find_security_group(ec2, "GuardiumCollectorSG", "vpc-0abc") == "sg-1"
    filters = ec2.describe_security_groups.call_args.kwargs["Filters"]
    assert {"Name": "vpc-id", "Values": ["vpc-0abc"]} in filters


def test_creates_missing_group(ec2, config):
    ec2.describe_security_groups.side_effect = [
        {"SecurityGroups": []},
        {"SecurityGroups": [{"GroupId": "sg-0123456789abcdef0", "IpPermissions": []}]},
    ]

    group = ensure_collector_security_group(config, client=ec2)

    assert group["GroupId"] == "sg-0123456789abcdef0"
    ec2.create_security_group.assert_called_once()
    assert ec2.create_security_group.call_args.kwargs["VpcId"] == "vpc-0abc"
    assert ec2.authorize_security_group_ingress.call_count == len(COLLECTOR_PORTS)


def test_reuses_existing_group(ec2, config):
    ec2.describe_security_groups.return_value = {"SecurityGroups": [{"GroupId": "sg-existing"}]}

    group = ensure_collector_security_group(config, client=ec2)

    assert group["GroupId"] == "sg-existing"
    ec2.create_security_group.assert_not_called()


def test_duplicate_rules_are_skipped(ec2):
    ec2.authorize_security_group_ingress.side_effect = [client_error("InvalidPermission.Duplicate")] + [
        None
    ] * (len(COLLECTOR_PORTS) - 1)

    added = authorize_collector_ports(ec2, "sg-1")

    assert len(added) == len(COLLECTOR_PORTS) - 1
    assert "SSH" not in added


def test_other_errors_propagate(ec2):
    ec2.authorize_security_group_ingress.side_effect = client_error("UnauthorizedOperation")

    with pytest.raises(ClientError):
        authorize_collector_ports(ec2, "sg-1")


def test_default_client_uses_region(config):
    with patch("stapdemo.modules.security_groups.security_groups.boto3.client") as factory:
        factory.return_value.describe_security_groups.return_value = {"SecurityGroups": [{"GroupId": "sg-1"}]}

        ensure_collector_security_group(config)

    factory.assert_called_once_with("ec2", region_name="ap-southeast-2")
