"""Default VPC and subnet lookups for ECS."""

from typing import Any

from fargatectl.core.deployments.aws_ecs.errors import AWS_ERRORS, AwsOperationError

DEFAULT_VPC_FILTER = {"Name": "isDefault", "Values": ["true"]}
DEFAULT_FOR_AZ_FILTER = {"Name": "default-for-az", "Values": ["true"]}


class DefaultNetwork:
    """Read-only access to the account's default VPC."""

    def __init__(self, client: Any) -> None:
        self._ec2 = client

    def default_vpc_id(self) -> str:
        """Return the default VPC ID."""
        try:
            response = self._ec2.describe_vpcs(Filters=[DEFAULT_VPC_FILTER])
        except AWS_ERRORS as exc:
            raise AwsOperationError("Could not retrieve default VPC ID", exc) from exc

        vpcs = response.get("Vpcs", [])
        if not vpcs:
            raise AwsOperationError("Could not retrieve default VPC ID", "no default VPC in region")
        return str(vpcs[0]["VpcId"])

    def default_security_group_id(self) -> str:
        """Return the ID of the default VPC's default security group."""
        vpc_id = self.default_vpc_id()
        try:
            response = self._ec2.describe_security_groups(
                Filters=[
                    {"Name": "vpc-id", "Values": [vpc_id]},
                    {"Name": "group-name", "Values": ["default"]},
                ]
            )
        except AWS_ERRORS as exc:
            raise AwsOperationError("Could not retrieve default security group", exc) from exc

        groups = response.get("SecurityGroups", [])
        if not groups:
            raise AwsOperationError(
                "Could not retrieve default security group", f"none found in {vpc_id}"
            )
        return str(groups[0]["GroupId"])

    def default_subnet_ids(self) -> list[str]:
        """Return the default subnet of every availability zone."""
        subnet_ids: list[str] = []
        try:
            paginator = self._ec2.get_paginator("describe_subnets")
            for page in paginator.paginate(Filters=[DEFAULT_FOR_AZ_FILTER]):
                subnet_ids.extend(subnet["SubnetId"] for subnet in page.get("Subnets", []))
        except AWS_ERRORS as exc:
            raise AwsOperationError("Could not retrieve default subnet IDs", exc) from exc

        if not subnet_ids:
            raise AwsOperationError(
                "Could not retrieve default subnet IDs", "no default subnets in region"
            )
        return subnet_ids
