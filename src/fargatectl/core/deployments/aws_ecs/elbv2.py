"""Elastic Load Balancing (v2) helpers for ECS services."""

import logging
import re
from collections.abc import Callable
from typing import Any, cast

from fargatectl.core.deployments.aws_ecs.errors import AWS_ERRORS, AwsOperationError, error_code
from fargatectl.core.deployments.aws_ecs.models import (
    RULE_TYPE_HOST,
    RULE_TYPE_PATH,
    LoadBalancer,
    Rule,
    TargetGroupSpec,
)

logger = logging.getLogger(__name__)

RULE_CONDITION_FIELDS = {
    RULE_TYPE_HOST: "host-header",
    RULE_TYPE_PATH: "path-pattern",
}

# ELBv2 target group names: up to 32 alphanumerics or hyphens, no hyphen at either end.
TARGET_GROUP_NAME_PATTERN = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]{0,30}[A-Za-z0-9])?$")


def target_group_name(load_balancer_name: str, service_name: str) -> str:
    """Return the name of the target group routing a load balancer to a service."""
    return f"{load_balancer_name}-{service_name}"


class LoadBalancers:
    """Load balancer lookups and routing changes."""

    def __init__(self, client: Any) -> None:
        self._elbv2 = client

    def describe(self, name: str) -> LoadBalancer:
        """Return the ARN and kind of a load balancer by name."""
        try:
            response = self._elbv2.describe_load_balancers(Names=[name])
        except AWS_ERRORS as exc:
            if error_code(exc) == "LoadBalancerNotFound":
                raise AwsOperationError(f"Could not find load balancer {name}") from exc
            raise AwsOperationError("Could not describe load balancer", exc) from exc

        balancers = response.get("LoadBalancers", [])
        if not balancers:
            raise AwsOperationError(f"Could not find load balancer {name}")

        balancer = balancers[0]
        return LoadBalancer(
            name=str(balancer.get("LoadBalancerName", name)),
            arn=str(balancer["LoadBalancerArn"]),
            kind=str(balancer.get("Type", "")),
            vpc_id=balancer.get("VpcId"),
            dns_name=balancer.get("DNSName"),
        )

    def create_target_group(self, spec: TargetGroupSpec) -> str:
        """Create an IP target group and return its ARN.

        ELBv2 returns the existing group when one with identical settings
        already exists.
        """
        try:
            response = self._elbv2.create_target_group(
                Name=spec.name,
                Port=spec.port,
                Protocol=spec.protocol,
                VpcId=spec.vpc_id,
                TargetType="ip",
            )
        except AWS_ERRORS as exc:
            raise AwsOperationError("Could not create target group", exc) from exc

        target_group_arn = cast(str, response["TargetGroups"][0]["TargetGroupArn"])
        logger.info(f"Target group {spec.name} ready: {target_group_arn}")
        return target_group_arn

    def add_rule(
        self,
        load_balancer_arn: str,
        target_group_arn: str,
        rule: Rule,
        on_created: Callable[[str], None] | None = None,
    ) -> list[str]:
        """Forward traffic matching a rule to a target group on every listener.

        ``on_created`` is called with each rule ARN as soon as the rule
        exists, so callers keep track of rules added before a failure.

        Returns:
            The ARNs of the created rules.
        """
        condition = {"Field": RULE_CONDITION_FIELDS[rule.type], "Values": [rule.value]}
        rule_arns: list[str] = []
        for listener_arn in self.listener_arns(load_balancer_arn):
            priority = self._next_priority(listener_arn)
            try:
                response = self._elbv2.create_rule(
                    ListenerArn=listener_arn,
                    Priority=priority,
                    Conditions=[condition],
                    Actions=[{"Type": "forward", "TargetGroupArn": target_group_arn}],
                )
            except AWS_ERRORS as exc:
                raise AwsOperationError("Could not create load balancer rule", exc) from exc

            rule_arn = str(response["Rules"][0]["RuleArn"])
            logger.info(f"Added rule {rule} with priority {priority} to {listener_arn}")
            rule_arns.append(rule_arn)
            if on_created:
                on_created(rule_arn)
        return rule_arns

    def set_default_action(
        self,
        load_balancer_arn: str,
        target_group_arn: str,
        on_modified: Callable[[str], None] | None = None,
    ) -> None:
        """Make a target group the default route of every listener."""
        for listener_arn in self.listener_arns(load_balancer_arn):
            try:
                self._elbv2.modify_listener(
                    ListenerArn=listener_arn,
                    DefaultActions=[{"Type": "forward", "TargetGroupArn": target_group_arn}],
                )
            except AWS_ERRORS as exc:
                raise AwsOperationError("Could not modify load balancer listener", exc) from exc
            if on_modified:
                on_modified(listener_arn)

    def listener_arns(self, load_balancer_arn: str) -> list[str]:
        """Return the listener ARNs of a load balancer."""
        listener_arns: list[str] = []
        try:
            paginator = self._elbv2.get_paginator("describe_listeners")
            for page in paginator.paginate(LoadBalancerArn=load_balancer_arn):
                listener_arns.extend(
                    listener["ListenerArn"] for listener in page.get("Listeners", [])
                )
        except AWS_ERRORS as exc:
            raise AwsOperationError("Could not describe listeners", exc) from exc
        return listener_arns

    def _next_priority(self, listener_arn: str) -> int:
        """Return one more than the highest rule priority on a listener."""
        highest = 0
        request: dict[str, Any] = {"ListenerArn": listener_arn}
        while True:
            try:
                response = self._elbv2.describe_rules(**request)
            except AWS_ERRORS as exc:
                raise AwsOperationError("Could not describe listener rules", exc) from exc

            for existing in response.get("Rules", []):
                priority = str(existing.get("Priority", ""))
                if priority.isdigit():
                    highest = max(highest, int(priority))

            marker = response.get("NextMarker")
            if not marker:
                return highest + 1
            request["Marker"] = marker
