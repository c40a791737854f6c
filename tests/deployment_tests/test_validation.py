"""Tests for port, rule, compute and load balancer validation."""

from unittest.mock import MagicMock

import pytest

from fargatectl.core.deployments.aws_ecs import (
    ConfigurationError,
    LoadBalancer,
    LoadBalancers,
    Port,
    Rule,
    build_service_configuration,
    parse_env_vars,
    parse_port,
    parse_rules,
    validate_cpu_and_memory,
    validate_name,
)
from fargatectl.core.deployments.aws_ecs.validation import check_load_balancer_protocol

ALB = LoadBalancer(name="my-alb", arn="arn:alb", kind="application")
NLB = LoadBalancer(name="my-nlb", arn="arn:nlb", kind="network")


@pytest.mark.parametrize("protocol", ["tcp", "TCP", "http", "HTTP", "https", "HTTPS", "Http"])
@pytest.mark.parametrize("port", [1, 8080, 65535])
def test_parse_port_accepts_and_upper_cases_protocol(protocol: str, port: int) -> None:
    assert parse_port(f"{protocol}:{port}") == Port(protocol=protocol.upper(), port=port)


def test_parse_port_defaults_to_tcp() -> None:
    assert parse_port("1935") == Port(protocol="TCP", port=1935)


@pytest.mark.parametrize("value", ["0", "65536", "http:0", "tcp:99999", "http:abc", "http:"])
def test_parse_port_rejects_out_of_range_ports(value: str) -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        parse_port(value)

    assert len(excinfo.value.violations) == 1
    assert "Invalid port" in excinfo.value.violations[0]


def test_parse_port_rejects_unknown_protocol() -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        parse_port("udp:53")

    assert excinfo.value.violations == ["Invalid protocol UDP [specify TCP, HTTP, or HTTPS]"]


def test_parse_port_reports_both_violations_together() -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        parse_port("ftp:70000")

    violations = excinfo.value.violations
    assert len(violations) == 2
    assert violations[0].startswith("Invalid protocol FTP")
    assert violations[1].startswith("Invalid port 70000")
    assert excinfo.value.category == "Invalid command line flags"


def test_parse_rules_normalises_type() -> None:
    assert parse_rules(["host=api.example.com", "PATH=/api/*"], ALB) == (
        Rule(type="HOST", value="api.example.com"),
        Rule(type="PATH", value="/api/*"),
    )


@pytest.mark.parametrize("value", ["host", "host=a=b", "=", "cookie=abc", "hosts=a"])
def test_parse_rules_rejects_malformed_rules(value: str) -> None:
    with pytest.raises(ConfigurationError):
        parse_rules([value], ALB)


def test_parse_rules_requires_load_balancer_even_for_valid_rules() -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        parse_rules(["host=api.example.com"], None)

    assert excinfo.value.violations == ["lb must be configured if rules are specified"]


def test_parse_rules_collects_every_violation() -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        parse_rules(["nothing", "cookie=x", "path=/ok"], None)

    assert len(excinfo.value.violations) == 3


def test_parse_rules_without_rules_or_load_balancer() -> None:
    assert parse_rules([], None) == ()


@pytest.mark.parametrize(
    ("cpu", "memory"),
    [("256", "512"), ("256", "2048"), ("512", "4096"), ("1024", "2048"), ("4096", "30720")],
)
def test_validate_cpu_and_memory_accepts_supported_pairs(cpu: str, memory: str) -> None:
    validate_cpu_and_memory(cpu, memory)


@pytest.mark.parametrize(
    ("cpu", "memory"),
    [("128", "512"), ("256", "4096"), ("1024", "1024"), ("abc", "512"), ("512", "1500")],
)
def test_validate_cpu_and_memory_rejects_unsupported_pairs(cpu: str, memory: str) -> None:
    with pytest.raises(ConfigurationError):
        validate_cpu_and_memory(cpu, memory)


def test_parse_env_vars_keeps_order_and_last_value() -> None:
    env_vars = parse_env_vars(["B=1", "A=two=2", "B=3"])

    assert [(env.key, env.value) for env in env_vars] == [("B", "3"), ("A", "two=2")]


def test_parse_env_vars_rejects_missing_separator() -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        parse_env_vars(["NOPE", "=value"])

    assert len(excinfo.value.violations) == 2


@pytest.mark.parametrize("name", ["", "-web", "web app", "web/app"])
def test_validate_name_rejects_invalid_names(name: str) -> None:
    with pytest.raises(ConfigurationError):
        validate_name(name)


@pytest.mark.parametrize(
    ("load_balancer", "protocol"),
    [(NLB, "TCP"), (ALB, "HTTP"), (ALB, "HTTPS")],
)
def test_load_balancer_accepts_compatible_protocol(load_balancer: LoadBalancer, protocol: str) -> None:
    check_load_balancer_protocol(load_balancer, Port(protocol=protocol, port=80))


@pytest.mark.parametrize(
    ("load_balancer", "protocol", "expected"),
    [
        (NLB, "HTTP", "only supports TCP"),
        (NLB, "HTTPS", "only supports TCP"),
        (ALB, "TCP", "only supports HTTP or HTTPS"),
    ],
)
def test_load_balancer_rejects_incompatible_protocol(
    load_balancer: LoadBalancer, protocol: str, expected: str
) -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        check_load_balancer_protocol(load_balancer, Port(protocol=protocol, port=80))

    assert expected in str(excinfo.value)
    assert protocol in str(excinfo.value)


def test_load_balancer_requires_a_port() -> None:
    with pytest.raises(ConfigurationError):
        check_load_balancer_protocol(ALB, None)


def test_build_service_configuration_binds_load_balancer(elbv2_client: MagicMock) -> None:
    config = build_service_configuration(
        name="web",
        cpu="256",
        memory="512",
        port="http:8080",
        load_balancer_name="my-alb",
        rules=["path=/api/*"],
        env_vars=["STAGE=prod"],
        load_balancers=LoadBalancers(elbv2_client),
    )

    assert config.load_balancer is not None
    assert config.load_balancer.kind == "application"
    assert config.rules == (Rule(type="PATH", value="/api/*"),)
    assert config.port == Port(protocol="HTTP", port=8080)
    assert config.image is None
    elbv2_client.describe_load_balancers.assert_called_once_with(Names=["my-alb"])


def test_build_service_configuration_rejects_rules_without_load_balancer() -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        build_service_configuration(
            name="web", cpu="256", memory="512", port="80", rules=["host=example.com"]
        )

    assert excinfo.value.category == "Invalid rule"


@pytest.mark.parametrize(
    ("load_balancer_name", "service_name"),
    [("my-alb", "a-very-long-service-name-here"), ("my-alb", "web_app"), ("my-alb", "web-")],
)
def test_build_service_configuration_rejects_invalid_target_group_names(
    elbv2_client: MagicMock, load_balancer_name: str, service_name: str
) -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        build_service_configuration(
            name=service_name,
            cpu="256",
            memory="512",
            port="http:80",
            load_balancer_name=load_balancer_name,
            load_balancers=LoadBalancers(elbv2_client),
        )

    assert "target group name" in excinfo.value.violations[0]
    elbv2_client.describe_load_balancers.assert_not_called()


def test_service_names_with_underscores_are_fine_without_load_balancer() -> None:
    config = build_service_configuration(name="web_app", cpu="256", memory="512")

    assert config.load_balancer is None
