"""Validation of user supplied service settings.

Each parser collects every violation it finds and raises a single
``ConfigurationError`` listing all of them, so a command line user sees
every mistake in one pass.
"""

import re
from collections.abc import Iterable

from fargatectl.core.deployments.aws_ecs.elbv2 import (
    TARGET_GROUP_NAME_PATTERN,
    LoadBalancers,
    target_group_name,
)
from fargatectl.core.deployments.aws_ecs.errors import ConfigurationError
from fargatectl.core.deployments.aws_ecs.models import (
    LOAD_BALANCER_APPLICATION,
    LOAD_BALANCER_NETWORK,
    PROTOCOL_HTTP,
    PROTOCOL_HTTPS,
    PROTOCOL_TCP,
    VALID_PROTOCOLS,
    EnvVar,
    LoadBalancer,
    Port,
    Rule,
    ServiceConfiguration,
)

VALID_RULE_TYPES_PATTERN = re.compile(r"^(host|path)$", re.IGNORECASE)
NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,254}$")

MIN_PORT = 1
MAX_PORT = 65535

# Fargate CPU units mapped to the memory sizes (MiB) they support.
CPU_MEMORY_COMBINATIONS: dict[int, tuple[int, ...]] = {
    256: (512, 1024, 2048),
    512: tuple(range(1024, 4096 + 1, 1024)),
    1024: tuple(range(2048, 8192 + 1, 1024)),
    2048: tuple(range(4096, 16384 + 1, 1024)),
    4096: tuple(range(8192, 30720 + 1, 1024)),
}


class Violations:
    """Accumulates validation messages and raises them together."""

    def __init__(self) -> None:
        self.messages: list[str] = []

    def add(self, message: str) -> None:
        self.messages.append(message)

    def __bool__(self) -> bool:
        return bool(self.messages)

    def raise_if_any(self, category: str) -> None:
        """Raise a ConfigurationError when any violation was recorded."""
        if self.messages:
            raise ConfigurationError(category, self.messages)


def validate_name(name: str) -> str:
    """Check a service or task group name."""
    violations = Violations()
    if not name:
        violations.add("name must not be empty")
    elif not NAME_PATTERN.match(name):
        violations.add(
            f"Invalid name {name} [use letters, numbers, hyphens and underscores, "
            "starting with a letter or number]"
        )
    violations.raise_if_any("Invalid name")
    return name


def parse_port(value: str) -> Port:
    """Parse ``PORT`` or ``PROTOCOL:PORT``; the protocol defaults to TCP."""
    violations = Violations()

    protocol, separator, raw_port = value.strip().rpartition(":")
    protocol = protocol.upper() if separator else PROTOCOL_TCP

    if protocol not in VALID_PROTOCOLS:
        violations.add(f"Invalid protocol {protocol} [specify TCP, HTTP, or HTTPS]")

    port = int(raw_port) if raw_port.isdecimal() else None
    if port is None or not MIN_PORT <= port <= MAX_PORT:
        violations.add(f"Invalid port {raw_port} [specify within {MIN_PORT} - {MAX_PORT}]")

    violations.raise_if_any("Invalid command line flags")
    return Port(protocol=protocol, port=port)  # type: ignore[arg-type]


def validate_cpu_and_memory(cpu: str, memory: str) -> None:
    """Check CPU units and memory against the Fargate combinations table."""
    violations = Violations()

    cpu_units = int(cpu) if str(cpu).isdecimal() else None
    memory_mib = int(memory) if str(memory).isdecimal() else None

    if cpu_units not in CPU_MEMORY_COMBINATIONS:
        supported = ", ".join(str(units) for units in CPU_MEMORY_COMBINATIONS)
        violations.add(f"Invalid CPU units {cpu} [specify one of {supported}]")
    elif memory_mib not in CPU_MEMORY_COMBINATIONS[cpu_units]:
        allowed = CPU_MEMORY_COMBINATIONS[cpu_units]
        violations.add(
            f"Invalid memory {memory} MiB for {cpu_units} CPU units "
            f"[specify {allowed[0]} - {allowed[-1]} MiB]"
        )

    violations.raise_if_any(f"Invalid settings: {cpu} CPU units / {memory} MiB")


def parse_rules(values: Iterable[str], load_balancer: LoadBalancer | None) -> tuple[Rule, ...]:
    """Parse ``type=value`` routing rules.

    Rules require a configured load balancer; types are host or path,
    case-insensitive, and are normalised to upper case.
    """
    values = list(values)
    violations = Violations()
    rules: list[Rule] = []

    if values and load_balancer is None:
        violations.add("lb must be configured if rules are specified")

    for value in values:
        if value.count("=") != 1:
            violations.add(f"Invalid rule {value} [rules must be in the form of type=value]")
            continue

        rule_type, rule_value = value.split("=")
        if not VALID_RULE_TYPES_PATTERN.match(rule_type):
            violations.add(f"Invalid rule type {rule_type} [must be path or host]")
            continue

        rules.append(Rule(type=rule_type.upper(), value=rule_value))

    violations.raise_if_any("Invalid rule")
    return tuple(rules)


def parse_env_vars(values: Iterable[str]) -> tuple[EnvVar, ...]:
    """Parse ``KEY=value`` environment variables.

    A repeated key keeps its first position and takes the last value.
    """
    violations = Violations()
    env: dict[str, str] = {}

    for value in values:
        key, separator, env_value = value.partition("=")
        key = key.strip()
        if not separator or not key:
            violations.add(f"Invalid environment variable {value} [specify KEY=value]")
            continue
        env[key] = env_value

    violations.raise_if_any("Invalid environment variables")
    return tuple(EnvVar(key=key, value=env_value) for key, env_value in env.items())


def check_load_balancer_protocol(load_balancer: LoadBalancer, port: Port | None) -> None:
    """Check that a load balancer kind supports the configured protocol."""
    name = load_balancer.name
    if port is None:
        raise ConfigurationError(
            "Invalid load balancer and protocol",
            [f"a port must be specified to use load balancer {name}"],
        )

    if load_balancer.kind == LOAD_BALANCER_NETWORK:
        if port.protocol != PROTOCOL_TCP:
            raise ConfigurationError(
                "Invalid load balancer and protocol",
                [f"network load balancer {name} only supports TCP, not {port.protocol}"],
            )
    elif load_balancer.kind == LOAD_BALANCER_APPLICATION:
        if port.protocol not in (PROTOCOL_HTTP, PROTOCOL_HTTPS):
            raise ConfigurationError(
                "Invalid load balancer and protocol",
                [
                    f"application load balancer {name} only supports HTTP or HTTPS, "
                    f"not {port.protocol}"
                ],
            )
    else:
        raise ConfigurationError(
            "Invalid load balancer and protocol",
            [f"load balancer {name} of type {load_balancer.kind} is not supported"],
        )


def validate_target_group_name(load_balancer_name: str, service_name: str) -> str:
    """Check that the target group joining a load balancer and a service has a valid name."""
    name = target_group_name(load_balancer_name, service_name)
    if not TARGET_GROUP_NAME_PATTERN.match(name):
        raise ConfigurationError(
            "Invalid load balancer and service name",
            [
                f"target group name {name} must be at most 32 letters, numbers or hyphens "
                "[shorten the service or load balancer name]"
            ],
        )
    return name


def bind_load_balancer(load_balancers: LoadBalancers, name: str, port: Port | None) -> LoadBalancer:
    """Describe a load balancer by name and check it can serve the port."""
    load_balancer = load_balancers.describe(name)
    check_load_balancer_protocol(load_balancer, port)
    return load_balancer


def build_service_configuration(
    name: str,
    cpu: str,
    memory: str,
    port: str | None = None,
    image: str | None = None,
    load_balancer_name: str | None = None,
    rules: Iterable[str] = (),
    env_vars: Iterable[str] = (),
    load_balancers: LoadBalancers | None = None,
) -> ServiceConfiguration:
    """Validate every service setting and return a deployable configuration."""
    validate_name(name)
    validate_cpu_and_memory(cpu, memory)
    parsed_port = parse_port(port) if port else None

    load_balancer = None
    if load_balancer_name:
        if load_balancers is None:
            raise ValueError("A load balancer client is required to bind a load balancer.")
        validate_target_group_name(load_balancer_name, name)
        load_balancer = bind_load_balancer(load_balancers, load_balancer_name, parsed_port)

    return ServiceConfiguration(
        name=name,
        cpu=str(cpu),
        memory=str(memory),
        port=parsed_port,
        image=image or None,
        load_balancer=load_balancer,
        rules=parse_rules(rules, load_balancer),
        env_vars=parse_env_vars(env_vars),
    )
