from pytest_archon import archrule


def test_core_is_storage_agnostic() -> None:
    """
    Nothing outside the Redis adapters may import redis.
    The core runs with in-memory adapters only.
    """
    (
        archrule("core_is_storage_agnostic")
        .match("mfa_core*")
        .exclude("mfa_core.adapters.redis*")
        .should_not_import("redis*")
        .check("mfa_core")
    )


def test_domain_isolation() -> None:
    """
    Domain layer should be self-contained.
    It must not import from adapters, ports, services or the facade.
    """
    (
        archrule("domain_isolation")
        .match("mfa_core.domain*")
        .should_not_import("mfa_core.adapters*")
        .should_not_import("mfa_core.ports")
        .should_not_import("mfa_core.service")
        .should_not_import("mfa_core.api")
        .check("mfa_core")
    )


def test_ports_layering() -> None:
    """
    Ports (interfaces) should not depend on Adapters (implementations).
    """
    (
        archrule("ports_layering")
        .match("mfa_core.ports")
        .match("mfa_core.locking")
        .match("mfa_core.notifications")
        .should_not_import("mfa_core.adapters*")
        .check("mfa_core")
    )


def test_services_do_not_depend_on_adapters() -> None:
    """
    Session manager and principal-keyed services only talk to ports.
    """
    (
        archrule("services_use_ports")
        .match("mfa_core.service")
        .match("mfa_core.rate_limit")
        .match("mfa_core.failures")
        .match("mfa_core.suspension")
        .match("mfa_core.factors*")
        .should_not_import("mfa_core.adapters*")
        .check("mfa_core")
    )


def test_primitives_isolation() -> None:
    """
    Primitives are the lowest level.
    They must not import from domain, services or adapters.
    """
    (
        archrule("primitives_isolation")
        .match("mfa_core.exceptions")
        .match("mfa_core.clock")
        .match("mfa_core.codes")
        .should_not_import("mfa_core.domain*")
        .should_not_import("mfa_core.service")
        .should_not_import("mfa_core.adapters*")
        .check("mfa_core")
    )


def test_facade_is_the_outermost_layer() -> None:
    """
    Only the package root may import the presentation facade.
    """
    (
        archrule("facade_outermost")
        .match("mfa_core*")
        .exclude("mfa_core")
        .exclude("mfa_core.api")
        .should_not_import("mfa_core.api")
        .check("mfa_core")
    )
