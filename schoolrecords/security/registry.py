from __future__ import annotations

import logging
from collections.abc import Iterable

from starlette.routing import BaseRoute

from schoolrecords.authz.errors import PolicyConfigError
from schoolrecords.authz.policy import PolicyRegistry
from schoolrecords.security.config import SecurityConfig
from schoolrecords.security.decorators import collect_route_policies, route_operations

logger = logging.getLogger(__name__)


def build_policy_registry(routes: Iterable[BaseRoute], config: SecurityConfig) -> PolicyRegistry:
    """
    Build the registry once, at app construction.

    1) decorator metadata on route handlers
    2) `operations:` entries from the YAML config (override 1)

    Config entries must name a real operation, and public operations cannot
    also carry a policy.
    """

    routes = list(routes)
    known = route_operations(routes)
    if not known:
        raise PolicyConfigError("no API routes found; policies cannot be collected")

    registry = PolicyRegistry(collect_route_policies(routes))

    for policy in config.operation_policies():
        if policy.operation not in known:
            raise PolicyConfigError(f"config declares unknown operation {policy.operation!r}")
        if policy.operation in registry:
            logger.info("Config overrides decorator policy for operation=%s", policy.operation)
        registry.register(policy, replace=True)

    for operation in config.model.public:
        if operation not in known:
            raise PolicyConfigError(f"config marks unknown operation {operation!r} as public")
        if operation in registry:
            raise PolicyConfigError(f"operation {operation!r} is both public and protected")

    logger.info("Policy registry built: %d declared operations, %d public", len(registry), len(config.model.public))
    return registry
