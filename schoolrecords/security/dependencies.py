from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from schoolrecords.authz.engine import AuthorizationEngine
from schoolrecords.authz.errors import AuthenticationError, PolicyConfigError
from schoolrecords.authz.ownership import OwnershipResolver
from schoolrecords.authz.policy import PolicyRegistry
from schoolrecords.authz.principal import Principal
from schoolrecords.db.facts import SqlOwnershipFacts
from schoolrecords.db.session import get_db
from schoolrecords.security.config import SecurityConfig
from schoolrecords.security.decorators import POLICY_ATTR, operation_name
from schoolrecords.security.tokens import TokenPrincipalResolver

logger = logging.getLogger(__name__)


def get_security_config(request: Request) -> SecurityConfig:
    config = getattr(request.app.state, "security_config", None)
    if config is None:
        raise RuntimeError("Security config not loaded. Was the app built with create_app()?")
    return config


def get_policy_registry(request: Request) -> PolicyRegistry:
    registry = getattr(request.app.state, "policy_registry", None)
    if registry is None:
        raise RuntimeError("Policy registry not built. Was the app built with create_app()?")
    return registry


def get_principal_resolver(request: Request) -> TokenPrincipalResolver:
    resolver = getattr(request.app.state, "principal_resolver", None)
    if resolver is None:
        raise RuntimeError("Principal resolver not configured. Was the app built with create_app()?")
    return resolver


def get_current_principal(request: Request) -> Principal:
    principal = getattr(request.state, "principal", None)
    if principal is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return principal


def enforce_security(
    request: Request,
    config: SecurityConfig = Depends(get_security_config),
    registry: PolicyRegistry = Depends(get_policy_registry),
    resolver: TokenPrincipalResolver = Depends(get_principal_resolver),
    db: Session = Depends(get_db, use_cache=False),
) -> None:
    """
    Global security dependency.

    Runs after routing, so the endpoint and its path parameters are known.
    Denials raise before any handler code runs; the app's exception handlers
    render them as 401/403 `{"message": ...}`.
    """

    endpoint = request.scope.get("endpoint")
    if endpoint is None:
        return

    operation = operation_name(endpoint)
    if config.is_public(operation):
        return

    if operation not in registry and getattr(endpoint, POLICY_ATTR, None) is not None:
        # Declared on the handler but absent from the registry.
        logger.error("Operation %s declares a policy missing from the registry", operation)
        raise PolicyConfigError(f"operation {operation!r} is not registered")

    principal: Principal | None
    try:
        principal = resolver.resolve(request.headers.get(config.auth.authorization_header))
    except AuthenticationError as exc:
        logger.info(
            "Authentication failed path=%s method=%s reason=%s", request.url.path, request.method, exc.message
        )
        principal = None

    engine = AuthorizationEngine(registry, OwnershipResolver(SqlOwnershipFacts(db)))
    arguments = {**request.query_params, **request.path_params}

    engine.decide(principal, operation, arguments).raise_for_denial()
    request.state.principal = principal
