"""
Turn a bearer credential into a ``Principal``.

Before trusting anything in the token we verify, with PyJWT:

1. the **signature** (HS256 shared secret or RS256 public key),
2. the **issuer** and **audience**, when configured,
3. the **lifetime** (``exp`` required, ``nbf`` honored, with leeway).

Only then are claims read: the subject must be a UUID and the roles claim
(``groups`` by default, a list or a single string) must name at least one
known role. Anything else is an ``AuthenticationError``.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from schoolrecords.authz.errors import AuthenticationError
from schoolrecords.authz.principal import Principal, Role
from schoolrecords.security.config import AuthConfig

logger = logging.getLogger(__name__)


def _extract_principal(payload: dict[str, Any], config: AuthConfig) -> Principal:
    raw_subject = payload.get(config.subject_claim)
    try:
        principal_id = uuid.UUID(str(raw_subject))
    except ValueError as exc:
        logger.info("Token subject is not a UUID")
        raise AuthenticationError("Invalid token: subject") from exc

    raw_roles = payload.get(config.roles_claim)
    if isinstance(raw_roles, str):
        candidates: list[object] = [raw_roles]
    elif isinstance(raw_roles, list):
        candidates = list(raw_roles)
    else:
        candidates = []

    roles = frozenset(role for role in (Role.parse(c) for c in candidates) if role is not None)
    if not roles:
        logger.info("Token carries no recognizable role claim=%s", config.roles_claim)
        raise AuthenticationError("Invalid token: no recognized role")

    return Principal(id=principal_id, roles=roles)


class TokenPrincipalResolver:
    """
    Resolves principals from ``Authorization: Bearer <jwt>`` header values.

    ``key`` is the HS256 secret or the RS256 public key PEM. With no key the
    resolver rejects every credential.
    """

    def __init__(self, config: AuthConfig, key: str | None) -> None:
        self._config = config
        self._key = key

    def resolve(self, authorization: str | None) -> Principal:
        if not authorization:
            raise AuthenticationError("Authentication required")

        prefix = f"{self._config.bearer_prefix} "
        if not authorization.startswith(prefix):
            logger.info("Invalid %s header format", self._config.authorization_header)
            raise AuthenticationError(
                f"Invalid {self._config.authorization_header}. Expected '{self._config.bearer_prefix} <token>'."
            )

        token = authorization[len(prefix) :].strip()
        if not token:
            raise AuthenticationError(
                f"Invalid {self._config.authorization_header}. Missing token after '{self._config.bearer_prefix}'."
            )
        return self.resolve_token(token)

    def resolve_token(self, token: str) -> Principal:
        if not self._key:
            logger.warning("No token verification key configured; rejecting credential")
            raise AuthenticationError("Token verification is not configured")

        try:
            payload = jwt.decode(
                token,
                self._key,
                algorithms=self._config.algorithms,
                audience=self._config.audience,
                issuer=self._config.issuer,
                leeway=self._config.leeway_seconds,
                options={
                    "require": ["exp", self._config.subject_claim],
                    "verify_aud": self._config.audience is not None,
                    "verify_iss": self._config.issuer is not None,
                },
            )
        except jwt.ExpiredSignatureError as e:
            logger.info("Token expired")
            raise AuthenticationError("Token expired") from e
        except jwt.InvalidIssuerError as e:
            logger.info("Token invalid issuer")
            raise AuthenticationError("Invalid token: issuer") from e
        except jwt.InvalidAudienceError as e:
            logger.info("Token invalid audience")
            raise AuthenticationError("Invalid token: audience") from e
        except jwt.InvalidTokenError as e:
            logger.info("Token invalid: %s", type(e).__name__)
            raise AuthenticationError("Invalid token") from e

        return _extract_principal(payload, self._config)


def issue_token(
    principal: Principal,
    key: str,
    config: AuthConfig,
    *,
    algorithm: str | None = None,
    expires_in: timedelta | None = None,
) -> str:
    """
    Mint a token the resolver accepts. For development tooling and tests;
    production tokens come from the identity service.
    """

    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        config.subject_claim: str(principal.id),
        config.roles_claim: sorted(r.value for r in principal.roles),
        "iat": now,
        "exp": now + (expires_in or timedelta(hours=config.token_ttl_hours)),
    }
    if config.issuer:
        payload["iss"] = config.issuer
    if config.audience:
        payload["aud"] = config.audience
    return jwt.encode(payload, key, algorithm=algorithm or config.algorithms[0])
