from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from schoolrecords.authz.errors import AuthenticationError, AuthorizationError
from schoolrecords.db.init_db import init_db
from schoolrecords.logging_config import configure_app_logging
from schoolrecords.routers import assignments, associations, classes, health, students, users
from schoolrecords.security.config import load_security_config
from schoolrecords.security.dependencies import enforce_security
from schoolrecords.security.registry import build_policy_registry
from schoolrecords.security.tokens import TokenPrincipalResolver
from schoolrecords.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        configure_app_logging(settings.log_level)
        logger.info("App startup beginning")

        if settings.resolved_verification_key() is None:
            raise RuntimeError("Set SCHOOL_JWT_SECRET or SCHOOL_JWT_PUBLIC_KEY_PATH before starting the API")

        init_db(seed=settings.seed_demo_data)
        logger.info("Database initialized (tables ensured, seed=%s)", settings.seed_demo_data)

        yield

    # Global dependency: every routed request is authorized before its handler runs.
    app = FastAPI(title="School Records API", dependencies=[Depends(enforce_security)], lifespan=lifespan)

    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(classes.router)
    app.include_router(students.router)
    app.include_router(assignments.router)
    app.include_router(associations.router)

    # Policies are static: resolve them once, against the final route table.
    security_config = load_security_config(settings.resolved_security_config_path())
    app.state.security_config = security_config
    app.state.policy_registry = build_policy_registry(app.routes, security_config)
    app.state.principal_resolver = TokenPrincipalResolver(security_config.auth, settings.resolved_verification_key())
    logger.info("Loaded security config: %s", settings.resolved_security_config_path())

    @app.exception_handler(AuthorizationError)
    async def _authorization_error(request: Request, exc: AuthorizationError) -> JSONResponse:
        if isinstance(exc, AuthenticationError):
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"message": exc.message},
                headers={"WWW-Authenticate": security_config.auth.bearer_prefix},
            )
        return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"message": exc.message})

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"message": str(exc.detail)}, headers=exc.headers)

    return app


app = create_app()
