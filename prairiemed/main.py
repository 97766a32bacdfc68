from typing import Optional
from fastapi import FastAPI
from fastapi.exceptions import HTTPException as FastAPIHTTPException
from starlette.exceptions import HTTPException as StarletteHTTPException

from prairiemed.core.config import AuthConfig
from prairiemed.core.logger import setup_logging
from prairiemed.core.tokens import TokenIssuer
from prairiemed.middleware.cors import configure_cors
from prairiemed.middleware.logging import RequestLoggerMiddleware
from prairiemed.middleware.auth import JWTMiddleware
from prairiemed.middleware import error_handler
from prairiemed.services.auth_service import AuthService

# Routers
from prairiemed.routers import auth as auth_router
from prairiemed.routers import admin as admin_router
from prairiemed.routers import health as health_router
from prairiemed.routers import i18n as i18n_router


def create_app(config: Optional[AuthConfig] = None, issuer: Optional[TokenIssuer] = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    ``config`` defaults to one built from the environment; tests pass their own.
    """
    setup_logging()
    config = config or AuthConfig.from_settings()
    issuer = issuer or TokenIssuer(config)

    description = (
        "PrairieMed Auth API.\n\n"
        "Login, refresh-token rotation, logout and role-based access control "
        "for the hospital administration services."
    )

    openapi_tags = [
        {"name": "authentication", "description": "Login, token refresh, logout and the current caller."},
        {"name": "admin", "description": "Administrative session management."},
        {"name": "i18n", "description": "Locale preference."},
        {"name": "health", "description": "Health checks and service status endpoints."},
    ]

    app = FastAPI(
        title="PrairieMed Auth API",
        version="0.1.0",
        description=description,
        openapi_tags=openapi_tags,
    )

    # Read-only after startup
    app.state.auth_service = AuthService(config, issuer=issuer)

    # Middleware
    configure_cors(app)
    app.add_middleware(RequestLoggerMiddleware)
    app.add_middleware(JWTMiddleware, issuer=issuer)

    # Exception handlers
    app.add_exception_handler(FastAPIHTTPException, error_handler.http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, error_handler.http_exception_handler)
    app.add_exception_handler(Exception, error_handler.unhandled_exception_handler)

    # Include routers
    app.include_router(health_router.router)
    app.include_router(auth_router.router)
    app.include_router(admin_router.router)
    app.include_router(i18n_router.router)

    return app
