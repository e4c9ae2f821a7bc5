"""Bearer token authentication and per-request service scopes."""

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

import jwt
from starlette.responses import Response

from application.settings import Settings, app_settings

if TYPE_CHECKING:
    from fastapi import FastAPI, Request
    from neuroglia.hosting.web import WebApplicationBuilder


class AuthService:
    """Validates JWT bearer tokens and maps their claims to a user dict."""

    _log = logging.getLogger("AuthService")

    def __init__(self, settings: Settings):
        self.settings = settings

    def get_user_from_jwt(self, token: str) -> dict | None:
        """Verify a token with the configured secret and return the user, or None."""
        if not token:
            return None
        try:
            payload = jwt.decode(
                token,
                self.settings.jwt_secret,
                algorithms=[self.settings.jwt_algorithm],
                audience=self.settings.jwt_audience,
                options={"verify_aud": bool(self.settings.jwt_audience)},
            )
        except jwt.ExpiredSignatureError:
            self._log.info("Bearer token expired")
            return None
        except jwt.InvalidTokenError as e:
            self._log.info(f"Bearer token invalid: {e}")
            return None
        return self._map_claims(payload)

    def _map_claims(self, payload: dict) -> dict | None:
        """Normalize JWT claims to internal user representation."""
        user_id = payload.get(self.settings.jwt_user_id_claim)
        if not user_id:
            self._log.info(f"Bearer token carries no '{self.settings.jwt_user_id_claim}' claim")
            return None
        # Roles may appear under realm_access.roles in Keycloak access tokens
        roles: list[Any] = []
        if isinstance(payload.get("realm_access"), dict):
            roles = payload.get("realm_access", {}).get("roles", []) or []
        elif isinstance(payload.get("roles"), list):
            roles = list(payload.get("roles") or [])
        return {
            "sub": payload.get("sub"),
            "user_id": str(user_id),
            "username": payload.get("preferred_username") or payload.get("username"),
            "email": payload.get("email"),
            "name": payload.get("name"),
            "roles": roles,
        }

    def check_roles(self, user: dict, required_roles: list[str]) -> bool:
        """Check if user has any of the required roles."""
        user_roles = user.get("roles", [])
        return any(role in user_roles for role in required_roles)

    @staticmethod
    def configure(builder: "WebApplicationBuilder") -> None:
        builder.services.add_singleton(AuthService, singleton=AuthService(app_settings))

    @staticmethod
    def configure_middleware(app: "FastAPI") -> None:
        """Configure the middleware preparing request state for FastAPI dependencies.

        For every request it:
        1. Creates a scoped service provider (for scoped services like ChatService)
        2. Injects the AuthService singleton

        Args:
            app: The FastAPI application
        """

        @app.middleware("http")
        async def inject_services_middleware(request: "Request", call_next: Callable[["Request"], Awaitable[Response]]) -> Response:
            async with app.state.services.create_async_scope() as scoped_provider:
                request.state.service_provider = scoped_provider
                request.state.auth_service = app.state.services.get_required_service(AuthService)
                response = await call_next(request)
                return response

        logging.getLogger(__name__).info("✅ AuthService middleware configured (with scoped service provider)")
