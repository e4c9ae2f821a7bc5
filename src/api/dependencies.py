"""FastAPI dependencies for authentication and request-scoped services.

FastAPI dependencies can't reach Neuroglia's container directly, so the
middleware in ``api.services.auth_service`` puts the AuthService and a
scoped service provider on the request state and these read them from there.

Expired bearer tokens get an explicit 401 with an RFC6750 ``WWW-Authenticate``
header so clients know to refresh.
"""

import time

import jwt
from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from api.services import AuthService
from application.services.chat_service import ChatService
from application.settings import app_settings

security_optional = HTTPBearer(auto_error=False)


def get_auth_service(request: Request) -> AuthService:
    """Get AuthService from request state (injected by middleware).

    Raises:
        RuntimeError: If AuthService not found in request state
    """
    auth_service = getattr(request.state, "auth_service", None)
    if auth_service is None:
        raise RuntimeError("AuthService not found in request state. Ensure DI middleware is properly configured.")
    return auth_service


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(security_optional),
) -> dict:
    """Get the current user from the JWT bearer token.

    Returns:
        User information dictionary with ``user_id`` and ``roles``

    Raises:
        HTTPException: 401 if the token is missing, malformed, expired or invalid
    """
    token = credentials.credentials if credentials else None
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated. Provide a Bearer token.",
            headers={"WWW-Authenticate": 'Bearer realm="conversation-host"'},
        )

    # Pre-check expiry to give clearer feedback than a generic invalid-token error
    try:
        unverified = jwt.decode(token, options={"verify_signature": False})
    except (jwt.PyJWTError, ValueError, TypeError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid bearer token format.",
            headers={"WWW-Authenticate": 'Bearer error="invalid_token", error_description="Malformed token"'},
        )
    exp = unverified.get("exp")
    if isinstance(exp, int) and exp < int(time.time()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Bearer token expired. Re-authorize to obtain a new access token.",
            headers={"WWW-Authenticate": 'Bearer error="invalid_token", error_description="The access token expired"'},
        )

    user = get_auth_service(request).get_user_from_jwt(token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired bearer token.",
            headers={"WWW-Authenticate": 'Bearer error="invalid_token", error_description="Invalid or expired token"'},
        )
    return user


async def require_admin(request: Request, user: dict = Depends(get_current_user)) -> dict:
    """Require the configured admin role.

    Raises:
        HTTPException: 403 if the user lacks the admin role
    """
    if not get_auth_service(request).check_roles(user, [app_settings.admin_role]):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user


def get_request_api_key(request: Request) -> str | None:
    """The caller-supplied model credential, when request keys are enabled."""
    if not app_settings.allow_request_api_keys:
        return None
    return request.headers.get(app_settings.request_api_key_header) or None


def get_chat_service(request: Request) -> ChatService:
    """Resolve the scoped ChatService from the request's service provider."""
    service_provider = getattr(request.state, "service_provider", None)
    if service_provider is None:
        raise RuntimeError("Scoped service provider not found in request state. Ensure DI middleware is properly configured.")
    return service_provider.get_required_service(ChatService)
