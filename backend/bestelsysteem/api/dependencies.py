"""FastAPI dependencies: services from app state and role guards."""

from typing import Any, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from bestelsysteem.auth import ROLE_ADMIN, AuthService
from bestelsysteem.exceptions import AuthenticationError, PermissionDeniedError
from bestelsysteem.services.catalog import CatalogStore
from bestelsysteem.services.notifications import NotificationBus
from bestelsysteem.services.orders import OrderEngine
from bestelsysteem.services.statistics import StatisticsService
from bestelsysteem.services.systems import SystemSettingsService
from bestelsysteem.services.topology import TopologyStore

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


# ---------- Services ----------

def get_auth(request: Request) -> AuthService:
    return request.app.state.auth


def get_systems(request: Request) -> SystemSettingsService:
    return request.app.state.systems


def get_catalog(request: Request) -> CatalogStore:
    return request.app.state.catalog


def get_topology(request: Request) -> TopologyStore:
    return request.app.state.topology


def get_orders(request: Request) -> OrderEngine:
    return request.app.state.orders


def get_statistics(request: Request) -> StatisticsService:
    return request.app.state.statistics


def get_bus(request: Request) -> NotificationBus:
    return request.app.state.bus


# ---------- Auth guards ----------

def get_current_session(
    token: Optional[str] = Depends(oauth2_scheme),
    auth: AuthService = Depends(get_auth),
) -> Dict[str, Any]:
    """Decode the bearer token into its claims (sub = system id, role)."""
    if not token:
        raise AuthenticationError("Not authenticated")
    return auth.decode_token(token)


def require_user(session: Dict[str, Any] = Depends(get_current_session)) -> Dict[str, Any]:
    """Any logged-in role (user or admin)."""
    return session


def require_admin(session: Dict[str, Any] = Depends(get_current_session)) -> Dict[str, Any]:
    """Require the admin role."""
    if session.get("role") != ROLE_ADMIN:
        raise PermissionDeniedError("Admin privileges required")
    return session
