"""Login and logout against the live system."""

from fastapi import APIRouter, Depends

from bestelsysteem.api.dependencies import get_systems
from bestelsysteem.schemas import LoginRequest, LoginResponse
from bestelsysteem.services.systems import SystemSettingsService

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse, summary="Login with the user or admin password")
async def login(request: LoginRequest, systems: SystemSettingsService = Depends(get_systems)):
    """
    Check a password against the live system.

    A wrong password is not an error: the response has success=false and no
    token.
    """
    result = systems.login(request.password)
    return LoginResponse(
        success=result.success,
        is_valid_password=result.is_valid_password,
        role=result.role,
        access_token=result.access_token,
    )


@router.post("/logout", summary="Logout")
async def logout():
    """Tokens are stateless; the client drops its token."""
    return {"success": True}
