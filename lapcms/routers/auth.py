from typing import Optional
from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, EmailStr, Field

from lapcms.core.config import Settings
from lapcms.core.context import Identity
from lapcms.core.log import log_auth
from lapcms.core.rate_limit import rate_limit
from lapcms.deps import (
    client_ip,
    get_auth_service,
    get_current_identity,
    get_current_user,
    get_optional_identity,
    get_settings,
    get_site_service,
)
from lapcms.models.user import User
from lapcms.serializers import user_to_dict
from lapcms.services.auth import AuthService
from lapcms.services.sites import SiteService

router = APIRouter()


class LoginRequest(BaseModel):
    email: EmailStr  # email-validator also caps the length at 254
    password: str = Field(min_length=1)


def set_auth_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=settings.is_production,  # HTTPS only in production
        samesite="lax",
        path="/",
    )


@router.post("/login", dependencies=[Depends(rate_limit("auth"))])
def login(
    data: LoginRequest,
    request: Request,
    response: Response,
    service: AuthService = Depends(get_auth_service),
    site_service: SiteService = Depends(get_site_service),
    settings: Settings = Depends(get_settings),
):
    """Check credentials and set the auth cookie."""
    user, token = service.authenticate_user(
        data.email,
        data.password,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    set_auth_cookie(response, token, settings)
    return {
        "success": True,
        "user": user_to_dict(user, site_service.get_primary_site(user.id)),
        "message": "Login successful",
    }


@router.post("/logout")
def logout(
    request: Request,
    response: Response,
    identity: Optional[Identity] = Depends(get_optional_identity),
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    user_id = identity.user_id if identity else None
    if user_id is not None:
        service.close_sessions(user_id)

    response.delete_cookie(
        key=settings.AUTH_COOKIE_NAME,
        path="/",
        secure=settings.is_production,
        httponly=True,
        samesite="lax",
    )
    log_auth("logout_success", user_id, client_ip(request), True)
    return {"success": True, "message": "Logged out successfully"}


@router.get("/me")
def read_me(
    current_user: User = Depends(get_current_user),
    site_service: SiteService = Depends(get_site_service),
):
    return {"success": True, "user": user_to_dict(current_user, site_service.get_primary_site(current_user.id))}


@router.post("/refresh")
def refresh_token(
    response: Response,
    identity: Identity = Depends(get_current_identity),
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    """Extend the current session and issue a fresh token for it."""
    token = service.refresh_session(identity.user_id, identity.email, identity.session_id)
    set_auth_cookie(response, token, settings)
    return {"success": True, "message": "Token refreshed successfully"}
