from typing import Optional
from fastapi import Depends, Header, Request, Response
from jose import JWTError
from sqlmodel import Session

from lapcms.core.config import Settings
from lapcms.core.context import Identity, SiteContext
from lapcms.core.errors import TokenInvalid, TokenMissing, UserNotFound
from lapcms.core.security import decode_access_token, extract_bearer_token
from lapcms.db.session import get_session
from lapcms.models.category import Category
from lapcms.models.tag import Tag
from lapcms.models.user import User
from lapcms.services.auth import AuthService
from lapcms.services.dashboard import DashboardService
from lapcms.services.domain_gate import check_origin, cors_headers
from lapcms.services.posts import PostService
from lapcms.services.sites import SiteService
from lapcms.services.storage import ObjectStorage
from lapcms.services.taxonomy import TaxonomyService
from lapcms.services.users import UserService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> ObjectStorage:
    return request.app.state.storage


def client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


# Services

def get_auth_service(session: Session = Depends(get_session), settings: Settings = Depends(get_settings)) -> AuthService:
    return AuthService(session, settings)

def get_site_service(session: Session = Depends(get_session), settings: Settings = Depends(get_settings)) -> SiteService:
    return SiteService(session, settings)

def get_user_service(session: Session = Depends(get_session), settings: Settings = Depends(get_settings)) -> UserService:
    return UserService(session, settings)

def get_post_service(session: Session = Depends(get_session)) -> PostService:
    return PostService(session)

def get_category_service(session: Session = Depends(get_session)) -> TaxonomyService:
    return TaxonomyService(session, Category)

def get_tag_service(session: Session = Depends(get_session)) -> TaxonomyService:
    return TaxonomyService(session, Tag)

def get_dashboard_service(session: Session = Depends(get_session)) -> DashboardService:
    return DashboardService(session)


# Authentication

def _request_token(request: Request, settings: Settings) -> Optional[str]:
    # The httpOnly cookie wins over the Authorization header
    token = request.cookies.get(settings.AUTH_COOKIE_NAME)
    if token:
        return token
    return extract_bearer_token(request.headers.get("authorization"))


def _resolve_identity(token: str, settings: Settings, service: AuthService) -> Identity:
    """Decode the token and check that its login session is still open."""
    try:
        payload = decode_access_token(token, settings)
    except JWTError:
        raise TokenInvalid()
    identity = Identity(
        user_id=int(payload["userId"]),
        email=payload["email"],
        session_id=payload.get("sid"),
    )
    if not service.is_session_active(identity.session_id, identity.user_id):
        raise TokenInvalid("Session has ended, please log in again")
    return identity


def get_current_identity(
    request: Request,
    settings: Settings = Depends(get_settings),
    service: AuthService = Depends(get_auth_service),
) -> Identity:
    token = _request_token(request, settings)
    if not token:
        raise TokenMissing()
    identity = _resolve_identity(token, settings, service)
    request.state.user_id = identity.user_id
    return identity


def get_optional_identity(
    request: Request,
    settings: Settings = Depends(get_settings),
    service: AuthService = Depends(get_auth_service),
) -> Optional[Identity]:
    token = _request_token(request, settings)
    if not token:
        return None
    try:
        return _resolve_identity(token, settings, service)
    except TokenInvalid:
        return None


def get_current_user(
    identity: Identity = Depends(get_current_identity),
    session: Session = Depends(get_session),
) -> User:
    user = session.get(User, identity.user_id)
    if not user:
        raise UserNotFound("User not found")
    return user


def get_optional_user(
    identity: Optional[Identity] = Depends(get_optional_identity),
    session: Session = Depends(get_session),
) -> Optional[User]:
    if identity is None:
        return None
    return session.get(User, identity.user_id)


# SDK

def get_sdk_site(
    request: Request,
    response: Response,
    x_api_key: Optional[str] = Header(default=None),
    site_service: SiteService = Depends(get_site_service),
) -> SiteContext:
    """Resolve the calling site from its API key and enforce its domain."""
    site = site_service.resolve_api_key(x_api_key)
    origin = check_origin(site.domain, request.headers.get("origin"), request.headers.get("referer"))
    if origin:
        response.headers.update(cors_headers(origin))
    return site
