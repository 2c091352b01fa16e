from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, EmailStr

from lapcms.core.log import log_auth
from lapcms.core.rate_limit import rate_limit
from lapcms.deps import client_ip, get_auth_service, get_current_user, get_site_service, get_user_service
from lapcms.models.user import User, UserRole
from lapcms.serializers import pagination, site_to_dict, user_to_dict
from lapcms.services.auth import AuthService
from lapcms.services.sites import SiteService
from lapcms.services.users import UserService

router = APIRouter(dependencies=[Depends(rate_limit("general"))])


class UserCreate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    role: Optional[UserRole] = None
    bio: Optional[str] = None
    isActive: Optional[bool] = None
    siteName: Optional[str] = None


class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    bio: Optional[str] = None
    avatar: Optional[str] = None
    isActive: Optional[bool] = None


class PasswordUpdate(BaseModel):
    currentPassword: Optional[str] = None
    newPassword: Optional[str] = None


class SiteUpdate(BaseModel):
    name: Optional[str] = None
    domain: Optional[str] = None
    description: Optional[str] = None


# Self-service

@router.put("/update/password")
def update_password(
    data: PasswordUpdate,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    service.change_password(current_user.id, data.currentPassword, data.newPassword, ip_address=client_ip(request))
    return {"success": True, "message": "Password updated successfully"}


@router.put("/regenerate-api-key")
def regenerate_api_key(
    request: Request,
    current_user: User = Depends(get_current_user),
    site_service: SiteService = Depends(get_site_service),
):
    site = site_service.regenerate_api_key(current_user.id)
    log_auth("api_key_regenerated", current_user.id, client_ip(request), True)
    return {"success": True, "message": "API key regenerated successfully", "newApiKey": site.api_key}


@router.put("/update-site")
def update_site(
    data: SiteUpdate,
    request: Request,
    current_user: User = Depends(get_current_user),
    site_service: SiteService = Depends(get_site_service),
):
    site = site_service.update_site(current_user.id, data.name, data.domain, data.description)
    log_auth("site_updated", current_user.id, client_ip(request), True)
    return {"success": True, "message": "Site information updated successfully", "site": site_to_dict(site)}


# Administration

@router.post("", status_code=201)
@router.post("/", status_code=201, include_in_schema=False)
def create_user(
    data: UserCreate,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    user, site = service.create_user(
        current_user,
        name=data.name,
        email=data.email,
        password=data.password,
        role=data.role,
        bio=data.bio,
        is_active=data.isActive,
        site_name=data.siteName,
        ip_address=client_ip(request),
    )
    return {
        "success": True,
        "user": user_to_dict(user, site),
        "site": site_to_dict(site),
        "message": "User created successfully",
    }


@router.get("")
@router.get("/", include_in_schema=False)
def read_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    users, total = service.list_users(current_user, page, limit)
    return {
        "success": True,
        "users": [user_to_dict(user, service.sites.get_primary_site(user.id)) for user in users],
        "pagination": pagination(page, limit, total),
    }


@router.get("/{user_id}")
def read_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    user, sites = service.get_user_with_sites(current_user, user_id)
    return {
        "success": True,
        "user": user_to_dict(user, service.sites.get_primary_site(user.id)),
        "sites": [site_to_dict(site) for site in sites],
    }


@router.put("/{user_id}")
def update_user(
    user_id: int,
    data: UserUpdate,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    changes = data.model_dump(exclude_unset=True)
    if "isActive" in changes:
        changes["is_active"] = changes.pop("isActive")
    user = service.update_user(current_user, user_id, changes)
    return {
        "success": True,
        "user": user_to_dict(user, service.sites.get_primary_site(user.id)),
        "message": "User updated successfully",
    }


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    service.delete_user(current_user, user_id, ip_address=client_ip(request))
    return {"success": True, "message": "User deleted successfully"}
