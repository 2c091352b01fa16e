"""
Declarative authorization policy.

Every permission check in the API goes through `authorize`, which looks up
(resource, action, role) in POLICY. OWN grants access only when the acting
user owns the target row.
"""
from enum import Enum
from typing import Dict, Optional, Tuple

from lapcms.core.errors import AuthorizationError, Unauthorized
from lapcms.models.user import User, UserRole


class Access(str, Enum):
    NONE = "none"
    OWN = "own"
    ANY = "any"


ADMIN = UserRole.ADMIN
USER = UserRole.USER

POLICY: Dict[Tuple[str, str, UserRole], Access] = {
    # Posts: authors manage their own, admins manage everything
    ("post", "create", ADMIN): Access.ANY,
    ("post", "create", USER): Access.ANY,
    ("post", "read", ADMIN): Access.ANY,
    ("post", "read", USER): Access.ANY,
    ("post", "update", ADMIN): Access.ANY,
    ("post", "update", USER): Access.OWN,
    ("post", "delete", ADMIN): Access.ANY,
    ("post", "delete", USER): Access.OWN,
    # Taxonomy is shared by every authenticated user
    ("category", "write", ADMIN): Access.ANY,
    ("category", "write", USER): Access.ANY,
    ("tag", "write", ADMIN): Access.ANY,
    ("tag", "write", USER): Access.ANY,
    # User management is admin-only
    ("user", "read", ADMIN): Access.ANY,
    ("user", "create", ADMIN): Access.ANY,
    ("user", "update", ADMIN): Access.ANY,
    ("user", "delete", ADMIN): Access.ANY,
    # Sites
    ("site", "update", ADMIN): Access.ANY,
    ("site", "update", USER): Access.OWN,
    ("dashboard", "read", ADMIN): Access.ANY,
    ("dashboard", "read", USER): Access.ANY,
    ("upload", "create", ADMIN): Access.ANY,
    ("upload", "create", USER): Access.ANY,
}

# Message/error used when a check fails, per resource
_DENIALS = {
    "post": lambda: Unauthorized(),
    "user": lambda: AuthorizationError("Unauthorized - Admin access required"),
}


def access_for(role: UserRole, resource: str, action: str) -> Access:
    return POLICY.get((resource, action, role), Access.NONE)


def can(user: User, resource: str, action: str, owner_id: Optional[int] = None) -> bool:
    access = access_for(user.role, resource, action)
    if access == Access.ANY:
        return True
    if access == Access.OWN:
        return owner_id is not None and owner_id == user.id
    return False


def authorize(user: User, resource: str, action: str, owner_id: Optional[int] = None) -> None:
    if not can(user, resource, action, owner_id):
        denial = _DENIALS.get(resource)
        if denial:
            raise denial()
        raise AuthorizationError(f"Not allowed to {action} {resource}")
