"""Typed values resolved per request and handed to route handlers by dependencies."""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Identity:
    user_id: int
    email: str
    session_id: Optional[int] = None  # AuthSession row the token was issued for


@dataclass(frozen=True)
class SiteContext:
    id: Optional[int]
    name: str
    domain: Optional[str]
    api_key: str
    is_active: bool
    user_id: Optional[int] = None
    is_test: bool = False
