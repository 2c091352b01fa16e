from typing import Optional
from datetime import datetime
from enum import Enum
from sqlmodel import Field, SQLModel

class UserRole(str, Enum):
    ADMIN = "ADMIN"  # Full access, user management
    USER = "USER"  # Manages own posts and site

class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # Basic Info
    email: str = Field(unique=True, index=True)  # stored lower-cased
    name: Optional[str] = None
    password_hash: str

    # Profile
    avatar: Optional[str] = None
    bio: Optional[str] = None

    # Account Status
    role: UserRole = Field(default=UserRole.USER)
    is_active: bool = Field(default=True)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
