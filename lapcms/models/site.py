import secrets
from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel

def generate_api_key() -> str:
    return secrets.token_hex(32)

class Site(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # Owner (one site per user in practice)
    user_id: int = Field(foreign_key="user.id", index=True)

    name: str
    domain: Optional[str] = Field(default=None, index=True)  # None accepts any origin
    description: Optional[str] = None

    # SDK access
    api_key: str = Field(default_factory=generate_api_key, unique=True, index=True)
    is_active: bool = Field(default=True)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
