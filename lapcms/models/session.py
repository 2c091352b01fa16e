from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel

class AuthSession(SQLModel, table=True):
    """Server-side record written next to every issued login token."""
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    expires_at: datetime
    revoked_at: Optional[datetime] = None
