from typing import TYPE_CHECKING, List, Optional
from datetime import datetime
from sqlmodel import Field, Relationship, SQLModel

from lapcms.models.links import PostTagLink

if TYPE_CHECKING:
    from lapcms.models.post import Post

class Tag(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    name: str = Field(index=True)
    slug: str = Field(unique=True, index=True)
    color: Optional[str] = None

    posts: List["Post"] = Relationship(back_populates="tags", link_model=PostTagLink)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
