from typing import TYPE_CHECKING, List, Optional
from datetime import datetime
from sqlmodel import Field, Relationship, SQLModel

from lapcms.models.links import PostCategoryLink

if TYPE_CHECKING:
    from lapcms.models.post import Post

class Category(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    name: str = Field(index=True)
    slug: str = Field(unique=True, index=True)
    description: Optional[str] = None
    color: Optional[str] = None  # hex colour used by the admin panel

    posts: List["Post"] = Relationship(back_populates="categories", link_model=PostCategoryLink)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
