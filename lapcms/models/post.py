from typing import TYPE_CHECKING, List, Optional
from datetime import datetime
from enum import Enum
from sqlmodel import Field, Relationship, SQLModel, Column
from sqlalchemy import JSON, Text

from lapcms.models.links import PostCategoryLink, PostTagLink

if TYPE_CHECKING:
    from lapcms.models.category import Category
    from lapcms.models.comment import Comment
    from lapcms.models.tag import Tag
    from lapcms.models.user import User

class PostStatus(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"

class PostType(str, Enum):
    POST = "POST"
    PAGE = "PAGE"

class Post(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # Author
    author_id: int = Field(foreign_key="user.id", index=True)

    # Content
    title: str = Field(index=True)
    slug: str = Field(unique=True, index=True)  # URL-friendly title
    excerpt: Optional[str] = Field(default=None, sa_column=Column(Text))
    content: Optional[dict] = Field(default=None, sa_column=Column(JSON))  # editor block structure
    featured_image: Optional[str] = None
    type: PostType = Field(default=PostType.POST)

    # Status
    status: PostStatus = Field(default=PostStatus.DRAFT, index=True)
    published_at: Optional[datetime] = Field(default=None, index=True)  # set on first publish only

    # SEO
    meta_title: Optional[str] = None
    meta_description: Optional[str] = Field(default=None, sa_column=Column(Text))
    meta_keywords: Optional[str] = None
    canonical_url: Optional[str] = None
    og_title: Optional[str] = None
    og_description: Optional[str] = Field(default=None, sa_column=Column(Text))
    og_image: Optional[str] = None
    twitter_title: Optional[str] = None
    twitter_description: Optional[str] = Field(default=None, sa_column=Column(Text))
    no_index: bool = Field(default=False)
    no_follow: bool = Field(default=False)

    # Relations
    author: Optional["User"] = Relationship()
    categories: List["Category"] = Relationship(back_populates="posts", link_model=PostCategoryLink)
    tags: List["Tag"] = Relationship(back_populates="posts", link_model=PostTagLink)
    comments: List["Comment"] = Relationship(
        back_populates="post",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
