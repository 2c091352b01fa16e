from typing import TYPE_CHECKING, Optional
from datetime import datetime
from sqlmodel import Field, Relationship, SQLModel
from sqlalchemy import Text, Column

if TYPE_CHECKING:
    from lapcms.models.post import Post

class Comment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # References
    post_id: int = Field(foreign_key="post.id", index=True)
    author_id: int = Field(foreign_key="user.id", index=True)

    content: str = Field(sa_column=Column(Text))

    post: Optional["Post"] = Relationship(back_populates="comments")

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
