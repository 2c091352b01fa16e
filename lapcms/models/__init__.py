# Import all models to register them with SQLModel
from lapcms.models.user import User, UserRole
from lapcms.models.site import Site, generate_api_key
from lapcms.models.links import PostCategoryLink, PostTagLink
from lapcms.models.category import Category
from lapcms.models.tag import Tag
from lapcms.models.post import Post, PostStatus, PostType
from lapcms.models.comment import Comment
from lapcms.models.session import AuthSession

__all__ = [
    "User",
    "UserRole",
    "Site",
    "generate_api_key",
    "PostCategoryLink",
    "PostTagLink",
    "Category",
    "Tag",
    "Post",
    "PostStatus",
    "PostType",
    "Comment",
    "AuthSession",
]
