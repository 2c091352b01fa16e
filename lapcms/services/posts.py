import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union
from sqlmodel import Session, func, or_, select

from lapcms.core.errors import NotFoundError, SlugExists, ValidationError
from lapcms.core.policy import authorize
from lapcms.models.category import Category
from lapcms.models.post import Post, PostStatus, PostType
from lapcms.models.tag import Tag
from lapcms.models.user import User
from lapcms.services.seo import SeoData, resolve_seo
from lapcms.services.slugs import slugify

logger = logging.getLogger(__name__)

# SeoData field -> Post column
SEO_COLUMNS = {
    "metaTitle": "meta_title",
    "metaDescription": "meta_description",
    "keywords": "meta_keywords",
    "canonicalUrl": "canonical_url",
    "ogTitle": "og_title",
    "ogDescription": "og_description",
    "ogImage": "og_image",
    "twitterTitle": "twitter_title",
    "twitterDescription": "twitter_description",
    "noIndex": "no_index",
    "noFollow": "no_follow",
}


def seo_of(post: Post) -> SeoData:
    return SeoData(**{field: getattr(post, column) for field, column in SEO_COLUMNS.items()})


def apply_seo(post: Post, seo: SeoData) -> None:
    resolved = resolve_seo(seo, post.title, post.excerpt, post.featured_image)
    for field, column in SEO_COLUMNS.items():
        setattr(post, column, getattr(resolved, field))


class PostService:
    def __init__(self, session: Session):
        self.session = session

    # Queries

    def get_post(self, post_id: int) -> Post:
        post = self.session.get(Post, post_id)
        if not post:
            raise NotFoundError("Post not found", code="POST_NOT_FOUND")
        return post

    def get_by_slug(self, slug: str) -> Optional[Post]:
        return self.session.exec(select(Post).where(Post.slug == slug)).first()

    def find(self, id_or_slug: Union[int, str], published_only: bool = False) -> Post:
        """Look a post up by slug, falling back to the numeric id.

        Slugs win so that a post whose slug is all digits ("2024") stays
        reachable by it.
        """
        post = self.get_by_slug(str(id_or_slug))
        if post is None and str(id_or_slug).isdigit():
            post = self.session.get(Post, int(id_or_slug))

        if not post or (published_only and not self.is_public(post)):
            raise NotFoundError("Post not found", code="POST_NOT_FOUND")
        return post

    def get_published_by_slug(self, slug: str) -> Post:
        post = self.get_by_slug(slug)
        if not post or not self.is_public(post):
            raise NotFoundError("Post not found", code="POST_NOT_FOUND")
        return post

    @staticmethod
    def is_public(post: Post) -> bool:
        return post.status == PostStatus.PUBLISHED and post.published_at is not None

    def list_posts(
        self,
        page: int = 1,
        limit: int = 10,
        status: Optional[PostStatus] = None,
        post_type: Optional[PostType] = None,
        category: Optional[str] = None,
        tag: Optional[str] = None,
        author_id: Optional[int] = None,
        published_only: bool = False,
        search: Optional[str] = None,
    ) -> Tuple[List[Post], int]:
        """Return one page of posts plus the total number of matches."""
        conditions = []
        if published_only:
            conditions.append(Post.status == PostStatus.PUBLISHED)
            conditions.append(Post.published_at != None)  # noqa: E711
        elif status:
            conditions.append(Post.status == status)
        if post_type:
            conditions.append(Post.type == post_type)
        if author_id is not None:
            conditions.append(Post.author_id == author_id)
        if category:
            conditions.append(Post.categories.any(Category.slug == category))
        if tag:
            conditions.append(Post.tags.any(Tag.slug == tag))
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(Post.title.ilike(pattern), Post.excerpt.ilike(pattern)))

        page = max(page, 1)
        limit = max(limit, 1)
        query = (
            select(Post)
            .where(*conditions)
            .order_by(Post.published_at.desc(), Post.created_at.desc(), Post.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        posts = list(self.session.exec(query).all())
        total = self.session.exec(select(func.count(Post.id)).where(*conditions)).one()
        return posts, total

    def list_user_posts(self, user_id: int) -> List[Post]:
        return list(self.session.exec(
            select(Post).where(Post.author_id == user_id).order_by(Post.updated_at.desc(), Post.id.desc())
        ).all())

    # Writes

    def _resolve_slug(self, slug: Optional[str], title: str) -> str:
        new_slug = slugify(slug or title)
        if not new_slug:
            raise ValidationError("Could not derive a valid slug", code="INVALID_SLUG")
        return new_slug

    def _check_slug_free(self, slug: str, post_id: Optional[int] = None) -> None:
        existing = self.get_by_slug(slug)
        if existing and existing.id != post_id:
            raise SlugExists(slug)

    def _load(self, model, ids: List[int], label: str) -> list:
        rows = []
        for item_id in dict.fromkeys(ids):
            row = self.session.get(model, item_id)
            if not row:
                raise NotFoundError(f"{label} {item_id} not found", code=f"{label.upper()}_NOT_FOUND")
            rows.append(row)
        return rows

    def create_post(
        self,
        author: User,
        title: Optional[str],
        slug: Optional[str] = None,
        content: Optional[dict] = None,
        excerpt: Optional[str] = None,
        post_type: PostType = PostType.POST,
        status: PostStatus = PostStatus.DRAFT,
        featured_image: Optional[str] = None,
        seo: Optional[SeoData] = None,
        category_ids: Optional[List[int]] = None,
        tag_ids: Optional[List[int]] = None,
    ) -> Post:
        authorize(author, "post", "create")
        if not title or not title.strip():
            raise ValidationError("Title is required", code="MISSING_TITLE")

        post_slug = self._resolve_slug(slug, title)
        self._check_slug_free(post_slug)

        post = Post(
            author_id=author.id,
            title=title,
            slug=post_slug,
            content=content,
            excerpt=excerpt,
            type=post_type,
            status=status,
            featured_image=featured_image,
            published_at=datetime.utcnow() if status == PostStatus.PUBLISHED else None,
        )
        apply_seo(post, seo or SeoData())
        if category_ids:
            post.categories = self._load(Category, category_ids, "Category")
        if tag_ids:
            post.tags = self._load(Tag, tag_ids, "Tag")

        self.session.add(post)
        self.session.commit()
        self.session.refresh(post)
        logger.info("Post %s created by user %s (slug=%s)", post.id, author.id, post.slug)
        return post

    def update_post(self, user: User, post_id: int, changes: Dict[str, Any]) -> Post:
        """Apply a partial update. Only keys present in `changes` are touched."""
        post = self.get_post(post_id)
        authorize(user, "post", "update", owner_id=post.author_id)

        if "title" in changes:
            if not changes["title"] or not changes["title"].strip():
                raise ValidationError("Title is required", code="MISSING_TITLE")
            post.title = changes["title"]

        if changes.get("slug"):
            new_slug = self._resolve_slug(changes["slug"], post.title)
            if new_slug != post.slug:
                self._check_slug_free(new_slug, post_id=post.id)
                post.slug = new_slug

        for key in ("content", "excerpt", "featured_image"):
            if key in changes:
                setattr(post, key, changes[key])
        if changes.get("type"):
            post.type = changes["type"]

        if changes.get("status"):
            self._set_status(post, changes["status"])

        seo_changes = changes.get("seo") or {}
        apply_seo(post, seo_of(post).model_copy(update=seo_changes))

        if changes.get("category_ids") is not None:
            post.categories = self._load(Category, changes["category_ids"], "Category")
        if changes.get("tag_ids") is not None:
            post.tags = self._load(Tag, changes["tag_ids"], "Tag")

        post.updated_at = datetime.utcnow()
        self.session.add(post)
        self.session.commit()
        self.session.refresh(post)
        return post

    @staticmethod
    def _set_status(post: Post, status: PostStatus) -> None:
        post.status = status
        # publishedAt records the first publication and is never cleared
        if status == PostStatus.PUBLISHED and post.published_at is None:
            post.published_at = datetime.utcnow()

    def publish(self, user: User, post_id: int) -> Post:
        return self.update_post(user, post_id, {"status": PostStatus.PUBLISHED})

    def unpublish(self, user: User, post_id: int) -> Post:
        return self.update_post(user, post_id, {"status": PostStatus.DRAFT})

    def delete_post(self, user: User, post_id: int) -> None:
        post = self.get_post(post_id)
        authorize(user, "post", "delete", owner_id=post.author_id)
        self.session.delete(post)
        self.session.commit()
        logger.info("Post %s deleted by user %s", post_id, user.id)
