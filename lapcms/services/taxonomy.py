import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Type, Union
from sqlmodel import Session, func, select

from lapcms.core.errors import NotFoundError, SlugExists, ValidationError
from lapcms.core.policy import authorize
from lapcms.models.category import Category
from lapcms.models.links import PostCategoryLink, PostTagLink
from lapcms.models.tag import Tag
from lapcms.models.user import User
from lapcms.services.slugs import slugify

logger = logging.getLogger(__name__)

Term = Union[Category, Tag]


class TaxonomyService:
    """Categories and tags: both are named, slugged groupings of posts."""

    def __init__(self, session: Session, model: Type[Term]):
        self.session = session
        self.model = model
        if model is Category:
            self.resource = "category"
            self.link_model, self.link_column = PostCategoryLink, PostCategoryLink.category_id
        else:
            self.resource = "tag"
            self.link_model, self.link_column = PostTagLink, PostTagLink.tag_id

    @property
    def label(self) -> str:
        return self.resource.capitalize()

    def list_terms(self) -> List[Tuple[Term, int]]:
        """Every term ordered by name, with its post count."""
        rows = self.session.exec(
            select(self.model, func.count(self.link_model.post_id))
            .outerjoin(self.link_model, self.link_column == self.model.id)
            .group_by(self.model.id)
            .order_by(self.model.name)
        ).all()
        return [(term, count) for term, count in rows]

    def post_count(self, term_id: int) -> int:
        return self.session.exec(
            select(func.count(self.link_model.post_id)).where(self.link_column == term_id)
        ).one()

    def get_term(self, term_id: int) -> Term:
        term = self.session.get(self.model, term_id)
        if not term:
            raise NotFoundError(f"{self.label} not found", code=f"{self.resource.upper()}_NOT_FOUND")
        return term

    def _check_slug_free(self, slug: str, term_id: Optional[int] = None) -> None:
        existing = self.session.exec(select(self.model).where(self.model.slug == slug)).first()
        if existing and existing.id != term_id:
            raise SlugExists(slug)

    def _derive_slug(self, slug: Optional[str], name: str) -> str:
        new_slug = slugify(slug or name)
        if not new_slug:
            raise ValidationError("Could not derive a valid slug", code="INVALID_SLUG")
        return new_slug

    def create_term(self, user: User, name: Optional[str], slug: Optional[str] = None, **fields: Any) -> Term:
        authorize(user, self.resource, "write")
        if not name or not name.strip():
            raise ValidationError("Name is required", code="MISSING_NAME")

        term_slug = self._derive_slug(slug, name)
        self._check_slug_free(term_slug)

        term = self.model(name=name.strip(), slug=term_slug, **fields)
        self.session.add(term)
        self.session.commit()
        self.session.refresh(term)
        logger.info("%s %s created (slug=%s)", self.label, term.id, term.slug)
        return term

    def update_term(self, user: User, term_id: int, changes: Dict[str, Any]) -> Term:
        authorize(user, self.resource, "write")
        term = self.get_term(term_id)

        if "name" in changes:
            if not changes["name"] or not changes["name"].strip():
                raise ValidationError("Name is required", code="MISSING_NAME")
            term.name = changes["name"].strip()

        # Renaming re-derives the slug unless one is given
        if changes.get("slug") or changes.get("name"):
            new_slug = self._derive_slug(changes.get("slug"), term.name)
            if new_slug != term.slug:
                self._check_slug_free(new_slug, term_id=term.id)
                term.slug = new_slug

        for key, value in changes.items():
            if key not in ("name", "slug") and hasattr(term, key):
                setattr(term, key, value)

        term.updated_at = datetime.utcnow()
        self.session.add(term)
        self.session.commit()
        self.session.refresh(term)
        return term

    def delete_term(self, user: User, term_id: int) -> None:
        authorize(user, self.resource, "write")
        term = self.get_term(term_id)
        if self.post_count(term.id) > 0:
            raise ValidationError(
                f"Cannot delete {self.resource} with posts", code=f"{self.resource.upper()}_HAS_POSTS"
            )
        self.session.delete(term)
        self.session.commit()
        logger.info("%s %s deleted", self.label, term_id)
