import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from sqlmodel import Session, func, select

from lapcms.core.config import Settings
from lapcms.core.errors import ConflictError, EmailExists, NotFoundError, ValidationError
from lapcms.core.log import log_auth
from lapcms.core.policy import authorize
from lapcms.core.security import get_password_hash
from lapcms.models.comment import Comment
from lapcms.models.post import Post
from lapcms.models.session import AuthSession
from lapcms.models.site import Site
from lapcms.models.user import User, UserRole
from lapcms.services.sites import SiteService

logger = logging.getLogger(__name__)


class UserService:
    """Account management for administrators."""

    def __init__(self, session: Session, settings: Settings):
        self.session = session
        self.settings = settings
        self.sites = SiteService(session, settings)

    def get_user(self, user_id: int) -> User:
        user = self.session.get(User, user_id)
        if not user:
            raise NotFoundError("User not found", code="USER_NOT_FOUND")
        return user

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.session.exec(select(User).where(User.email == email.strip().lower())).first()

    def list_users(self, actor: User, page: int = 1, limit: int = 10) -> Tuple[List[User], int]:
        authorize(actor, "user", "read")
        page = max(page, 1)
        limit = max(limit, 1)
        users = self.session.exec(
            select(User).order_by(User.created_at.desc(), User.id.desc()).offset((page - 1) * limit).limit(limit)
        ).all()
        total = self.session.exec(select(func.count(User.id))).one()
        return list(users), total

    def get_user_with_sites(self, actor: User, user_id: int) -> Tuple[User, List[Site]]:
        authorize(actor, "user", "read")
        user = self.get_user(user_id)
        return user, self.sites.get_sites_for_user(user.id)

    def create_user(
        self,
        actor: User,
        name: Optional[str],
        email: Optional[str],
        password: Optional[str],
        role: Optional[UserRole] = None,
        bio: Optional[str] = None,
        is_active: Optional[bool] = None,
        site_name: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> Tuple[User, Optional[Site]]:
        authorize(actor, "user", "create")
        if not name or not email or not password:
            raise ValidationError("Name, email and password are required", code="MISSING_FIELDS")

        if self.get_user_by_email(email):
            raise EmailExists()

        user = User(
            name=name,
            email=email.strip().lower(),
            password_hash=get_password_hash(password, rounds=self.settings.BCRYPT_ROUNDS),
            role=role or UserRole.USER,
            bio=bio,
            is_active=True if is_active is None else is_active,
        )
        self.session.add(user)
        self.session.flush()

        site = None
        if site_name and site_name.strip():
            site = self.sites.create_site(
                user.id, site_name, description=f"{user.name}'s site", commit=False
            )

        self.session.commit()
        self.session.refresh(user)
        if site:
            self.session.refresh(site)

        log_auth("user_created", user.id, ip_address, True, f"Created by admin: {actor.id}")
        logger.info("User %s created by %s (site=%s)", user.id, actor.id, site.id if site else None)
        return user, site

    def update_user(self, actor: User, user_id: int, changes: Dict[str, Any]) -> User:
        authorize(actor, "user", "update", owner_id=user_id)
        user = self.get_user(user_id)

        if changes.get("email"):
            email = changes["email"].strip().lower()
            existing = self.get_user_by_email(email)
            if existing and existing.id != user.id:
                raise EmailExists()
            user.email = email

        for key in ("name", "role", "bio", "avatar", "is_active"):
            if key in changes and changes[key] is not None:
                setattr(user, key, changes[key])

        user.updated_at = datetime.utcnow()
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def delete_user(self, actor: User, user_id: int, ip_address: Optional[str] = None) -> None:
        authorize(actor, "user", "delete", owner_id=user_id)
        user = self.get_user(user_id)

        if user.id == actor.id:
            raise ValidationError("You cannot delete your own account", code="SELF_DELETE_FORBIDDEN")

        post_count = self.session.exec(select(func.count(Post.id)).where(Post.author_id == user.id)).one()
        if post_count > 0:
            raise ConflictError("Cannot delete a user who still has posts", code="USER_HAS_POSTS")

        for model in (Site, AuthSession, Comment):
            owner_column = model.author_id if model is Comment else model.user_id
            for row in self.session.exec(select(model).where(owner_column == user.id)).all():
                self.session.delete(row)
        self.session.flush()
        self.session.delete(user)
        self.session.commit()

        log_auth("user_deleted", user_id, ip_address, True, f"Deleted by admin: {actor.id}")
