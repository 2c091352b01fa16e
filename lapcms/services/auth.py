import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple
from sqlmodel import Session, or_, select

from lapcms.core.config import Settings
from lapcms.core.errors import InvalidPassword, UserNotFound, ValidationError, NotFoundError
from lapcms.core.log import log_auth
from lapcms.core.security import create_access_token, get_password_hash, verify_password
from lapcms.models.session import AuthSession
from lapcms.models.user import User

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class AuthService:
    def __init__(self, session: Session, settings: Settings):
        self.session = session
        self.settings = settings

    def get_password_hash(self, password: str) -> str:
        return get_password_hash(password, rounds=self.settings.BCRYPT_ROUNDS)

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.session.exec(select(User).where(User.email == email.strip().lower())).first()

    def create_access_token(self, user_id: int, email: str, session_id: int) -> str:
        return create_access_token({"userId": user_id, "email": email, "sid": session_id}, self.settings)

    def authenticate_user(
        self,
        email: str,
        password: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Tuple[User, str]:
        """Verify credentials and open a session. Returns the user and a signed token."""
        user = self.get_user_by_email(email)
        if not user:
            log_auth("login_failed", None, ip_address, False, "User not found")
            raise UserNotFound()

        if not verify_password(password, user.password_hash):
            log_auth("login_failed", user.id, ip_address, False, "Invalid password")
            raise InvalidPassword()

        self.prune_sessions(user.id)
        entry = self.open_session(user.id, ip_address, user_agent)
        token = self.create_access_token(user.id, user.email, entry.id)

        log_auth("login_success", user.id, ip_address, True)
        logger.info("User %s logged in from %s", user.id, ip_address)
        return user, token

    def open_session(self, user_id: int, ip_address: Optional[str], user_agent: Optional[str]) -> AuthSession:
        entry = AuthSession(
            user_id=user_id,
            ip_address=ip_address,
            user_agent=user_agent,
            expires_at=datetime.utcnow() + timedelta(minutes=self.settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        )
        self.session.add(entry)
        self.session.commit()
        self.session.refresh(entry)
        return entry

    def is_session_active(self, session_id: Optional[int], user_id: int) -> bool:
        if session_id is None:
            return False
        entry = self.session.get(AuthSession, session_id)
        return (
            entry is not None
            and entry.user_id == user_id
            and entry.revoked_at is None
            and entry.expires_at > datetime.utcnow()
        )

    def refresh_session(self, user_id: int, email: str, session_id: int) -> str:
        """Extend an open session and return a new token for it."""
        entry = self.session.get(AuthSession, session_id)
        entry.expires_at = datetime.utcnow() + timedelta(minutes=self.settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        self.session.add(entry)
        self.session.commit()
        return self.create_access_token(user_id, email, session_id)

    def prune_sessions(self, user_id: int) -> None:
        # Expired and revoked rows are only kept until the user's next login
        stale = self.session.exec(
            select(AuthSession).where(
                AuthSession.user_id == user_id,
                or_(AuthSession.expires_at <= datetime.utcnow(), AuthSession.revoked_at != None),  # noqa: E711
            )
        ).all()
        for entry in stale:
            self.session.delete(entry)
        if stale:
            self.session.commit()

    def close_sessions(self, user_id: int) -> int:
        now = datetime.utcnow()
        open_sessions = self.session.exec(
            select(AuthSession).where(AuthSession.user_id == user_id, AuthSession.revoked_at == None)  # noqa: E711
        ).all()
        for entry in open_sessions:
            entry.revoked_at = now
            self.session.add(entry)
        self.session.commit()
        return len(open_sessions)

    def change_password(self, user_id: int, current_password: Optional[str], new_password: Optional[str], ip_address: Optional[str] = None) -> User:
        if not current_password or not new_password:
            raise ValidationError("Current password and new password are required", code="MISSING_FIELDS")

        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long", code="WEAK_PASSWORD"
            )

        user = self.session.get(User, user_id)
        if not user:
            log_auth("user_not_found", user_id, ip_address, False, "User not found for password update")
            raise NotFoundError("User not found", code="USER_NOT_FOUND")

        if not verify_password(current_password, user.password_hash):
            log_auth("invalid_current_password", user_id, ip_address, False)
            raise ValidationError("Current password is incorrect", code="INVALID_CURRENT_PASSWORD")

        if verify_password(new_password, user.password_hash):
            raise ValidationError("New password must be different from current password", code="SAME_PASSWORD")

        user.password_hash = self.get_password_hash(new_password)
        user.updated_at = datetime.utcnow()
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)

        log_auth("password_updated", user_id, ip_address, True)
        return user
