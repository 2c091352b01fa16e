import logging
from datetime import datetime
from typing import List, Optional
from sqlmodel import Session, select

from lapcms.core.config import Settings
from lapcms.core.context import SiteContext
from lapcms.core.errors import (
    ApiKeyInvalid,
    ApiKeyMissing,
    ConflictError,
    NotFoundError,
    SiteDeactivated,
    ValidationError,
)
from lapcms.models.site import Site, generate_api_key
from lapcms.services.domain_gate import normalize_domain

logger = logging.getLogger(__name__)


class SiteService:
    def __init__(self, session: Session, settings: Settings):
        self.session = session
        self.settings = settings

    def resolve_api_key(self, api_key: Optional[str]) -> SiteContext:
        if not api_key:
            raise ApiKeyMissing()

        test_key = self.settings.sdk_test_key
        if test_key and api_key == test_key:
            logger.debug("Using SDK test API key")
            return SiteContext(
                id=None,
                name="Test Site",
                domain=None,
                api_key=api_key,
                is_active=True,
                is_test=True,
            )

        site = self.get_by_api_key(api_key)
        if not site:
            raise ApiKeyInvalid()
        if not site.is_active:
            raise SiteDeactivated()

        return SiteContext(
            id=site.id,
            name=site.name,
            domain=site.domain,
            api_key=site.api_key,
            is_active=site.is_active,
            user_id=site.user_id,
        )

    def get_by_api_key(self, api_key: str) -> Optional[Site]:
        return self.session.exec(select(Site).where(Site.api_key == api_key)).first()

    def get_sites_for_user(self, user_id: int) -> List[Site]:
        return list(self.session.exec(
            select(Site).where(Site.user_id == user_id).order_by(Site.created_at.desc(), Site.id.desc())
        ).all())

    def get_primary_site(self, user_id: int) -> Optional[Site]:
        # One site per user is assumed; the oldest one wins
        return self.session.exec(
            select(Site).where(Site.user_id == user_id).order_by(Site.created_at, Site.id)
        ).first()

    def _require_primary_site(self, user_id: int) -> Site:
        site = self.get_primary_site(user_id)
        if not site:
            raise NotFoundError("Site not found for this user", code="SITE_NOT_FOUND")
        return site

    def _check_domain_free(self, domain: Optional[str], site_id: Optional[int] = None) -> None:
        if not domain:
            return
        query = select(Site).where(Site.domain == domain)
        if site_id is not None:
            query = query.where(Site.id != site_id)
        if self.session.exec(query).first():
            raise ConflictError("Another site already uses this domain", code="DOMAIN_EXISTS")

    def _new_api_key(self) -> str:
        while True:
            api_key = generate_api_key()
            if not self.get_by_api_key(api_key):
                return api_key

    def create_site(
        self,
        user_id: int,
        name: str,
        domain: Optional[str] = None,
        description: Optional[str] = None,
        commit: bool = True,
    ) -> Site:
        domain = normalize_domain(domain)
        self._check_domain_free(domain)
        site = Site(
            user_id=user_id,
            name=name.strip(),
            domain=domain,
            description=description,
            api_key=self._new_api_key(),
        )
        self.session.add(site)
        if commit:
            self.session.commit()
            self.session.refresh(site)
        return site

    def update_site(
        self,
        user_id: int,
        name: Optional[str],
        domain: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Site:
        if not name or not name.strip():
            raise ValidationError("Site name is required", code="MISSING_SITE_NAME")

        site = self._require_primary_site(user_id)
        domain = normalize_domain(domain)
        self._check_domain_free(domain, site_id=site.id)

        site.name = name.strip()
        site.domain = domain
        site.description = description.strip() if description and description.strip() else None
        site.updated_at = datetime.utcnow()
        self.session.add(site)
        self.session.commit()
        self.session.refresh(site)
        logger.info("Site %s updated by user %s (domain=%s)", site.id, user_id, site.domain)
        return site

    def regenerate_api_key(self, user_id: int) -> Site:
        site = self._require_primary_site(user_id)
        site.api_key = self._new_api_key()
        site.updated_at = datetime.utcnow()
        self.session.add(site)
        self.session.commit()
        self.session.refresh(site)
        logger.info("API key regenerated for site %s", site.id)
        return site
