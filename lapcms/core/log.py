import logging
from typing import Optional

from lapcms.core.config import Settings

audit_logger = logging.getLogger("lapcms.audit")


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def log_auth(event: str, user_id: Optional[int], ip: Optional[str], success: bool, reason: Optional[str] = None) -> None:
    """Audit trail for authentication and account events."""
    level = logging.INFO if success else logging.WARNING
    audit_logger.log(
        level,
        "auth event=%s user_id=%s ip=%s success=%s%s",
        event,
        user_id,
        ip,
        success,
        f" reason={reason}" if reason else "",
        extra={"event": event, "user_id": user_id, "ip": ip, "success": success},
    )
