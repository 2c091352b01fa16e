import time
from datetime import datetime
from fastapi import APIRouter, Depends

from lapcms.core.config import Settings
from lapcms.core.context import Identity
from lapcms.core.rate_limit import rate_limit
from lapcms.deps import get_current_identity, get_settings

router = APIRouter(dependencies=[Depends(rate_limit("general"))])

STARTED_AT = time.monotonic()


def health_payload(settings: Settings) -> dict:
    return {
        "status": "OK",
        "timestamp": datetime.utcnow().isoformat(),
        "uptime": round(time.monotonic() - STARTED_AT, 3),
        "environment": settings.ENVIRONMENT,
    }


@router.get("/health")
def health(settings: Settings = Depends(get_settings)):
    return health_payload(settings)


@router.get("/test")
def public_test():
    return {
        "message": "This is a public test route",
        "timestamp": datetime.utcnow().isoformat(),
        "version": "1.0.0",
    }


@router.get("/user")
def protected_test(identity: Identity = Depends(get_current_identity)):
    return {
        "message": "This is a protected route",
        "user": {"userId": identity.user_id, "email": identity.email},
        "timestamp": datetime.utcnow().isoformat(),
    }
