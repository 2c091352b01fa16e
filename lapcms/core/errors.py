from typing import Any, Dict, List, Optional


class CMSError(Exception):
    """Base for every error that is translated into the `{error, code}` body."""

    status_code = 500
    code = "SERVER_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra or {}

    def to_body(self) -> Dict[str, Any]:
        body = {"error": self.message, "code": self.code}
        body.update(self.extra)
        return body


class AuthError(CMSError):
    status_code = 401
    code = "UNAUTHENTICATED"


class AuthorizationError(CMSError):
    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(CMSError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(CMSError):
    status_code = 409
    code = "CONFLICT"


class ValidationError(CMSError):
    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[List[Dict[str, Any]]] = None, **kwargs):
        extra = kwargs.pop("extra", None) or {}
        if details:
            extra["details"] = details
        super().__init__(message, code=code, extra=extra, **kwargs)


class ExternalServiceError(CMSError):
    status_code = 500
    code = "EXTERNAL_SERVICE_ERROR"


# Credential verifier
class UserNotFound(AuthError):
    code = "USER_NOT_FOUND"

    def __init__(self, message: str = "No account matches this email"):
        super().__init__(message)


class InvalidPassword(AuthError):
    code = "INVALID_PASSWORD"

    def __init__(self, message: str = "Incorrect password, please try again"):
        super().__init__(message)


# Token middleware
class TokenMissing(AuthError):
    code = "TOKEN_MISSING"

    def __init__(self, message: str = "Access token required"):
        super().__init__(message)


class TokenInvalid(AuthError):
    status_code = 403
    code = "TOKEN_INVALID"

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message)


# Site resolver
class ApiKeyMissing(AuthError):
    code = "API_KEY_MISSING"

    def __init__(self, message: str = "API key is required"):
        super().__init__(message)


class ApiKeyInvalid(AuthError):
    code = "API_KEY_INVALID"

    def __init__(self, message: str = "Invalid API key"):
        super().__init__(message)


class SiteDeactivated(AuthorizationError):
    code = "SITE_DEACTIVATED"

    def __init__(self, message: str = "This site has been deactivated"):
        super().__init__(message)


# Domain/CORS gate
class OriginRequired(AuthorizationError):
    code = "ORIGIN_REQUIRED"

    def __init__(self, message: str = "Request must include an Origin or Referer header"):
        super().__init__(message)


class DomainNotAllowed(AuthorizationError):
    code = "DOMAIN_NOT_ALLOWED"

    def __init__(self, request_domain: Optional[str], allowed_domain: str):
        super().__init__(
            f"Requests from {request_domain or 'unknown origin'} are not allowed for this API key",
            extra={"allowedDomain": allowed_domain},
        )
        self.request_domain = request_domain
        self.allowed_domain = allowed_domain


# Post lifecycle
class SlugExists(ConflictError):
    status_code = 400
    code = "SLUG_EXISTS"

    def __init__(self, slug: str):
        super().__init__(f"Slug '{slug}' already exists")
        self.slug = slug


class Unauthorized(AuthorizationError):
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "You are not allowed to modify this post"):
        super().__init__(message)


class EmailExists(ConflictError):
    code = "EMAIL_EXISTS"

    def __init__(self, message: str = "An account with this email already exists"):
        super().__init__(message)
