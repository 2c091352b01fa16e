from typing import Callable

from fastapi import Request

from lapcms.core.errors import CMSError


class RateLimiter:
    """Extension point for request throttling.

    `hit` is called once per request with the limiter bucket ("general",
    "auth", ...) and the client key. Returning False rejects the request.
    """

    def hit(self, bucket: str, key: str) -> bool:
        raise NotImplementedError


class NoopRateLimiter(RateLimiter):
    # Throttling is disabled: every request is let through.
    def hit(self, bucket: str, key: str) -> bool:
        return True


def rate_limit(bucket: str) -> Callable:
    def dependency(request: Request) -> None:
        limiter: RateLimiter = request.app.state.rate_limiter
        key = request.client.host if request.client else "unknown"
        if not limiter.hit(bucket, key):
            raise CMSError("Too many requests, please try again later", code="RATE_LIMITED", status_code=429)

    return dependency
