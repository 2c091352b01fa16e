"""
Per-site origin checks for the SDK endpoints.

A site with no configured domain accepts any caller. Otherwise the request
must come from the domain itself or one of its subdomains, as reported by the
Origin header (or the Referer when Origin is absent). Loopback callers are
always let through for local development.
"""
from typing import Dict, Optional
from urllib.parse import urlparse

from lapcms.core.errors import DomainNotAllowed, OriginRequired

LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})

ALLOWED_METHODS = "GET, POST, OPTIONS"
ALLOWED_HEADERS = "Content-Type, x-api-key"
PREFLIGHT_MAX_AGE = "86400"  # 24 hours


def hostname_of(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    try:
        host = urlparse(url).hostname
    except ValueError:
        return None
    return host.lower() if host else None


def normalize_domain(domain: Optional[str]) -> Optional[str]:
    """Reduce user input such as "https://Example.com:443/blog" to "example.com"."""
    if domain is None:
        return None
    domain = domain.strip().lower()
    if not domain:
        return None
    if "://" not in domain:
        domain = "//" + domain
    host = hostname_of(domain)
    return host or None


def is_loopback(host: Optional[str]) -> bool:
    return host in LOOPBACK_HOSTS


def is_domain_allowed(host: str, allowed_domain: str) -> bool:
    return host == allowed_domain or host.endswith("." + allowed_domain)


def _echo_origin(origin: Optional[str], referer: Optional[str]) -> Optional[str]:
    if origin:
        return origin
    if referer:
        parsed = urlparse(referer)
        if parsed.scheme and parsed.netloc:
            return f"{parsed.scheme}://{parsed.netloc}"
    return None


def check_origin(site_domain: Optional[str], origin: Optional[str], referer: Optional[str]) -> Optional[str]:
    """Decide whether a caller may use a site's API key.

    Returns the origin to echo in Access-Control-Allow-Origin (None when the
    request carried neither Origin nor Referer). Raises OriginRequired or
    DomainNotAllowed.
    """
    caller = origin or referer
    host = hostname_of(caller)
    allowed_domain = normalize_domain(site_domain)

    if not allowed_domain or is_loopback(host):
        return _echo_origin(origin, referer)

    if not caller:
        raise OriginRequired()

    if not host or not is_domain_allowed(host, allowed_domain):
        raise DomainNotAllowed(host, allowed_domain)

    return _echo_origin(origin, referer)


def cors_headers(origin: str) -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Methods": ALLOWED_METHODS,
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
        "Access-Control-Allow-Credentials": "true",
        "Vary": "Origin",
    }


def preflight_headers(origin: Optional[str]) -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": origin or "*",
        "Access-Control-Allow-Methods": ALLOWED_METHODS,
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
        "Access-Control-Max-Age": PREFLIGHT_MAX_AGE,
    }
