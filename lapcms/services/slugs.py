import re

_DISALLOWED = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")


def slugify(text: str) -> str:
    """Lowercase, drop everything but letters, digits, whitespace and hyphens,
    turn whitespace into hyphens and trim hyphens at both ends.

    >>> slugify("Hello World!")
    'hello-world'
    """
    slug = _DISALLOWED.sub("", text.lower())
    slug = _WHITESPACE.sub("-", slug)
    slug = _HYPHENS.sub("-", slug)
    return slug.strip("-")
