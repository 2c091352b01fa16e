"""
SEO metadata fallbacks and the completeness score shown in the post editor.
"""
from typing import Optional
from pydantic import BaseModel

class SeoData(BaseModel):
    metaTitle: Optional[str] = None
    metaDescription: Optional[str] = None
    keywords: Optional[str] = None
    canonicalUrl: Optional[str] = None
    ogTitle: Optional[str] = None
    ogDescription: Optional[str] = None
    ogImage: Optional[str] = None
    twitterTitle: Optional[str] = None
    twitterDescription: Optional[str] = None
    noIndex: bool = False
    noFollow: bool = False

CORE_FIELDS = (
    "metaTitle",
    "metaDescription",
    "keywords",
    "ogTitle",
    "ogDescription",
    "twitterTitle",
    "twitterDescription",
    "canonicalUrl",
)


def _filled(value: Optional[str]) -> bool:
    return value is not None and value.strip() != ""


def _first(*values: Optional[str]) -> Optional[str]:
    for value in values:
        if _filled(value):
            return value
    return None


def resolve_seo(
    seo: SeoData,
    title: Optional[str],
    excerpt: Optional[str] = None,
    featured_image: Optional[str] = None,
) -> SeoData:
    """Return a copy of `seo` with empty fields filled from the post itself."""
    meta_title = _first(seo.metaTitle, title)
    meta_description = _first(seo.metaDescription, excerpt)
    og_title = _first(seo.ogTitle, seo.metaTitle, title)
    og_description = _first(seo.ogDescription, seo.metaDescription, excerpt)
    return seo.model_copy(update={
        "metaTitle": meta_title,
        "metaDescription": meta_description,
        "ogTitle": og_title,
        "ogDescription": og_description,
        "ogImage": _first(seo.ogImage, featured_image),
        "twitterTitle": _first(seo.twitterTitle, seo.ogTitle, seo.metaTitle, title),
        "twitterDescription": _first(
            seo.twitterDescription, seo.ogDescription, seo.metaDescription, excerpt
        ),
    })


def seo_score(seo: Optional[SeoData]) -> int:
    if seo is None:
        return 0

    score = 0

    if _filled(seo.metaTitle):
        score += 20
        if 30 <= len(seo.metaTitle) <= 60:
            score += 5

    if _filled(seo.metaDescription):
        score += 20
        if 120 <= len(seo.metaDescription) <= 160:
            score += 5

    if _filled(seo.keywords):
        score += 15

    if _filled(seo.ogTitle) and _filled(seo.ogDescription):
        score += 15

    if _filled(seo.twitterTitle) and _filled(seo.twitterDescription):
        score += 10

    if _filled(seo.canonicalUrl):
        score += 5

    if all(_filled(getattr(seo, field)) for field in CORE_FIELDS):
        score += 5

    # Hidden from search engines entirely
    if seo.noIndex and seo.noFollow:
        score -= 5

    return max(0, min(100, score))
