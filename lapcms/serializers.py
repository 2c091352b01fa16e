"""
camelCase response payloads for the admin panel and the SDK.
"""
import math
from typing import Any, Dict, Optional

from lapcms.models.post import Post
from lapcms.models.site import Site
from lapcms.models.user import User
from lapcms.services.posts import seo_of
from lapcms.services.seo import seo_score


def site_to_dict(site: Optional[Site]) -> Optional[Dict[str, Any]]:
    if site is None:
        return None
    return {
        "id": site.id,
        "name": site.name,
        "domain": site.domain,
        "apiKey": site.api_key,
        "description": site.description,
        "isActive": site.is_active,
        "createdAt": site.created_at,
        "updatedAt": site.updated_at,
        "userId": site.user_id,
    }


def user_to_dict(user: User, site: Optional[Site] = None) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "role": user.role,
        "avatar": user.avatar,
        "bio": user.bio,
        "isActive": user.is_active,
        "createdAt": user.created_at,
        "updatedAt": user.updated_at,
        "site": site_to_dict(site),
    }


def term_to_dict(term, post_count: Optional[int] = None) -> Dict[str, Any]:
    data = {
        "id": term.id,
        "name": term.name,
        "slug": term.slug,
        "color": term.color,
        "createdAt": term.created_at,
        "updatedAt": term.updated_at,
    }
    if hasattr(term, "description"):
        data["description"] = term.description
    if post_count is not None:
        data["postCount"] = post_count
    return data


def _term_ref(term) -> Dict[str, Any]:
    return {"id": term.id, "name": term.name, "slug": term.slug}


def post_to_dict(post: Post, include_author_email: bool = True, include_score: bool = True) -> Dict[str, Any]:
    seo = seo_of(post)
    author = None
    if post.author:
        author = {"id": post.author.id, "name": post.author.name}
        if include_author_email:
            author["email"] = post.author.email

    data = {
        "id": post.id,
        "title": post.title,
        "slug": post.slug,
        "excerpt": post.excerpt,
        "content": post.content,
        "status": post.status,
        "type": post.type,
        "featuredImage": post.featured_image,
        "publishedAt": post.published_at,
        "createdAt": post.created_at,
        "updatedAt": post.updated_at,
        "author": author,
        "categories": [_term_ref(category) for category in post.categories],
        "tags": [_term_ref(tag) for tag in post.tags],
        "commentsCount": len(post.comments),
        "seo": seo.model_dump(),
    }
    if include_score:
        data["seoScore"] = seo_score(seo)
    return data


def public_post_to_dict(post: Post) -> Dict[str, Any]:
    # SDK consumers never see editor-only fields
    data = post_to_dict(post, include_author_email=False, include_score=False)
    data.pop("status")
    data.pop("type")
    return data


def pagination(page: int, limit: int, total: int) -> Dict[str, int]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }
