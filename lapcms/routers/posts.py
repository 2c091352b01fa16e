from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from lapcms.core.rate_limit import rate_limit
from lapcms.deps import get_current_user, get_optional_user, get_post_service
from lapcms.models.post import PostStatus, PostType
from lapcms.models.user import User
from lapcms.serializers import pagination, post_to_dict
from lapcms.services.posts import PostService
from lapcms.services.seo import SeoData, seo_score

router = APIRouter(dependencies=[Depends(rate_limit("general"))])


class PostCreate(BaseModel):
    title: Optional[str] = None
    slug: Optional[str] = None
    content: Optional[dict] = None
    excerpt: Optional[str] = None
    type: PostType = PostType.POST
    status: PostStatus = PostStatus.DRAFT
    featuredImage: Optional[str] = None
    seo: SeoData = Field(default_factory=SeoData)
    categoryIds: Optional[List[int]] = None
    tagIds: Optional[List[int]] = None


class PostUpdate(BaseModel):
    title: Optional[str] = None
    slug: Optional[str] = None
    content: Optional[dict] = None
    excerpt: Optional[str] = None
    type: Optional[PostType] = None
    status: Optional[PostStatus] = None
    featuredImage: Optional[str] = None
    seo: Optional[SeoData] = None
    categoryIds: Optional[List[int]] = None
    tagIds: Optional[List[int]] = None


# Request field -> PostService.update_post key
UPDATE_KEYS = {
    "featuredImage": "featured_image",
    "categoryIds": "category_ids",
    "tagIds": "tag_ids",
}


@router.get("")
@router.get("/", include_in_schema=False)
def read_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[PostStatus] = None,
    type: Optional[PostType] = None,
    category: Optional[str] = None,
    tag: Optional[str] = None,
    author: Optional[int] = None,
    current_user: Optional[User] = Depends(get_optional_user),
    service: PostService = Depends(get_post_service),
):
    """List posts. Anonymous callers only see published ones."""
    posts, total = service.list_posts(
        page=page,
        limit=limit,
        status=status,
        post_type=type,
        category=category,
        tag=tag,
        author_id=author,
        published_only=current_user is None,
    )
    return {
        "success": True,
        "posts": [post_to_dict(post) for post in posts],
        "pagination": pagination(page, limit, total),
    }


@router.get("/my")
def read_my_posts(
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    posts = service.list_user_posts(current_user.id)
    return {"success": True, "posts": [post_to_dict(post) for post in posts]}


@router.post("/seo/score")
def score_seo(seo: SeoData):
    return {"success": True, "score": seo_score(seo)}


@router.get("/{id_or_slug}")
def read_post(
    id_or_slug: str,
    current_user: Optional[User] = Depends(get_optional_user),
    service: PostService = Depends(get_post_service),
):
    post = service.find(id_or_slug, published_only=current_user is None)
    return {"success": True, "post": post_to_dict(post)}


@router.post("", status_code=201)
@router.post("/", status_code=201, include_in_schema=False)
def create_post(
    data: PostCreate,
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    post = service.create_post(
        current_user,
        title=data.title,
        slug=data.slug,
        content=data.content,
        excerpt=data.excerpt,
        post_type=data.type,
        status=data.status,
        featured_image=data.featuredImage,
        seo=data.seo,
        category_ids=data.categoryIds,
        tag_ids=data.tagIds,
    )
    return {"success": True, "message": "Post created successfully", "post": post_to_dict(post)}


@router.put("/{post_id}")
def update_post(
    post_id: int,
    data: PostUpdate,
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    changes = {UPDATE_KEYS.get(key, key): value for key, value in data.model_dump(exclude_unset=True).items()}
    post = service.update_post(current_user, post_id, changes)
    return {"success": True, "message": "Post updated successfully", "post": post_to_dict(post)}


@router.put("/{post_id}/publish")
def publish_post(
    post_id: int,
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    post = service.publish(current_user, post_id)
    return {"success": True, "message": "Post published", "post": post_to_dict(post)}


@router.put("/{post_id}/unpublish")
def unpublish_post(
    post_id: int,
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    post = service.unpublish(current_user, post_id)
    return {"success": True, "message": "Post moved back to draft", "post": post_to_dict(post)}


@router.delete("/{post_id}")
def delete_post(
    post_id: int,
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    service.delete_post(current_user, post_id)
    return {"success": True, "message": "Post deleted successfully"}
