from typing import Callable, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from lapcms.core.rate_limit import rate_limit
from lapcms.deps import get_category_service, get_current_user, get_optional_user, get_tag_service
from lapcms.models.user import User
from lapcms.serializers import post_to_dict, term_to_dict
from lapcms.services.posts import PostService
from lapcms.services.taxonomy import TaxonomyService


class TermData(BaseModel):
    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None


def build_router(get_service: Callable[..., TaxonomyService], with_description: bool) -> APIRouter:
    """Routes shared by categories and tags. Reads are public, writes need a user."""
    router = APIRouter(dependencies=[Depends(rate_limit("general"))])

    def extra_fields(data) -> dict:
        fields = {"color": data.color}
        if with_description:
            fields["description"] = data.description
        return fields

    @router.get("")
    @router.get("/", include_in_schema=False)
    def read_terms(service: TaxonomyService = Depends(get_service)):
        return {
            "success": True,
            "data": [term_to_dict(term, count) for term, count in service.list_terms()],
        }

    @router.get("/{term_id}")
    def read_term(
        term_id: int,
        current_user: Optional[User] = Depends(get_optional_user),
        service: TaxonomyService = Depends(get_service),
    ):
        """One term with its posts. Anonymous callers only see published posts."""
        term = service.get_term(term_id)
        posts = term.posts
        if current_user is None:
            posts = [post for post in posts if PostService.is_public(post)]
        data = term_to_dict(term, len(posts))
        data["posts"] = [
            post_to_dict(post, include_author_email=current_user is not None, include_score=False)
            for post in posts
        ]
        return {"success": True, "data": data}

    @router.post("", status_code=201)
    @router.post("/", status_code=201, include_in_schema=False)
    def create_term(
        data: TermData,
        current_user: User = Depends(get_current_user),
        service: TaxonomyService = Depends(get_service),
    ):
        term = service.create_term(current_user, data.name, data.slug, **extra_fields(data))
        return {"success": True, "data": term_to_dict(term, 0), "message": f"{service.label} created successfully"}

    @router.put("/{term_id}")
    def update_term(
        term_id: int,
        data: TermData,
        current_user: User = Depends(get_current_user),
        service: TaxonomyService = Depends(get_service),
    ):
        changes = data.model_dump(exclude_unset=True)
        if not with_description:
            changes.pop("description", None)
        term = service.update_term(current_user, term_id, changes)
        return {"success": True, "data": term_to_dict(term), "message": f"{service.label} updated successfully"}

    @router.delete("/{term_id}")
    def delete_term(
        term_id: int,
        current_user: User = Depends(get_current_user),
        service: TaxonomyService = Depends(get_service),
    ):
        service.delete_term(current_user, term_id)
        return {"success": True, "message": f"{service.label} deleted successfully"}

    return router


categories_router = build_router(get_category_service, with_description=True)
tags_router = build_router(get_tag_service, with_description=False)
