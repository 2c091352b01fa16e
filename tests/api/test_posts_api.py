from datetime import timedelta

import pytest
from sqlmodel import select

from lapcms.core.security import create_access_token
from lapcms.models.comment import Comment
from lapcms.models.links import PostCategoryLink


@pytest.fixture
def headers(user, auth_headers):
    return auth_headers(user)


def create_post(client, headers, **fields):
    payload = {"title": "Hello World!"}
    payload.update(fields)
    response = client.post("/posts/", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["post"]


def test_create_post_defaults(client, headers, user):
    post = create_post(client, headers)

    assert post["slug"] == "hello-world"
    assert post["status"] == "DRAFT"
    assert post["type"] == "POST"
    assert post["publishedAt"] is None
    assert post["author"]["id"] == user.id


def test_create_applies_seo_fallbacks(client, headers):
    post = create_post(client, headers, excerpt="Short summary", featuredImage="https://img.example.com/x.png")

    seo = post["seo"]
    assert seo["metaTitle"] == "Hello World!"
    assert seo["metaDescription"] == "Short summary"
    assert seo["ogImage"] == "https://img.example.com/x.png"
    assert seo["twitterTitle"] == "Hello World!"
    assert post["seoScore"] == 20 + 20 + 15 + 10


def test_create_requires_title(client, headers):
    response = client.post("/posts/", json={"excerpt": "No title"}, headers=headers)
    assert response.status_code == 400
    assert response.json()["code"] == "MISSING_TITLE"


def test_create_rejects_unsluggable_title(client, headers):
    response = client.post("/posts/", json={"title": "!!!"}, headers=headers)
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_SLUG"


def test_duplicate_slug(client, headers):
    create_post(client, headers)
    response = client.post("/posts/", json={"title": "Hello, World"}, headers=headers)
    assert response.status_code == 400
    assert response.json()["code"] == "SLUG_EXISTS"


def test_create_requires_authentication(client):
    response = client.post("/posts/", json={"title": "Anonymous"})
    assert response.status_code == 401
    assert response.json()["code"] == "TOKEN_MISSING"


def test_publishing_at_creation_sets_published_at(client, headers):
    post = create_post(client, headers, status="PUBLISHED")
    assert post["publishedAt"] is not None


def test_published_at_survives_unpublish_and_republish(client, headers):
    post = create_post(client, headers)

    published = client.put(f"/posts/{post['id']}/publish", headers=headers).json()["post"]
    first_published_at = published["publishedAt"]
    assert published["status"] == "PUBLISHED"
    assert first_published_at is not None

    drafted = client.put(f"/posts/{post['id']}/unpublish", headers=headers).json()["post"]
    assert drafted["status"] == "DRAFT"
    assert drafted["publishedAt"] == first_published_at

    republished = client.put(f"/posts/{post['id']}", json={"status": "PUBLISHED"}, headers=headers).json()["post"]
    assert republished["publishedAt"] == first_published_at


def test_any_status_transition_is_allowed(client, headers):
    post = create_post(client, headers, status="PUBLISHED")
    response = client.put(f"/posts/{post['id']}", json={"status": "ARCHIVED"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["post"]["status"] == "ARCHIVED"


def test_partial_update_only_touches_given_fields(client, headers):
    post = create_post(client, headers, excerpt="Keep me", content={"blocks": []})

    response = client.put(f"/posts/{post['id']}", json={"title": "New title"}, headers=headers)
    updated = response.json()["post"]

    assert updated["title"] == "New title"
    assert updated["slug"] == "hello-world"
    assert updated["excerpt"] == "Keep me"
    assert updated["content"] == {"blocks": []}


def test_update_slug_collision(client, headers):
    create_post(client, headers, title="First")
    second = create_post(client, headers, title="Second")

    response = client.put(f"/posts/{second['id']}", json={"slug": "first"}, headers=headers)
    assert response.status_code == 400
    assert response.json()["code"] == "SLUG_EXISTS"

    # Re-submitting the post's own slug is not a collision
    response = client.put(f"/posts/{second['id']}", json={"slug": "second"}, headers=headers)
    assert response.status_code == 200


def test_update_seo_fields(client, headers):
    post = create_post(client, headers)

    response = client.put(
        f"/posts/{post['id']}",
        json={"seo": {"keywords": "cms, python", "noIndex": True}},
        headers=headers,
    )
    seo = response.json()["post"]["seo"]
    assert seo["keywords"] == "cms, python"
    assert seo["noIndex"] is True
    assert seo["metaTitle"] == "Hello World!"


def test_other_user_cannot_modify(client, headers, make_user, auth_headers):
    post = create_post(client, headers)
    intruder = make_user(email="intruder@example.com")

    response = client.put(f"/posts/{post['id']}", json={"title": "Hijacked"}, headers=auth_headers(intruder))
    assert response.status_code == 403
    assert response.json()["code"] == "UNAUTHORIZED"

    response = client.delete(f"/posts/{post['id']}", headers=auth_headers(intruder))
    assert response.status_code == 403


def test_admin_can_modify_any_post(client, headers, admin, auth_headers):
    post = create_post(client, headers)

    response = client.put(f"/posts/{post['id']}/publish", headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["post"]["status"] == "PUBLISHED"


def test_update_missing_post(client, headers):
    response = client.put("/posts/9999", json={"title": "Ghost"}, headers=headers)
    assert response.status_code == 404
    assert response.json()["code"] == "POST_NOT_FOUND"


def test_delete_removes_comments_and_links(client, headers, db, user):
    category = client.post("/api/categories/", json={"name": "News"}, headers=headers).json()["data"]
    post = create_post(client, headers, categoryIds=[category["id"]])

    with db.session() as session:
        session.add(Comment(post_id=post["id"], author_id=user.id, content="Nice post"))
        session.commit()

    response = client.delete(f"/posts/{post['id']}", headers=headers)
    assert response.status_code == 200

    assert client.get(f"/posts/{post['id']}", headers=headers).status_code == 404
    with db.session() as session:
        assert session.exec(select(Comment)).all() == []
        assert session.exec(select(PostCategoryLink)).all() == []


def test_categories_and_tags_are_attached(client, headers):
    category = client.post("/api/categories/", json={"name": "News"}, headers=headers).json()["data"]
    tag = client.post("/api/tags/", json={"name": "Python"}, headers=headers).json()["data"]

    post = create_post(client, headers, categoryIds=[category["id"]], tagIds=[tag["id"]])
    assert post["categories"] == [{"id": category["id"], "name": "News", "slug": "news"}]
    assert post["tags"][0]["slug"] == "python"


def test_unknown_category_id(client, headers):
    response = client.post("/posts/", json={"title": "Orphan", "categoryIds": [404]}, headers=headers)
    assert response.status_code == 404
    assert response.json()["code"] == "CATEGORY_NOT_FOUND"


class TestQueries:
    def test_anonymous_list_only_shows_published(self, client, headers):
        create_post(client, headers, title="Draft post")
        create_post(client, headers, title="Live post", status="PUBLISHED")

        body = client.get("/posts/").json()
        assert [post["title"] for post in body["posts"]] == ["Live post"]
        assert body["pagination"] == {"page": 1, "limit": 10, "total": 1, "pages": 1}

    def test_authenticated_list_with_status_filter(self, client, headers):
        create_post(client, headers, title="Draft post")
        create_post(client, headers, title="Live post", status="PUBLISHED")

        all_posts = client.get("/posts/", headers=headers).json()["posts"]
        assert len(all_posts) == 2

        drafts = client.get("/posts/", params={"status": "DRAFT"}, headers=headers).json()["posts"]
        assert [post["title"] for post in drafts] == ["Draft post"]

    def test_pagination(self, client, headers):
        for index in range(5):
            create_post(client, headers, title=f"Post {index}", status="PUBLISHED")

        body = client.get("/posts/", params={"page": 2, "limit": 2}).json()
        assert len(body["posts"]) == 2
        assert body["pagination"] == {"page": 2, "limit": 2, "total": 5, "pages": 3}

    def test_filter_by_category_slug(self, client, headers):
        category = client.post("/api/categories/", json={"name": "News"}, headers=headers).json()["data"]
        create_post(client, headers, title="In news", status="PUBLISHED", categoryIds=[category["id"]])
        create_post(client, headers, title="Elsewhere", status="PUBLISHED")

        posts = client.get("/posts/", params={"category": "news"}).json()["posts"]
        assert [post["title"] for post in posts] == ["In news"]

    def test_my_posts(self, client, headers, make_user, auth_headers):
        create_post(client, headers, title="Mine")
        other = make_user(email="other@example.com")
        create_post(client, auth_headers(other), title="Theirs")

        posts = client.get("/posts/my", headers=headers).json()["posts"]
        assert [post["title"] for post in posts] == ["Mine"]

    def test_get_by_id_or_slug(self, client, headers):
        post = create_post(client, headers, status="PUBLISHED")

        assert client.get(f"/posts/{post['id']}").json()["post"]["slug"] == "hello-world"
        assert client.get("/posts/hello-world").json()["post"]["id"] == post["id"]

    def test_anonymous_cannot_read_drafts(self, client, headers):
        post = create_post(client, headers)
        assert client.get(f"/posts/{post['id']}").status_code == 404
        assert client.get(f"/posts/{post['id']}", headers=headers).status_code == 200

    def test_api_prefix_serves_same_routes(self, client, headers):
        create_post(client, headers, status="PUBLISHED")
        assert client.get("/api/posts/hello-world").status_code == 200

    def test_numeric_slug_wins_over_id(self, client, headers):
        first = create_post(client, headers, title="First", status="PUBLISHED")
        numbered = create_post(client, headers, title="2024", status="PUBLISHED")
        assert numbered["slug"] == "2024"

        assert client.get("/posts/2024").json()["post"]["id"] == numbered["id"]
        # Digits that match no slug still resolve as an id
        assert client.get(f"/posts/{first['id']}").json()["post"]["slug"] == "first"


class TestOptionalAuthentication:
    """Public reads treat a bad token like no token at all."""

    @pytest.fixture
    def posts(self, client, headers):
        create_post(client, headers, title="Draft post")
        create_post(client, headers, title="Live post", status="PUBLISHED")

    @pytest.fixture
    def expired_headers(self, user, settings):
        token = create_access_token(
            {"userId": user.id, "email": user.email, "sid": 1},
            settings,
            expires_delta=timedelta(minutes=-1),
        )
        return {"Authorization": f"Bearer {token}"}

    def test_invalid_token_lists_published_only(self, client, posts):
        response = client.get("/posts/", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 200
        assert [post["title"] for post in response.json()["posts"]] == ["Live post"]

    def test_expired_token_lists_published_only(self, client, posts, expired_headers):
        response = client.get("/posts/", headers=expired_headers)
        assert response.status_code == 200
        assert [post["title"] for post in response.json()["posts"]] == ["Live post"]

    def test_bad_tokens_on_single_post(self, client, posts, expired_headers):
        for bad_headers in ({"Authorization": "Bearer not-a-jwt"}, expired_headers):
            assert client.get("/posts/live-post", headers=bad_headers).status_code == 200
            assert client.get("/posts/draft-post", headers=bad_headers).status_code == 404

    def test_revoked_session_reads_as_anonymous(self, client, headers, posts):
        client.post("/auth/logout", headers=headers)

        response = client.get("/posts/", headers=headers)
        assert response.status_code == 200
        assert [post["title"] for post in response.json()["posts"]] == ["Live post"]


def test_collection_routes_answer_without_trailing_slash(client, headers):
    response = client.post("/posts", json={"title": "No slash"}, headers=headers, follow_redirects=False)
    assert response.status_code == 201

    response = client.get("/posts", headers=headers, follow_redirects=False)
    assert response.status_code == 200
    assert response.json()["pagination"]["total"] == 1


def test_seo_score_endpoint(client):
    response = client.post("/posts/seo/score", json={"metaTitle": "A meta title that is exactly forty-five chars"})
    assert response.status_code == 200
    assert response.json()["score"] == 25
