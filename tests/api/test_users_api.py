import pytest
from sqlmodel import select

from lapcms.models.site import Site


@pytest.fixture
def admin_headers(admin, auth_headers):
    return auth_headers(admin)


class TestAdministration:
    def test_non_admin_is_forbidden(self, client, user, auth_headers):
        response = client.get("/users/", headers=auth_headers(user))
        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN"

    def test_create_user_with_site(self, client, admin_headers):
        response = client.post(
            "/users/",
            json={"name": "Writer", "email": "Writer@Example.com", "password": "secret1", "siteName": "Writer's Blog"},
            headers=admin_headers,
        )
        assert response.status_code == 201
        body = response.json()
        assert body["user"]["email"] == "writer@example.com"
        assert body["user"]["role"] == "USER"
        assert body["site"]["name"] == "Writer's Blog"
        assert len(body["site"]["apiKey"]) == 64

        login = client.post("/auth/login", json={"email": "writer@example.com", "password": "secret1"})
        assert login.status_code == 200

    def test_create_requires_fields(self, client, admin_headers):
        response = client.post("/users/", json={"email": "x@example.com"}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "MISSING_FIELDS"

    def test_create_rejects_malformed_email(self, client, admin_headers):
        response = client.post(
            "/users", json={"name": "Bad", "email": "bad-address", "password": "secret1"}, headers=admin_headers
        )
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["details"][0]["field"] == "email"

    def test_create_duplicate_email(self, client, admin_headers, user):
        response = client.post(
            "/users/",
            json={"name": "Copy", "email": user.email, "password": "secret1"},
            headers=admin_headers,
        )
        assert response.status_code == 409
        assert response.json()["code"] == "EMAIL_EXISTS"

    def test_list_users(self, client, admin_headers, user):
        body = client.get("/api/users/", headers=admin_headers).json()
        assert body["pagination"]["total"] == 2
        assert {item["email"] for item in body["users"]} == {"admin@example.com", user.email}

    def test_get_user_with_sites(self, client, admin_headers, user):
        body = client.get(f"/users/{user.id}", headers=admin_headers).json()
        assert body["user"]["id"] == user.id
        assert [site["apiKey"] for site in body["sites"]] == [user.api_key]

    def test_get_missing_user(self, client, admin_headers):
        response = client.get("/users/9999", headers=admin_headers)
        assert response.status_code == 404

    def test_update_user(self, client, admin_headers, user):
        response = client.put(
            f"/users/{user.id}",
            json={"name": "Renamed", "role": "ADMIN", "isActive": False},
            headers=admin_headers,
        )
        assert response.status_code == 200
        updated = response.json()["user"]
        assert updated["name"] == "Renamed"
        assert updated["role"] == "ADMIN"
        assert updated["isActive"] is False

    def test_update_email_collision(self, client, admin_headers, user):
        response = client.put(f"/users/{user.id}", json={"email": "admin@example.com"}, headers=admin_headers)
        assert response.status_code == 409
        assert response.json()["code"] == "EMAIL_EXISTS"

    def test_delete_user_removes_sites(self, client, db, admin_headers, user):
        response = client.delete(f"/users/{user.id}", headers=admin_headers)
        assert response.status_code == 200

        with db.session() as session:
            assert session.exec(select(Site).where(Site.user_id == user.id)).all() == []

    def test_cannot_delete_self(self, client, admin, admin_headers):
        response = client.delete(f"/users/{admin.id}", headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "SELF_DELETE_FORBIDDEN"

    def test_cannot_delete_author_with_posts(self, client, admin_headers, user, auth_headers):
        client.post("/posts/", json={"title": "Keep me"}, headers=auth_headers(user))

        response = client.delete(f"/users/{user.id}", headers=admin_headers)
        assert response.status_code == 409
        assert response.json()["code"] == "USER_HAS_POSTS"


class TestSiteSelfService:
    def test_regenerate_api_key(self, client, user, auth_headers):
        response = client.put("/users/regenerate-api-key", headers=auth_headers(user))
        assert response.status_code == 200
        new_key = response.json()["newApiKey"]
        assert new_key != user.api_key
        assert len(new_key) == 64

        # The old key stops working immediately
        assert client.get("/api/sdk/posts", headers={"x-api-key": user.api_key}).status_code == 401
        assert client.get("/api/sdk/posts", headers={"x-api-key": new_key}).status_code == 200

    def test_regenerate_without_site(self, client, make_user, auth_headers):
        siteless = make_user(email="siteless@example.com", with_site=False)
        response = client.put("/users/regenerate-api-key", headers=auth_headers(siteless))
        assert response.status_code == 404
        assert response.json()["code"] == "SITE_NOT_FOUND"

    def test_update_site_normalises_domain(self, client, user, auth_headers):
        response = client.put(
            "/users/update-site",
            json={"name": "My Blog", "domain": "https://Example.com/blog", "description": "  "},
            headers=auth_headers(user),
        )
        assert response.status_code == 200
        site = response.json()["site"]
        assert site["name"] == "My Blog"
        assert site["domain"] == "example.com"
        assert site["description"] is None

    def test_update_site_blank_domain_becomes_null(self, client, make_user, auth_headers):
        owner = make_user(email="owner@example.com", site_domain="example.com")
        response = client.put("/users/update-site", json={"name": "Site", "domain": ""}, headers=auth_headers(owner))
        assert response.json()["site"]["domain"] is None

    def test_update_site_requires_name(self, client, user, auth_headers):
        response = client.put("/users/update-site", json={"domain": "example.com"}, headers=auth_headers(user))
        assert response.status_code == 400
        assert response.json()["code"] == "MISSING_SITE_NAME"

    def test_update_site_domain_taken(self, client, user, make_user, auth_headers):
        make_user(email="first@example.com", site_domain="example.com")
        response = client.put(
            "/users/update-site", json={"name": "Copycat", "domain": "example.com"}, headers=auth_headers(user)
        )
        assert response.status_code == 409
        assert response.json()["code"] == "DOMAIN_EXISTS"
