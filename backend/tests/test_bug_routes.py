"""
Bug Tracker Backend: Bug Route Tests
======================================

What:  HTTP-level tests through httpx.AsyncClient + ASGITransport.
How:   The app runs against the per-test SQLite database and
       StubTagGenerator; tokens are real JWTs signed with the test secret.

What we test:
    ✅ Every route requires a valid bearer token
    ✅ camelCase JSON in and out
    ✅ Status codes: 201 create, 400 validation, 403 delete, 404 missing
    ✅ Error body shape {error, message, request_id}
    ✅ Static paths (/stats, /users, /tags) are not captured as ids
"""

import uuid

import pytest


class TestAuthentication:

    @pytest.mark.asyncio
    async def test_missing_token(self, test_client):
        response = await test_client.get("/api/bugs")

        assert response.status_code == 401
        body = response.json()
        assert body["error"] == "unauthorized"
        assert body["message"] == "Not authorized, no token"
        assert "request_id" in body

    @pytest.mark.asyncio
    async def test_garbage_token(self, test_client):
        response = await test_client.get(
            "/api/bugs/stats", headers={"Authorization": "Bearer not.a.jwt"}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_token_for_unknown_user(self, test_client):
        from bugtracker.config import settings
        from bugtracker.security import create_access_token

        token = create_access_token(uuid.uuid4(), settings.jwt_secret_key)
        response = await test_client.get(
            "/api/bugs/tags", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 401
        assert response.json()["message"] == "User not found"


class TestCreateAndRead:

    @pytest.mark.asyncio
    async def test_create_returns_201_camel_case(self, test_client, auth_headers, other_user):
        response = await test_client.post(
            "/api/bugs",
            json={
                "title": "Login fails",
                "description": "500 on submit",
                "severity": "High",
                "assignedTo": str(other_user.id),
            },
            headers=auth_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["priority"] == 3
        assert body["status"] == "Open"
        assert body["tags"] == ["auth", "login"]
        assert body["reportedBy"]["username"] == "alice"
        assert body["assignedTo"]["username"] == "bob"
        assert "createdAt" in body and "updatedAt" in body
        assert "password_hash" not in str(body)

    @pytest.mark.asyncio
    async def test_create_validation_error(self, test_client, auth_headers):
        response = await test_client.post(
            "/api/bugs",
            json={"title": "", "description": "d", "severity": "Nope"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["message"] == (
            "Title is required, Severity must be Low, Medium, High, or Critical"
        )
        assert body["details"]["errors"] == [
            "Title is required",
            "Severity must be Low, Medium, High, or Critical",
        ]

    @pytest.mark.asyncio
    async def test_create_then_get(self, test_client, auth_headers):
        created = await test_client.post(
            "/api/bugs",
            json={"title": "Crash", "description": "On save", "severity": "Low"},
            headers=auth_headers,
        )
        bug_id = created.json()["id"]

        response = await test_client.get(f"/api/bugs/{bug_id}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["title"] == "Crash"

    @pytest.mark.asyncio
    async def test_get_missing(self, test_client, auth_headers):
        response = await test_client.get(f"/api/bugs/{uuid.uuid4()}", headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_malformed_id_is_422(self, test_client, auth_headers):
        response = await test_client.get("/api/bugs/not-a-uuid", headers=auth_headers)
        assert response.status_code == 422


class TestListing:

    @pytest.mark.asyncio
    async def test_list_query_params(self, test_client, auth_headers, bug_factory):
        for i in range(12):
            await bug_factory(title=f"Bug {i}", severity="High" if i % 2 else "Low", tags=["ui"])

        response = await test_client.get(
            "/api/bugs",
            params={"severity": "High", "tags": "ui", "page": 2, "limit": 4, "sortBy": "title", "sortOrder": "asc"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 6
        assert body["totalPages"] == 2
        assert body["currentPage"] == 2
        assert len(body["bugs"]) == 2

    @pytest.mark.asyncio
    async def test_limit_out_of_range(self, test_client, auth_headers):
        response = await test_client.get("/api/bugs", params={"limit": 101}, headers=auth_headers)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_bad_sort_field(self, test_client, auth_headers):
        response = await test_client.get("/api/bugs", params={"sortBy": "nope"}, headers=auth_headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_static_paths(self, test_client, auth_headers, bug_factory, other_user):
        await bug_factory(status="Open", severity="High", tags=["ui", "crash"])

        stats = await test_client.get("/api/bugs/stats", headers=auth_headers)
        users = await test_client.get("/api/bugs/users", headers=auth_headers)
        tags = await test_client.get("/api/bugs/tags", headers=auth_headers)

        assert stats.json() == {
            "statusStats": [{"value": "Open", "count": 1}],
            "severityStats": [{"value": "High", "count": 1}],
        }
        assert {u["username"] for u in users.json()} == {"alice", "bob"}
        assert sorted(tags.json()) == ["crash", "ui"]


class TestMutations:

    @pytest.mark.asyncio
    async def test_partial_update(self, test_client, auth_headers, bug_factory, other_user):
        bug = await bug_factory(title="Old", assigned_to=other_user, tags=["ui"])

        response = await test_client.put(
            f"/api/bugs/{bug.id}",
            json={"status": "Resolved", "assignedTo": ""},
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "Resolved"
        assert body["assignedTo"] is None
        assert body["title"] == "Old"
        assert body["tags"] == ["ui"]

    @pytest.mark.asyncio
    async def test_update_title_regenerates_tags(
        self, test_client, auth_headers, bug_factory, stub_tag_generator
    ):
        bug = await bug_factory(title="Old", description="Desc", tags=["ui"])

        response = await test_client.put(
            f"/api/bugs/{bug.id}", json={"title": "New"}, headers=auth_headers
        )

        assert response.json()["tags"] == ["auth", "login"]
        assert stub_tag_generator.calls == [("New", "Desc")]

    @pytest.mark.asyncio
    async def test_delete_by_other_user_forbidden(
        self, test_client, auth_headers, other_auth_headers, bug_factory
    ):
        bug = await bug_factory()

        forbidden = await test_client.delete(f"/api/bugs/{bug.id}", headers=other_auth_headers)
        assert forbidden.status_code == 403
        assert forbidden.json()["message"] == "Not authorized to delete this bug"

        deleted = await test_client.delete(f"/api/bugs/{bug.id}", headers=auth_headers)
        assert deleted.status_code == 200
        assert deleted.json() == {"message": "Bug deleted successfully"}

        missing = await test_client.get(f"/api/bugs/{bug.id}", headers=auth_headers)
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_regenerate_tags(self, test_client, auth_headers, bug_factory, stub_tag_generator):
        bug = await bug_factory(title="Crash", description="On save", tags=["bug", "issue"])
        stub_tag_generator.tags = ["crash", "storage"]

        response = await test_client.post(
            f"/api/bugs/{bug.id}/regenerate-tags", headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["tags"] == ["crash", "storage"]


class TestHealth:

    @pytest.mark.asyncio
    async def test_health_needs_no_token(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["database"] == "connected"
        assert body["tag_model"] == "available"
        assert body["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client):
        response = await test_client.get("/health", headers={"X-Request-ID": "abc12345"})
        assert response.headers["X-Request-ID"] == "abc12345"
