"""Tests for the admin API."""

import io
from unittest.mock import patch

from fastapi.testclient import TestClient

from app.models.creator import ContentCreator

ADMIN_PASSWORD = "admin-password-123"


class TestAdminLogin:
    def test_login(self, client: TestClient):
        response = client.post("/api/admin/login", json={"password": ADMIN_PASSWORD})
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True

        stats = client.get("/api/admin/stats", headers={"Authorization": f"Bearer {data['token']}"})
        assert stats.status_code == 200

    def test_wrong_password(self, client: TestClient):
        response = client.post("/api/admin/login", json={"password": "guess"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid password"

    def test_endpoints_require_token(self, client: TestClient):
        assert client.get("/api/admin/stats").status_code == 401
        assert client.get("/api/admin/files").status_code == 401
        assert client.get("/api/admin/users").status_code == 401

    def test_invalid_token(self, client: TestClient):
        response = client.get("/api/admin/stats", headers={"Authorization": "Bearer not.a.token"})
        assert response.status_code == 401


class TestStorage:
    def test_stats(self, client: TestClient, admin_headers: dict, make_record):
        make_record(size_bytes=1000)
        make_record(size_bytes=500, migration_status="skip", migration_queued_at=None)
        make_record(size_bytes=250, migration_status="completed", ipfs_status="migrated")

        response = client.get("/api/admin/stats", headers=admin_headers)
        assert response.json() == {"totalFiles": 3, "demoFiles": 1, "pendingMigration": 1, "totalSize": 1750}

    def test_list_files_filters(self, client: TestClient, admin_headers: dict, make_record):
        make_record(permlink="pend0001")
        make_record(permlink="demo0001", migration_status="skip", migration_queued_at=None)
        make_record(permlink="gone0001", status="removed", content_id="bafy" + "a" * 54)

        def permlinks(query: str) -> set[str]:
            response = client.get(f"/api/admin/files{query}", headers=admin_headers)
            assert response.status_code == 200
            return {f["permlink"] for f in response.json()}

        assert permlinks("") == {"pend0001", "demo0001", "gone0001"}
        assert permlinks("?filter=pending") == {"pend0001", "gone0001"}
        assert permlinks("?filter=demo") == {"demo0001"}
        assert permlinks("?filter=removed") == {"gone0001"}
        assert permlinks(f"?cid=bafy{'a' * 54}") == {"gone0001"}

    def test_unknown_filter(self, client: TestClient, admin_headers: dict):
        response = client.get("/api/admin/files?filter=everything", headers=admin_headers)
        assert response.status_code == 400

    def test_delete_is_logical(self, client: TestClient, admin_headers: dict, make_record):
        make_record(permlink="dele0001")

        response = client.delete("/api/admin/files/dele0001", headers=admin_headers)
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "File deleted"}

        assert client.get("/api/audio?a=dele0001").status_code == 404
        removed = client.get("/api/lifecycle/removed", headers=admin_headers).json()
        assert [r["permlink"] for r in removed] == ["dele0001"]

    def test_delete_is_audit_logged(self, client: TestClient, admin_headers: dict, make_record):
        make_record(permlink="dele0002")
        with patch("main.logger") as mock_logger:
            client.delete("/api/admin/files/dele0002", headers=admin_headers)
            calls = [str(c) for c in mock_logger.info.call_args_list]
            assert any("AUDIT" in c and "/api/admin/files/dele0002" in c for c in calls)

    def test_delete_unknown(self, client: TestClient, admin_headers: dict):
        response = client.delete("/api/admin/files/nothere1", headers=admin_headers)
        assert response.status_code == 404


class TestUsers:
    def _add_users(self, db_session):
        db_session.add_all(
            [
                ContentCreator(username="alice"),
                ContentCreator(username="bob", banned=True, can_upload=False),
                ContentCreator(username="alicia"),
            ]
        )
        db_session.commit()

    def test_list_users(self, client: TestClient, admin_headers: dict, db_session):
        self._add_users(db_session)

        data = client.get("/api/admin/users", headers=admin_headers).json()
        assert data["pagination"] == {"page": 1, "limit": 50, "total": 3, "pages": 1}
        assert {u["username"] for u in data["users"]} == {"alice", "bob", "alicia"}

    def test_search_and_filter(self, client: TestClient, admin_headers: dict, db_session):
        self._add_users(db_session)

        found = client.get("/api/admin/users?search=ali", headers=admin_headers).json()
        assert {u["username"] for u in found["users"]} == {"alice", "alicia"}

        banned = client.get("/api/admin/users?banned=true", headers=admin_headers).json()
        assert [u["username"] for u in banned["users"]] == ["bob"]

    def test_pagination(self, client: TestClient, admin_headers: dict, db_session):
        self._add_users(db_session)

        data = client.get("/api/admin/users?page=2&limit=2", headers=admin_headers).json()
        assert data["pagination"]["pages"] == 2
        assert len(data["users"]) == 1

    def test_ban_blocks_uploads(self, client: TestClient, admin_headers: dict, api_headers: dict, db_session):
        self._add_users(db_session)

        response = client.post("/api/admin/users/alice/ban", json={"banned": True}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["banned"] is True
        assert response.json()["can_upload"] is False

        upload = client.post(
            "/api/audio/upload",
            files={"audio": ("clip.mp3", io.BytesIO(b"ID3" + b"\x00" * 100), "audio/mpeg")},
            data={"duration": "1.0", "format": "mp3"},
            headers=api_headers,
        )
        assert upload.status_code == 403

        unban = client.post("/api/admin/users/alice/ban", json={"banned": False}, headers=admin_headers)
        assert unban.json()["can_upload"] is True

    def test_ban_unknown_user(self, client: TestClient, admin_headers: dict):
        response = client.post("/api/admin/users/ghost/ban", json={"banned": True}, headers=admin_headers)
        assert response.status_code == 404

    def test_user_stats(self, client: TestClient, admin_headers: dict, db_session, make_record):
        db_session.add(ContentCreator(username="carol"))
        db_session.commit()
        make_record(owner="carol", plays=3)
        make_record(owner="carol", plays=4)
        make_record(owner="dave", plays=100)

        data = client.get("/api/admin/users/carol/stats", headers=admin_headers).json()
        assert data["total_uploads"] == 2
        assert data["total_plays"] == 7
        assert data["last_upload"] is not None

    def test_user_stats_no_uploads(self, client: TestClient, admin_headers: dict, db_session):
        db_session.add(ContentCreator(username="nobody"))
        db_session.commit()

        data = client.get("/api/admin/users/nobody/stats", headers=admin_headers).json()
        assert data == {"total_uploads": 0, "total_plays": 0, "last_upload": None}

    def test_user_stats_unknown_user(self, client: TestClient, admin_headers: dict, make_record):
        make_record(owner="ghost")
        response = client.get("/api/admin/users/ghost/stats", headers=admin_headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "User not found"
