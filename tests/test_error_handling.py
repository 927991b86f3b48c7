"""Error envelope tests: authentication, validation, unknown routes, maintenance"""

import time

from tests.factories import create_family, make_token


# =============================================================================
# Authentication
# =============================================================================

class TestAuthenticationErrors:
    """401 envelopes for missing or bad tokens"""

    def test_missing_auth_header(self, client):
        response = client.get("/families")

        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Missing auth header"}

    def test_wrong_auth_scheme(self, client):
        response = client.get("/families", headers={"Authorization": "Basic dXNlcjpwYXNz"})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid auth header"

    def test_garbage_token(self, client):
        response = client.get("/families", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token"

    def test_expired_token(self, client):
        token = make_token("ext-old", "Old Token", exp=int(time.time()) - 60)

        response = client.get("/families", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    def test_wrong_audience(self, client):
        token = make_token("ext-aud", "Wrong Audience", aud="someone-else")

        response = client.get("/families", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401


# =============================================================================
# Validation and routing
# =============================================================================

class TestEnvelope:
    """Every failure uses the same envelope"""

    def test_validation_errors_are_field_level(self, client, alice):
        response = client.post("/families/create", json={"description": "x"}, headers=alice)

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Invalid input"
        assert body["errors"][0]["field"] == "name"

    def test_unknown_route(self, client):
        response = client.get("/no-such-route")

        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_health(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["success"] is True


# =============================================================================
# Uploads and maintenance
# =============================================================================

class TestMaintenance:
    """Signed uploads and the bulk wipe switch"""

    def test_sign_needs_remote_storage(self, client, alice):
        response = client.post("/upload/sign", json={"filename": "clip.mp4"}, headers=alice)

        assert response.status_code == 500
        assert response.json()["success"] is False

    def test_bulk_wipe_disabled_by_default(self, client, alice):
        create_family(client, alice)

        response = client.delete("/delete-all", headers=alice)

        assert response.status_code == 403
        assert len(client.get("/families", headers=alice).json()["data"]) == 1

    def test_bulk_wipe_when_enabled(self, client, alice, monkeypatch):
        from fambook.config import settings

        create_family(client, alice)
        monkeypatch.setattr(settings, "ALLOW_BULK_WIPE", True)

        response = client.delete("/delete-all", headers=alice)

        assert response.status_code == 200
        assert response.json()["data"]["deleted"]["families"] == 1


# =============================================================================
# Debug detail
# =============================================================================

class TestDebugErrors:
    """Raw exception text only reaches clients when explicitly enabled"""

    def test_debug_errors_off_when_unset(self, monkeypatch):
        import importlib

        from fambook import config

        original = config.settings
        monkeypatch.delenv("DEBUG_ERRORS", raising=False)
        monkeypatch.delenv("ENV", raising=False)
        try:
            fresh = importlib.reload(config).settings
        finally:
            config.settings = original

        assert fresh.DEBUG_ERRORS is False

    def test_unhandled_error_hides_detail(self, client, alice, monkeypatch):
        from fambook.config import settings
        from fambook.core import notifications

        family = create_family(client, alice)

        def explode(*args, **kwargs):
            raise RuntimeError("secret connection string")

        monkeypatch.setattr(settings, "DEBUG_ERRORS", False)
        monkeypatch.setattr(notifications, "notify_family", explode)

        response = client.post(f"/families/{family['familyId']}/posts", json={"text": "Hi"}, headers=alice)

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert "error" not in body
        assert "secret" not in response.text
