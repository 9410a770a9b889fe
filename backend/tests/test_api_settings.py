"""Tests for Settings API (blogroll_sync/api/settings.py).

Tests settings endpoints:
- GET /api/v1/settings - Form view with display rules applied
- POST /api/v1/settings - Sanitize and store a submission (JSON or form data)
"""

import json

from fastapi import status
from sqlalchemy.exc import OperationalError
from unittest.mock import AsyncMock, patch

from blogroll_sync.models import Setting
from blogroll_sync.services.settings_service import OPTION_NAME, SettingsService


class TestGetSettingsEndpoint:
    """Test suite for GET /api/v1/settings endpoint."""

    async def test_defaults_when_never_saved(self, client):
        """Test returns the zero-value record before anything is saved."""
        response = await client.get("/api/v1/settings")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["url"] == ""
        assert data["username"] == ""
        assert data["password"] == ""
        assert data["password_locked"] is False
        assert data["denylist"] == ""
        assert data["categories_enabled"] is False
        assert data["default_category"] is None
        assert data["categories"] == []

    async def test_lists_category_choices(self, client, make_categories):
        """Test category choices are included, ordered by name."""
        await make_categories({7: "Podcasts", 5: "Friends"})

        response = await client.get("/api/v1/settings")

        assert response.json()["categories"] == [
            {"id": 5, "name": "Friends"},
            {"id": 7, "name": "Podcasts"},
        ]

    async def test_password_locked_under_override(self, client, db, stored_record, password_override, no_encryption):
        """Test the password is blanked and locked when set by the environment."""
        await SettingsService.save(db, stored_record)

        data = (await client.get("/api/v1/settings")).json()

        assert data["password"] == ""
        assert data["password_locked"] is True

    async def test_legacy_blacklist_fallback(self, client, db):
        """Test the legacy blacklist is shown when the denylist is empty."""
        db.add(Setting(key=OPTION_NAME, value=json.dumps({"denylist": "", "blacklist": "legacy.example"})))
        await db.commit()

        data = (await client.get("/api/v1/settings")).json()

        assert data["denylist"] == "legacy.example"

    async def test_no_store_header(self, client):
        """Test settings responses are not cached."""
        response = await client.get("/api/v1/settings")

        assert response.headers["Cache-Control"] == "no-store"

    async def test_database_error_returns_generic_500(self, client):
        """Test persistence failures surface as a generic error."""
        with patch.object(
            SettingsService, "form_view", AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("db locked")))
        ):
            response = await client.get("/api/v1/settings")

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["detail"] == "Failed to load settings"
        assert "db locked" not in response.text


class TestSaveSettingsEndpoint:
    """Test suite for POST /api/v1/settings endpoint."""

    async def test_full_submission(self, client, make_categories, no_encryption):
        """Test every field is sanitized and stored."""
        await make_categories({5: "Friends"})

        response = await client.post(
            "/api/v1/settings",
            json={
                "url": "https://example.org/feed.opml",
                "username": "reader",
                "password": "secret",
                "denylist": "foo\nbar\r\nbaz\n",
                "categories_enabled": "1",
                "default_category": "5",
            },
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["url"] == "https://example.org/feed.opml"
        assert data["username"] == "reader"
        assert data["password"] == "secret"
        assert data["denylist"] == "foo\r\nbar\r\nbaz"
        assert data["categories_enabled"] is True
        assert data["default_category"] == 5

    async def test_invalid_url_keeps_stored_url(self, client, db, stored_record, no_encryption):
        """Test a bad URL is silently ignored."""
        await SettingsService.save(db, stored_record)

        response = await client.post("/api/v1/settings", json={"url": "not a url"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["url"] == "https://example.com/opml"

    async def test_unknown_category_is_cleared(self, client, db, stored_record, make_categories, no_encryption):
        """Test a non-existent category becomes null."""
        await make_categories({5: "Friends"})
        await SettingsService.save(db, stored_record)

        response = await client.post("/api/v1/settings", json={"default_category": "9999"})

        assert response.json()["default_category"] is None

    async def test_empty_submission_resets_flag_and_password(self, client, db, stored_record, no_encryption):
        """Test an empty submission disables categories and clears the password."""
        await SettingsService.save(db, stored_record)

        response = await client.post("/api/v1/settings", json={})

        data = response.json()
        assert data["categories_enabled"] is False
        assert data["password"] == ""
        assert data["url"] == stored_record.url
        assert data["username"] == stored_record.username
        assert data["default_category"] == stored_record.default_category

    async def test_override_blanks_password(self, client, db, password_override):
        """Test the override wins over a submitted password."""
        response = await client.post("/api/v1/settings", json={"password": "typed-in"})

        assert response.json()["password"] == ""
        assert (await SettingsService.load(db)).password == ""

    async def test_json_booleans_and_numbers(self, client, make_categories):
        """Test JSON scalars are treated like their form equivalents."""
        await make_categories({7: "Podcasts"})

        response = await client.post(
            "/api/v1/settings",
            json={"categories_enabled": True, "default_category": 7},
        )

        data = response.json()
        assert data["categories_enabled"] is True
        assert data["default_category"] == 7

    async def test_form_encoded_submission(self, client, make_categories, no_encryption):
        """Test an HTML form post with bracketed field names."""
        await make_categories({5: "Friends"})

        response = await client.post(
            "/api/v1/settings",
            data={
                f"{OPTION_NAME}[url]": "https://example.org/feed.opml",
                f"{OPTION_NAME}[username]": "reader",
                f"{OPTION_NAME}[password]": "",
                f"{OPTION_NAME}[denylist]": "a\r\nb",
                f"{OPTION_NAME}[default_category]": "5",
                "submit": "Save Changes",
            },
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["url"] == "https://example.org/feed.opml"
        assert data["username"] == "reader"
        assert data["denylist"] == "a\r\nb"
        assert data["categories_enabled"] is False
        assert data["default_category"] == 5

    async def test_multipart_form_submission(self, client, make_categories, no_encryption):
        """Test a multipart form post is parsed like a urlencoded one."""
        await make_categories({7: "Podcasts"})

        response = await client.post(
            "/api/v1/settings",
            data={
                f"{OPTION_NAME}[username]": "multipart-reader",
                f"{OPTION_NAME}[categories_enabled]": "1",
                f"{OPTION_NAME}[default_category]": "7",
            },
            files={"attachment": ("feeds.opml", b"<opml/>", "text/xml")},
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["username"] == "multipart-reader"
        assert data["categories_enabled"] is True
        assert data["default_category"] == 7

    async def test_unencodable_url_keeps_stored_url(self, client, db, stored_record, no_encryption):
        """Test a URL with a lone surrogate is ignored rather than failing the save."""
        await SettingsService.save(db, stored_record)

        response = await client.post(
            "/api/v1/settings",
            content=b'{"url": "https://example.org/\\ud800", "username": "kept-going"}',
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["url"] == stored_record.url
        assert data["username"] == "kept-going"

    async def test_form_encoded_plain_names(self, client):
        """Test form data with plain field names."""
        response = await client.post("/api/v1/settings", data={"username": "plain", "url": ""})

        data = response.json()
        assert data["username"] == "plain"
        assert data["url"] == ""

    async def test_empty_body(self, client, db, stored_record, no_encryption):
        """Test an empty body is an empty submission."""
        await SettingsService.save(db, stored_record)

        response = await client.post("/api/v1/settings", content=b"", headers={"Content-Type": "application/json"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["username"] == "reader"

    async def test_malformed_json_rejected(self, client):
        """Test a body that is not JSON returns 422."""
        response = await client.post(
            "/api/v1/settings", content=b"{broken", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    async def test_json_array_rejected(self, client):
        """Test a JSON body that is not an object returns 422."""
        response = await client.post("/api/v1/settings", json=["url"])

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    async def test_database_error_returns_generic_500(self, client):
        """Test a failing save surfaces as a generic error."""
        with patch.object(
            SettingsService,
            "apply_submission",
            AsyncMock(side_effect=OperationalError("UPDATE", {}, Exception("disk full"))),
        ):
            response = await client.post("/api/v1/settings", json={"username": "x"})

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["detail"] == "Failed to save settings"
        assert "disk full" not in response.text


class TestHealthEndpoint:
    """Test suite for GET /health."""

    async def test_health(self, client):
        """Test health check reports healthy."""
        response = await client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"status": "healthy", "service": "blogroll-sync"}
