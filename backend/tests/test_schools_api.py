"""
School Directory Backend — API Integration Tests
==================================================

What:  End-to-end tests through the ASGI app with a per-test SQLite database
       and the local Blob Store in a temporary directory.

Test Strategy:
    ✅ Create → list → fetch by id → image served
    ✅ Field and image validation answer 400 without writing anything
    ✅ Partial update and image replacement
    ✅ Delete, including a school whose image file is already gone
    ✅ Error body shape, request ID propagation and the access log line
    ✅ Contact round-trips exactly (leading zeros, ASCII digits only)
    ✅ Image content sniffed; oversized parts refused before reading
"""

import logging
import os
from unittest.mock import AsyncMock, patch

import pytest
from starlette.datastructures import UploadFile as StarletteUploadFile

from school_directory.services.school_service import school_service


async def _create(client, form, image_bytes, filename="logo.png", content_type="image/png"):
    return await client.post(
        "/api/schools",
        data=form,
        files={"image": (filename, image_bytes, content_type)},
    )


async def _fetch(client, school_id):
    response = await client.get("/api/schools", params={"id": school_id})
    assert response.status_code == 200
    body = response.json()
    assert len(body) == 1
    return body[0]


class TestCreateAndRead:

    @pytest.mark.asyncio
    async def test_create_list_and_serve_image(self, test_client, school_form, sample_png_bytes):
        response = await _create(test_client, school_form, sample_png_bytes)

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "School added successfully"
        school_id = body["id"]

        listing = await test_client.get("/api/schools")
        assert listing.status_code == 200
        schools = listing.json()
        assert len(schools) == 1
        school = schools[0]
        assert school["id"] == school_id
        assert school["name"] == "Oak Hill"
        assert school["contact"] == "5551234567"
        assert school["email_id"] == "x@y.com"
        assert school["image"].startswith("/schoolImages/")
        assert school["image"].endswith("-logo.png")
        assert "image_key" not in school

        image = await test_client.get(school["image"])
        assert image.status_code == 200
        assert image.content == sample_png_bytes

    @pytest.mark.asyncio
    async def test_large_contact_round_trips_as_string(self, test_client, school_form, sample_png_bytes):
        school_form["contact"] = "9999999999"
        created = await _create(test_client, school_form, sample_png_bytes)

        school = await _fetch(test_client, created.json()["id"])
        assert school["contact"] == "9999999999"

    @pytest.mark.asyncio
    async def test_leading_zero_contact_round_trips(self, test_client, school_form, sample_png_bytes):
        school_form["contact"] = "0551234567"
        created = await _create(test_client, school_form, sample_png_bytes)
        assert created.status_code == 200

        school = await _fetch(test_client, created.json()["id"])
        assert school["contact"] == "0551234567"

    @pytest.mark.asyncio
    async def test_list_empty(self, test_client):
        response = await test_client.get("/api/schools")
        assert response.status_code == 200
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_fetch_missing_id_returns_404(self, test_client):
        response = await test_client.get("/api/schools", params={"id": 999})

        assert response.status_code == 404
        body = response.json()
        assert "not found" in body["error"]
        assert "request_id" in body

    @pytest.mark.asyncio
    async def test_non_numeric_id_returns_400(self, test_client):
        response = await test_client.get("/api/schools", params={"id": "abc"})
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request"

    @pytest.mark.asyncio
    async def test_missing_image_file_returns_404(self, test_client):
        response = await test_client.get("/schoolImages/1700000000000-nothing.png")
        assert response.status_code == 404


class TestCreateValidation:

    @pytest.mark.asyncio
    async def test_missing_image_returns_400(self, test_client, school_form):
        response = await test_client.post("/api/schools", data=school_form)

        assert response.status_code == 400
        assert response.json()["error"] == "Image is required"
        assert (await test_client.get("/api/schools")).json() == []

    @pytest.mark.asyncio
    async def test_gif_rejected_before_storage(self, test_client, school_form):
        store = school_service.files.blob_store
        with patch.object(store, "save", new=AsyncMock()) as save:
            response = await _create(
                test_client, school_form, b"GIF89a" + b"\x00" * 10,
                filename="anim.gif", content_type="image/gif",
            )

        assert response.status_code == 400
        assert response.json()["error"] == "Only JPEG or PNG images are allowed"
        save.assert_not_awaited()
        assert (await test_client.get("/api/schools")).json() == []

    @pytest.mark.asyncio
    async def test_oversized_image_returns_400(self, test_client, school_form):
        too_big = b"\x89PNG\r\n\x1a\n" + b"\x00" * (5 * 1024 * 1024)
        response = await _create(test_client, school_form, too_big)

        assert response.status_code == 400
        assert "exceeds maximum size" in response.json()["error"]

    @pytest.mark.asyncio
    async def test_oversized_image_refused_before_reading(self, test_client, school_form):
        too_big = b"\x89PNG\r\n\x1a\n" + b"\x00" * (5 * 1024 * 1024)
        with patch.object(StarletteUploadFile, "read", new=AsyncMock(return_value=too_big)) as read:
            response = await _create(test_client, school_form, too_big)

        assert response.status_code == 400
        read.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_gif_bytes_disguised_as_png_rejected(self, test_client, school_form):
        store = school_service.files.blob_store
        with patch.object(store, "save", new=AsyncMock()) as save:
            response = await _create(
                test_client, school_form, b"GIF89a" + b"\x00" * 32,
                filename="logo.png", content_type="image/png",
            )

        assert response.status_code == 400
        assert response.json()["error"] == "Only JPEG or PNG images are allowed"
        assert "image/gif" in response.json()["details"]
        save.assert_not_awaited()
        assert (await test_client.get("/api/schools")).json() == []

    @pytest.mark.asyncio
    async def test_non_ascii_digit_contact_returns_400(self, test_client, school_form, sample_png_bytes):
        school_form["contact"] = "٥٥٥١٢٣٤٥٦٧"
        response = await _create(test_client, school_form, sample_png_bytes)

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid value for 'contact'"
        assert (await test_client.get("/api/schools")).json() == []

    @pytest.mark.asyncio
    async def test_bad_contact_returns_400(self, test_client, school_form, sample_png_bytes):
        school_form["contact"] = "12345"
        response = await _create(test_client, school_form, sample_png_bytes)

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Invalid value for 'contact'"
        assert body["details"]

    @pytest.mark.asyncio
    async def test_bad_email_returns_400(self, test_client, school_form, sample_png_bytes):
        school_form["email_id"] = "not-an-email"
        response = await _create(test_client, school_form, sample_png_bytes)

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid value for 'email_id'"

    @pytest.mark.asyncio
    async def test_missing_field_returns_400(self, test_client, school_form, sample_png_bytes):
        del school_form["city"]
        response = await _create(test_client, school_form, sample_png_bytes)

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid value for 'city'"


class TestUpdate:

    @pytest.mark.asyncio
    async def test_update_single_field(self, test_client, school_form, sample_png_bytes):
        school_id = (await _create(test_client, school_form, sample_png_bytes)).json()["id"]
        before = await _fetch(test_client, school_id)

        response = await test_client.put(
            "/api/schools", params={"id": school_id}, data={"city": "Shelbyville"},
        )

        assert response.status_code == 200
        assert response.json() == {"message": "School updated successfully"}
        after = await _fetch(test_client, school_id)
        assert after["city"] == "Shelbyville"
        assert after["name"] == before["name"]
        assert after["image"] == before["image"]

    @pytest.mark.asyncio
    async def test_update_replaces_image(self, test_client, school_form, sample_png_bytes, sample_jpeg_bytes):
        school_id = (await _create(test_client, school_form, sample_png_bytes)).json()["id"]
        old_image = (await _fetch(test_client, school_id))["image"]

        response = await test_client.put(
            "/api/schools",
            params={"id": school_id},
            files={"image": ("campus.jpg", sample_jpeg_bytes, "image/jpeg")},
        )

        assert response.status_code == 200
        new_image = (await _fetch(test_client, school_id))["image"]
        assert new_image != old_image
        assert new_image.endswith("-campus.jpg")
        assert (await test_client.get(old_image)).status_code == 404
        assert (await test_client.get(new_image)).content == sample_jpeg_bytes

    @pytest.mark.asyncio
    async def test_update_missing_school_returns_404(self, test_client):
        response = await test_client.put("/api/schools", params={"id": 999}, data={"city": "X"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_update_without_id_returns_400(self, test_client):
        response = await test_client.put("/api/schools", data={"city": "X"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_update_bad_contact_returns_400(self, test_client, school_form, sample_png_bytes):
        school_id = (await _create(test_client, school_form, sample_png_bytes)).json()["id"]

        response = await test_client.put(
            "/api/schools", params={"id": school_id}, data={"contact": "abc"},
        )

        assert response.status_code == 400
        assert (await _fetch(test_client, school_id))["contact"] == "5551234567"


class TestDelete:

    @pytest.mark.asyncio
    async def test_delete_removes_record_and_image(self, test_client, school_form, sample_png_bytes):
        school_id = (await _create(test_client, school_form, sample_png_bytes)).json()["id"]
        image = (await _fetch(test_client, school_id))["image"]

        response = await test_client.delete(
            "/api/schools", params={"id": school_id, "imagePath": image},
        )

        assert response.status_code == 200
        assert response.json() == {"message": "School deleted successfully"}
        assert (await test_client.get("/api/schools", params={"id": school_id})).status_code == 404
        assert (await test_client.get(image)).status_code == 404

    @pytest.mark.asyncio
    async def test_delete_when_image_already_gone(self, test_client, school_form, sample_png_bytes):
        school_id = (await _create(test_client, school_form, sample_png_bytes)).json()["id"]
        image = (await _fetch(test_client, school_id))["image"]
        store = school_service.files.blob_store
        os.remove(store.path_for(image.rsplit("/", 1)[-1]))

        response = await test_client.delete("/api/schools", params={"id": school_id})

        assert response.status_code == 200
        assert (await test_client.get("/api/schools", params={"id": school_id})).status_code == 404

    @pytest.mark.asyncio
    async def test_delete_missing_school_returns_404(self, test_client):
        response = await test_client.delete("/api/schools", params={"id": 999})
        assert response.status_code == 404


class TestServiceEndpoints:

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, test_client):
        response = await test_client.get("/api/schools", headers={"X-Request-ID": "abc12345"})
        assert response.headers["X-Request-ID"] == "abc12345"

    @pytest.mark.asyncio
    async def test_error_body_carries_request_id(self, test_client):
        response = await test_client.get(
            "/api/schools", params={"id": 999}, headers={"X-Request-ID": "trace-1"},
        )
        assert response.json()["request_id"] == "trace-1"

    @pytest.mark.asyncio
    async def test_unsafe_request_id_is_replaced(self, test_client):
        response = await test_client.get("/api/schools", headers={"X-Request-ID": "two words;" + "x" * 80})

        rid = response.headers["X-Request-ID"]
        assert len(rid) == 8
        assert all(ch in "0123456789abcdef" for ch in rid)

    @pytest.mark.asyncio
    async def test_access_log_names_school_and_upload_size(self, test_client, caplog):
        caplog.set_level(logging.INFO, logger="school_directory.access")

        await test_client.get("/api/schools", params={"id": 999}, headers={"X-Request-ID": "log-1"})

        lines = [r.getMessage() for r in caplog.records if r.name == "school_directory.access"]
        assert any("GET /api/schools?id=999 404" in line and "[log-1]" in line for line in lines)
        assert all(" in=" in line for line in lines)

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["storage"] == "local:available"
