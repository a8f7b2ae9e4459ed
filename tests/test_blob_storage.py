# tests/test_blob_storage.py
"""Blob storage backends."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from camfleet.errors import StorageError, UploadFailed
from camfleet.schemas.layout import DivisionLayout
from camfleet.services.blob_storage import HttpBlobStorage, LocalBlobStorage, object_path_from_url
from camfleet.services.layout_service import LayoutEditor


class TestObjectPath:
    def test_path_recovered_from_public_url(self):
        url = "https://xyz.supabase.co/storage/v1/object/public/layouts/public/division-1-layout-9.png"
        assert object_path_from_url(url, "layouts") == "public/division-1-layout-9.png"

    def test_foreign_or_missing_url(self):
        assert object_path_from_url(None, "layouts") is None
        assert object_path_from_url("https://cdn.example.com/plan.png", "layouts") is None


class TestLocalBlobStorage:
    @pytest.mark.asyncio
    async def test_upload_url_remove(self, tmp_path):
        storage = LocalBlobStorage(str(tmp_path), "http://127.0.0.1:8080/media/")
        await storage.upload("layouts", "public/a.png", b"png")
        assert (tmp_path / "layouts" / "public" / "a.png").read_bytes() == b"png"
        assert storage.get_public_url("layouts", "public/a.png") == "http://127.0.0.1:8080/media/layouts/public/a.png"

        await storage.remove("layouts", ["public/a.png", "public/missing.png"])
        assert not (tmp_path / "layouts" / "public" / "a.png").exists()

    @pytest.mark.asyncio
    async def test_upload_does_not_overwrite(self, tmp_path):
        storage = LocalBlobStorage(str(tmp_path), "http://x/media")
        await storage.upload("layouts", "a.png", b"1")
        with pytest.raises(StorageError):
            await storage.upload("layouts", "a.png", b"2")

    @pytest.mark.asyncio
    async def test_path_escape_rejected(self, tmp_path):
        storage = LocalBlobStorage(str(tmp_path), "http://x/media")
        with pytest.raises(StorageError):
            await storage.upload("layouts", "../../etc/passwd", b"x")


def mock_client(handler):
    """httpx.AsyncClient routed to an in-process handler."""
    real_client = httpx.AsyncClient
    return patch("camfleet.services.blob_storage.httpx.AsyncClient",
                 side_effect=lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs))


class TestHttpBlobStorage:
    @pytest.mark.asyncio
    async def test_upload_posts_object(self):
        seen = {}

        def handler(request):
            seen["method"], seen["url"] = request.method, str(request.url)
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(200, json={"Key": "layouts/public/a.png"})

        storage = HttpBlobStorage("https://store.example.com/", api_key="secret")
        with mock_client(handler):
            await storage.upload("layouts", "public/a.png", b"png", "image/png")

        assert seen == {"method": "POST",
                        "url": "https://store.example.com/storage/v1/object/layouts/public/a.png",
                        "auth": "Bearer secret"}

    @pytest.mark.asyncio
    async def test_forbidden_reported_as_permission_denied(self):
        storage = HttpBlobStorage("https://store.example.com")
        with mock_client(lambda request: httpx.Response(403, json={"message": "Unauthorized"})):
            with pytest.raises(StorageError) as exc:
                await storage.upload("layouts", "a.png", b"x")
        assert "permission denied" in str(exc.value)

    @pytest.mark.asyncio
    async def test_transport_error_wrapped(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        storage = HttpBlobStorage("https://store.example.com")
        with mock_client(handler):
            with pytest.raises(StorageError) as exc:
                await storage.remove("layouts", ["a.png"])
        assert "ConnectError" in str(exc.value)

    def test_public_url(self):
        storage = HttpBlobStorage("https://store.example.com")
        assert storage.get_public_url("layouts", "a.png") == \
            "https://store.example.com/storage/v1/object/public/layouts/a.png"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response", [
        httpx.Response(500, json=["boom"]),
        httpx.Response(500, json="boom"),
        httpx.Response(500, json={"message": {"code": "boom"}}),
        httpx.Response(500, text="boom"),
    ])
    async def test_odd_error_bodies_still_raise_storage_error(self, response):
        storage = HttpBlobStorage("https://store.example.com")
        with mock_client(lambda request: response):
            with pytest.raises(StorageError) as exc:
                await storage.remove("layouts", ["a.png"])
        assert str(exc.value).startswith("HTTP 500: ")
        assert "boom" in str(exc.value)

    @pytest.mark.asyncio
    async def test_forbidden_with_plain_text_body(self):
        storage = HttpBlobStorage("https://store.example.com")
        with mock_client(lambda request: httpx.Response(403, text="nope")):
            with pytest.raises(StorageError) as exc:
                await storage.upload("layouts", "a.png", b"x")
        assert str(exc.value) == "HTTP 403: permission denied: nope"


class TestBackgroundReplaceOverHttp:
    @pytest.mark.asyncio
    async def test_failed_cleanup_of_old_image_is_only_logged(self):
        def handler(request):
            if request.method == "DELETE":
                return httpx.Response(500, json=["boom"])
            return httpx.Response(200, json={"Key": "ok"})

        storage = HttpBlobStorage("https://store.example.com")
        old_url = storage.get_public_url("layouts", "public/division-1-layout-1000.png")
        layout = DivisionLayout(id=5, division_id=1, background_image_url=old_url)
        gateway = MagicMock()
        gateway.upsert_layout = AsyncMock(return_value={})
        cache = MagicMock()
        cache.layout_for.return_value = layout
        cache.refresh = AsyncMock(return_value=True)
        editor = LayoutEditor(gateway, storage, cache, bucket="layouts", clock=lambda: 1700000000.0)

        with mock_client(handler):
            await editor.replace_background(1, "plan.png", b"img", "image/png")

        gateway.upsert_layout.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_upload_with_list_body_is_classified(self):
        storage = HttpBlobStorage("https://store.example.com")
        cache = MagicMock()
        cache.layout_for.return_value = DivisionLayout(division_id=1)
        editor = LayoutEditor(MagicMock(), storage, cache, bucket="layouts")

        with mock_client(lambda request: httpx.Response(502, json=["bad gateway"])):
            with pytest.raises(UploadFailed) as exc:
                await editor.replace_background(1, "plan.png", b"img")
        assert exc.value.kind == "transport"
