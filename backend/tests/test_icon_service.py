"""图标服务：上传校验、SVG 清洗、远程下载"""
import os
import shutil

import httpx
import pytest

from dashlink.exceptions import NotFound, UpstreamFetchError, ValidationError
from dashlink.models import Link, User
from dashlink.services.icon_service import IconService
from dashlink.services.link_service import LinkService
from dashlink.services.link_store import LinkStore
from dashlink.utils.images import detect_mime, sanitize_svg

SVG = (
    b'<svg xmlns="http://www.w3.org/2000/svg" xmlns:xlink="http://www.w3.org/1999/xlink" '
    b'width="16" height="16" onload="alert(1)">'
    b'<script>alert(2)</script>'
    b'<foreignObject><div>x</div></foreignObject>'
    b'<a xlink:href="javascript:alert(3)"><rect width="16" height="16" onclick="alert(4)"/></a>'
    b'<circle cx="8" cy="8" r="4" fill="red"/>'
    b'</svg>'
)


@pytest.fixture
async def link(db):
    return await LinkStore(db).insert(Link(title="Docs", url="https://docs.example.com"))


def _service(db, icon_store, handler=None):
    transport = httpx.MockTransport(handler) if handler else None
    return IconService(db, icon_store, transport=transport)


class TestSanitizeSvg:
    def test_removes_dangerous_content(self):
        cleaned = sanitize_svg(SVG).decode()
        assert "script" not in cleaned
        assert "foreignObject" not in cleaned
        assert "onload" not in cleaned and "onclick" not in cleaned
        assert "javascript:" not in cleaned
        assert "circle" in cleaned

    def test_rejects_entities(self):
        payload = b'<?xml version="1.0"?><!DOCTYPE svg [<!ENTITY x "boom">]><svg xmlns="http://www.w3.org/2000/svg">&x;</svg>'
        with pytest.raises(ValidationError):
            sanitize_svg(payload)

    @pytest.mark.parametrize("payload", [b"", b"   ", b"<html></html>", b"<svg"])
    def test_rejects_invalid(self, payload):
        with pytest.raises(ValidationError):
            sanitize_svg(payload)


def test_detect_mime(png_bytes):
    assert detect_mime(png_bytes) == "image/png"
    assert detect_mime(SVG) == "image/svg+xml"
    assert detect_mime(b"plain text") is None


class TestUpload:
    async def test_upload_png(self, db, icon_store, link, png_bytes):
        updated = await _service(db, icon_store).upload(link.id, png_bytes, "image/png")

        assert updated.icon_mime_type == "image/png"
        assert updated.icon_path.startswith(f"icon_{link.id}_")
        assert updated.icon_path.endswith(".png")
        assert os.path.isfile(os.path.join(icon_store.base_dir, updated.icon_path))

    async def test_upload_replaces_previous_icon(self, db, icon_store, link, png_bytes):
        service = _service(db, icon_store)
        first = (await service.upload(link.id, png_bytes, "image/png")).icon_path
        second = (await service.upload(link.id, png_bytes, "image/png")).icon_path

        assert first != second
        assert not os.path.exists(os.path.join(icon_store.base_dir, first))
        assert os.path.exists(os.path.join(icon_store.base_dir, second))

    async def test_upload_svg_is_sanitized(self, db, icon_store, link):
        service = _service(db, icon_store)
        updated = await service.upload(link.id, SVG, "image/svg+xml")

        content, mime_type = await service.read(link.id)
        assert mime_type == "image/svg+xml"
        assert updated.icon_path.endswith(".svg")
        assert b"script" not in content

    async def test_rejects_mismatched_type(self, db, icon_store, link, png_bytes):
        with pytest.raises(ValidationError):
            await _service(db, icon_store).upload(link.id, png_bytes, "image/gif")

    async def test_rejects_disallowed_type(self, db, icon_store, link):
        with pytest.raises(ValidationError):
            await _service(db, icon_store).upload(link.id, b"%PDF-1.4", "application/pdf")

    async def test_rejects_corrupt_raster(self, db, icon_store, link, png_bytes):
        with pytest.raises(ValidationError):
            await _service(db, icon_store).upload(link.id, png_bytes[:40], "image/png")

    async def test_missing_link(self, db, icon_store, png_bytes):
        with pytest.raises(NotFound):
            await _service(db, icon_store).upload(999, png_bytes, "image/png")

    async def test_other_owner_cannot_upload(self, db, icon_store, png_bytes):
        user = User(email="u@dashlink.io", username="u", password_hash="x")
        db.add(user)
        await db.flush()
        private = await LinkStore(db).insert(Link(title="p", url="https://p.example.com", user_id=user.id))

        service = _service(db, icon_store)
        with pytest.raises(NotFound):
            await service.upload(private.id, png_bytes, "image/png")
        assert (await service.upload(private.id, png_bytes, "image/png", user.id)).icon_path


class TestDeleteAndRead:
    async def test_delete_icon(self, db, icon_store, link, png_bytes):
        service = _service(db, icon_store)
        filename = (await service.upload(link.id, png_bytes, "image/png")).icon_path

        updated = await service.delete(link.id)

        assert updated.icon_path is None and updated.icon_mime_type is None
        assert not os.path.exists(os.path.join(icon_store.base_dir, filename))
        with pytest.raises(NotFound):
            await service.read(link.id)

    async def test_delete_without_icon_is_noop(self, db, icon_store, link):
        updated = await _service(db, icon_store).delete(link.id)
        assert updated.icon_path is None

    async def test_store_rejects_unsafe_filenames(self, icon_store):
        with pytest.raises(ValidationError):
            await icon_store.read("../secrets.txt")
        with pytest.raises(ValidationError):
            await icon_store.write("logo.png", b"x")


class TestFetch:
    async def test_fetch_and_store(self, db, icon_store, link, png_bytes):
        def handler(request):
            return httpx.Response(200, content=png_bytes, headers={"content-type": "application/octet-stream"})

        updated = await _service(db, icon_store, handler).fetch_and_store(link.id, "https://93.184.216.34/favicon.png")
        assert updated.icon_mime_type == "image/png"

    async def test_follows_safe_redirect(self, db, icon_store, link, png_bytes):
        def handler(request):
            if request.url.path == "/old.png":
                return httpx.Response(302, headers={"location": "/new.png"})
            return httpx.Response(200, content=png_bytes)

        updated = await _service(db, icon_store, handler).fetch_and_store(link.id, "https://93.184.216.34/old.png")
        assert updated.icon_path

    async def test_redirect_to_internal_address_is_blocked(self, db, icon_store, link):
        def handler(request):
            return httpx.Response(302, headers={"location": "http://169.254.169.254/latest/meta-data/"})

        with pytest.raises(ValidationError):
            await _service(db, icon_store, handler).fetch_and_store(link.id, "https://93.184.216.34/icon.png")

    async def test_too_many_redirects(self, db, icon_store, link):
        def handler(request):
            return httpx.Response(302, headers={"location": "https://93.184.216.34/loop.png"})

        with pytest.raises(UpstreamFetchError):
            await _service(db, icon_store, handler).fetch_and_store(link.id, "https://93.184.216.34/loop.png")

    async def test_http_error_status(self, db, icon_store, link):
        with pytest.raises(UpstreamFetchError):
            await _service(db, icon_store, lambda request: httpx.Response(404)).fetch_and_store(
                link.id, "https://93.184.216.34/missing.png"
            )

    async def test_oversized_download(self, db, icon_store, link, monkeypatch):
        from dashlink.config import settings
        monkeypatch.setattr(settings, "ICON_MAX_SIZE", 10)

        def handler(request):
            return httpx.Response(200, content=b"x" * 100)

        with pytest.raises(UpstreamFetchError):
            await _service(db, icon_store, handler).fetch_and_store(link.id, "https://93.184.216.34/big.png")

    async def test_ssrf_target_rejected_before_request(self, db, icon_store, link):
        def handler(request):
            raise AssertionError("不应发起请求")

        with pytest.raises(ValidationError):
            await _service(db, icon_store, handler).fetch_and_store(link.id, "http://127.0.0.1/icon.png")

    async def test_non_image_download(self, db, icon_store, link):
        def handler(request):
            return httpx.Response(200, content=b"<html>not an icon</html>")

        with pytest.raises(ValidationError):
            await _service(db, icon_store, handler).fetch_and_store(link.id, "https://93.184.216.34/page.html")


class TestImportWithIcons:
    async def test_icon_storage_failure_does_not_abort_import(self, db, icon_store, png_bytes):
        service = _service(db, icon_store, lambda request: httpx.Response(200, content=png_bytes))
        shutil.rmtree(icon_store.base_dir)

        result = await LinkService(db).import_links(
            [
                {"title": "With icon", "url": "https://a.example.com", "iconUrl": "https://93.184.216.34/a.png"},
                {"title": "Plain", "url": "https://b.example.com"},
            ],
            icon_fetcher=service.fetch_and_store,
        )

        assert result.imported == 2
        assert len(result.errors) == 1
        assert "With icon" in result.errors[0]
        links = await LinkStore(db).find_all()
        assert [link.title for link in links] == ["With icon", "Plain"]
        assert links[0].icon_path is None
