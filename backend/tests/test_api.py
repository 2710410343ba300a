"""HTTP 接口"""
import json

import pytest

from conftest import API, register_and_login


async def _create_link(client, headers, **fields):
    payload = {"title": "Docs", "url": "https://docs.example.com", **fields}
    response = await client.post(f"{API}/admin/links", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def _enable_user_links(client, admin_headers, limit=10):
    response = await client.put(
        f"{API}/admin/settings",
        json={"user_links_enabled": True, "user_link_limit": limit},
        headers=admin_headers,
    )
    assert response.status_code == 200, response.text


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


class TestAuth:
    async def test_first_user_is_admin(self, client, admin_headers, user_headers):
        admin = (await client.get(f"{API}/users/me", headers=admin_headers)).json()
        user = (await client.get(f"{API}/users/me", headers=user_headers)).json()
        assert admin["is_admin"] is True
        assert user["is_admin"] is False
        assert user["group_ids"] == []

    async def test_requires_token(self, client):
        response = await client.get(f"{API}/links")
        assert response.status_code == 401

    async def test_refresh(self, client):
        await client.post(f"{API}/auth/register", json={
            "email": "r@dashlink.io", "username": "refresher", "password": "secret123",
        })
        tokens = (await client.post(f"{API}/auth/login", json={
            "email": "r@dashlink.io", "password": "secret123",
        })).json()

        response = await client.post(f"{API}/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert response.status_code == 200
        # access token 不能当作刷新令牌使用
        response = await client.post(f"{API}/auth/refresh", json={"refresh_token": tokens["access_token"]})
        assert response.status_code == 401

    async def test_admin_routes_forbidden_for_users(self, client, user_headers):
        for method, path in [
            ("get", "/admin/links"),
            ("get", "/admin/settings"),
            ("get", "/admin/groups"),
        ]:
            response = await getattr(client, method)(f"{API}{path}", headers=user_headers)
            assert response.status_code == 403


class TestAdminLinks:
    async def test_crud_and_reorder(self, client, admin_headers):
        a = await _create_link(client, admin_headers, title="A", url="https://a.example.com")
        b = await _create_link(client, admin_headers, title="B", url="https://b.example.com", position=1)
        c = await _create_link(client, admin_headers, title="C", url="https://c.example.com", position=2)

        response = await client.put(
            f"{API}/admin/links/order", json={"link_ids": [c["id"], a["id"], b["id"]]}, headers=admin_headers
        )
        assert response.status_code == 200
        assert [link["id"] for link in response.json()] == [c["id"], a["id"], b["id"]]

        response = await client.put(f"{API}/admin/links/{a['id']}", json={"title": "A2"}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["title"] == "A2"
        assert response.json()["url"] == "https://a.example.com"

        response = await client.delete(f"{API}/admin/links/{b['id']}", headers=admin_headers)
        assert response.status_code == 200

        links = (await client.get(f"{API}/admin/links", headers=admin_headers)).json()
        assert [(link["title"], link["position"]) for link in links] == [("C", 0), ("A2", 1)]

    async def test_validation_errors(self, client, admin_headers):
        response = await client.post(
            f"{API}/admin/links", json={"title": "x", "url": "javascript:alert(1)"}, headers=admin_headers
        )
        assert response.status_code == 400
        assert "detail" in response.json()

    async def test_missing_link(self, client, admin_headers):
        response = await client.put(f"{API}/admin/links/999", json={"title": "x"}, headers=admin_headers)
        assert response.status_code == 404
        assert response.json() == {"detail": "链接不存在"}

    async def test_icon_upload_serve_and_export(self, client, admin_headers, user_headers, png_bytes):
        link = await _create_link(client, admin_headers)

        response = await client.post(
            f"{API}/admin/links/{link['id']}/icon",
            files={"icon": ("icon.png", png_bytes, "image/png")},
            headers=admin_headers,
        )
        assert response.status_code == 200, response.text
        icon_url = f"http://testserver{API}/links/{link['id']}/icon"
        assert response.json()["icon_url"] == icon_url

        response = await client.get(f"{API}/links/{link['id']}/icon", headers=user_headers)
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert "max-age=86400" in response.headers["cache-control"]
        assert response.content == png_bytes

        exported = (await client.get(f"{API}/admin/links/export", headers=admin_headers)).json()
        assert exported[0]["icon_url"] == icon_url

        response = await client.delete(f"{API}/admin/links/{link['id']}/icon", headers=admin_headers)
        assert response.json()["icon_url"] is None
        response = await client.get(f"{API}/links/{link['id']}/icon", headers=user_headers)
        assert response.status_code == 404

    async def test_icon_type_mismatch(self, client, admin_headers, png_bytes):
        link = await _create_link(client, admin_headers)
        response = await client.post(
            f"{API}/admin/links/{link['id']}/icon",
            files={"icon": ("icon.gif", png_bytes, "image/gif")},
            headers=admin_headers,
        )
        assert response.status_code == 400


class TestImport:
    async def test_import_json_body(self, client, admin_headers):
        await _create_link(client, admin_headers, title="Existing", url="https://existing.example.com")
        records = [
            {"title": "Existing", "url": "https://dup.example.com"},
            {"title": "New", "url": "https://new.example.com"},
            {"title": "Bad", "url": "ftp://bad.example.com"},
        ]
        response = await client.post(f"{API}/admin/links/import", json=records, headers=admin_headers)

        assert response.status_code == 200, response.text
        body = response.json()
        assert body["imported"] == 1
        assert body["skipped"] == 1
        assert len(body["errors"]) == 1

    async def test_import_multipart_file(self, client, admin_headers):
        content = json.dumps([{"title": "From file", "url": "https://file.example.com"}]).encode()
        response = await client.post(
            f"{API}/admin/links/import",
            files={"file": ("links.json", content, "application/json")},
            headers=admin_headers,
        )
        assert response.status_code == 200, response.text
        assert response.json()["imported"] == 1

    @pytest.mark.parametrize("payload", [
        b"not json",
        b'{"title": "x"}',
        json.dumps([{"title": f"t{n}", "url": f"https://{n}.example.com"} for n in range(101)]).encode(),
    ])
    async def test_rejects_bad_payloads(self, client, admin_headers, payload):
        response = await client.post(
            f"{API}/admin/links/import",
            content=payload,
            headers={**admin_headers, "content-type": "application/json"},
        )
        assert response.status_code == 400

    async def test_rejects_deep_nesting(self, client, admin_headers):
        nested = "a"
        for _ in range(10):
            nested = [nested]
        records = [{"title": "deep", "url": "https://deep.example.com", "groups": nested}]
        response = await client.post(f"{API}/admin/links/import", json=records, headers=admin_headers)
        assert response.status_code == 400

    async def test_rejects_oversized_file(self, client, admin_headers):
        content = b"[" + b" " * (1024 * 1024) + b"]"
        response = await client.post(
            f"{API}/admin/links/import",
            files={"file": ("links.json", content, "application/json")},
            headers=admin_headers,
        )
        assert response.status_code == 400

    async def test_rejects_oversized_json_body(self, client, admin_headers):
        content = b"[" + b" " * (1024 * 1024) + b"]"
        response = await client.post(
            f"{API}/admin/links/import",
            content=content,
            headers={**admin_headers, "content-type": "application/json"},
        )
        assert response.status_code == 400
        assert "过大" in response.json()["detail"]

    async def test_rate_limited(self, client, admin_headers):
        for _ in range(5):
            response = await client.post(f"{API}/admin/links/import", json=[], headers=admin_headers)
            assert response.status_code == 200
        response = await client.post(f"{API}/admin/links/import", json=[], headers=admin_headers)
        assert response.status_code == 429


class TestGroupsAndVisibility:
    async def test_group_restricted_links(self, client, admin_headers, user_headers):
        response = await client.post(
            f"{API}/admin/groups", json={"id": "dev", "display_name": "Developers"}, headers=admin_headers
        )
        assert response.status_code == 201

        await _create_link(client, admin_headers, title="Public", url="https://public.example.com")
        await _create_link(client, admin_headers, title="Dev", url="https://dev.example.com", groups=["dev"], position=1)

        titles = [link["title"] for link in (await client.get(f"{API}/links", headers=user_headers)).json()]
        assert titles == ["Public"]

        me = (await client.get(f"{API}/users/me", headers=user_headers)).json()
        response = await client.put(
            f"{API}/admin/users/{me['id']}/groups", json={"group_ids": ["dev"]}, headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["group_ids"] == ["dev"]

        titles = [link["title"] for link in (await client.get(f"{API}/links", headers=user_headers)).json()]
        assert titles == ["Public", "Dev"]

    async def test_unknown_group_rejected(self, client, admin_headers, user_headers):
        me = (await client.get(f"{API}/users/me", headers=user_headers)).json()
        response = await client.put(
            f"{API}/admin/users/{me['id']}/groups", json={"group_ids": ["ghost"]}, headers=admin_headers
        )
        assert response.status_code == 400


class TestSettings:
    async def test_update_settings(self, client, admin_headers):
        response = await client.put(
            f"{API}/admin/settings",
            json={"hover_effect": "slide", "widget_title": "Team"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["hover_effect"] == "slide"
        assert body["widget_title"] == "Team"
        assert len(body["available_effects"]) == 3

    async def test_invalid_effect_rolls_back(self, client, admin_headers):
        response = await client.put(
            f"{API}/admin/settings",
            json={"widget_title": "Changed", "hover_effect": "explode"},
            headers=admin_headers,
        )
        assert response.status_code == 400

        body = (await client.get(f"{API}/admin/settings", headers=admin_headers)).json()
        assert body["widget_title"] == "DashLink"


class TestUserLinks:
    async def test_disabled_by_default(self, client, user_headers):
        response = await client.get(f"{API}/user/links", headers=user_headers)
        assert response.status_code == 403

    async def test_create_list_and_quota(self, client, admin_headers, user_headers):
        await _enable_user_links(client, admin_headers, limit=2)

        for n in range(2):
            response = await client.post(
                f"{API}/user/links", json={"title": f"mine {n}", "url": f"https://{n}.example.com"}, headers=user_headers
            )
            assert response.status_code == 201

        response = await client.post(
            f"{API}/user/links", json={"title": "one more", "url": "https://more.example.com"}, headers=user_headers
        )
        assert response.status_code == 400

        body = (await client.get(f"{API}/user/links", headers=user_headers)).json()
        assert body["count"] == 2
        assert body["limit"] == 2
        assert [link["position"] for link in body["links"]] == [0, 1]

    async def test_cannot_touch_other_users_links(self, client, admin_headers, user_headers):
        await _enable_user_links(client, admin_headers)
        link = (await client.post(
            f"{API}/user/links", json={"title": "private", "url": "https://p.example.com"}, headers=user_headers
        )).json()

        bob_headers = await register_and_login(client, "bob")
        response = await client.put(f"{API}/user/links/{link['id']}", json={"title": "x"}, headers=bob_headers)
        assert response.status_code == 404
        response = await client.delete(f"{API}/user/links/{link['id']}", headers=bob_headers)
        assert response.status_code == 404

        # 管理员接口也只能操作全局链接
        response = await client.put(f"{API}/admin/links/{link['id']}", json={"title": "x"}, headers=admin_headers)
        assert response.status_code == 404

    async def test_user_icon_and_import(self, client, admin_headers, user_headers, png_bytes):
        await _enable_user_links(client, admin_headers, limit=3)
        link = (await client.post(
            f"{API}/user/links", json={"title": "mine", "url": "https://mine.example.com"}, headers=user_headers
        )).json()

        response = await client.post(
            f"{API}/user/links/{link['id']}/icon",
            files={"icon": ("icon.png", png_bytes, "image/png")},
            headers=user_headers,
        )
        assert response.status_code == 200, response.text
        assert response.json()["icon_url"].endswith(f"/user/links/{link['id']}/icon")

        response = await client.get(f"{API}/user/links/{link['id']}/icon", headers=user_headers)
        assert response.status_code == 200
        assert response.content == png_bytes

        records = [{"title": f"imp {n}", "url": f"https://imp{n}.example.com"} for n in range(4)]
        body = (await client.post(f"{API}/user/links/import", json=records, headers=user_headers)).json()
        assert body["imported"] == 2
        assert body["skipped"] == 2

        exported = (await client.get(f"{API}/user/links/export", headers=user_headers)).json()
        assert len(exported) == 3

    async def test_user_import_limit(self, client, admin_headers, user_headers):
        await _enable_user_links(client, admin_headers)
        records = [{"title": f"t{n}", "url": f"https://{n}.example.com"} for n in range(51)]
        response = await client.post(f"{API}/user/links/import", json=records, headers=user_headers)
        assert response.status_code == 400


class TestWidget:
    async def test_widget_combines_global_and_user_links(self, client, admin_headers, user_headers):
        await _enable_user_links(client, admin_headers)
        await _create_link(client, admin_headers, title="Global", url="https://global.example.com")
        await client.post(
            f"{API}/user/links", json={"title": "Mine", "url": "https://mine.example.com"}, headers=user_headers
        )

        body = (await client.get(f"{API}/widget", headers=user_headers)).json()
        assert body["title"] == "DashLink"
        assert body["hover_effect"] == "blur"
        assert [link["title"] for link in body["links"]] == ["Global", "Mine"]

    async def test_widget_caps_links(self, client, admin_headers, user_headers):
        for n in range(12):
            await _create_link(client, admin_headers, title=f"L{n}", url=f"https://l{n}.example.com", position=n)

        body = (await client.get(f"{API}/widget", headers=user_headers)).json()
        assert len(body["links"]) == 10
        assert body["links"][0]["title"] == "L0"
