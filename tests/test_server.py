import itertools
from http import HTTPStatus

import pytest
from starlette.testclient import TestClient

from leaguecord.data import DiscordApi, DiscordError, IdCache, InviteTracker, LeagueCordData
from leaguecord.response import ANY_CONTENT_TYPE
from leaguecord.server import build_app, content_type_for, static_file_response
from leaguecord.shared import GroupData

INDEX = b"<html>index page</html>"


class FakeApi(DiscordApi):
    def __init__(self, fail=False):
        self.fail = fail
        self._ids = itertools.count(1000)
        self.invites = {}

    async def create_channel(self, guild_id, name, kind, category=None, overwrites=None):
        if self.fail:
            raise DiscordError("boom")
        return next(self._ids)

    async def delete_channel(self, channel_id):
        return None

    async def create_role(self, guild_id, name):
        if self.fail:
            raise DiscordError("boom")
        return next(self._ids)

    async def delete_role(self, guild_id, role_id):
        return None

    async def create_invite(self, channel_id, *, max_age, max_uses, unique, reason):
        code = f"code{channel_id}"
        self.invites[code] = 0
        return code

    async def send_message(self, channel_id, content=None, embed=None):
        return next(self._ids)

    async def kick_member(self, guild_id, user_id, reason=None):
        return None

    async def get_guild_invites(self, guild_id):
        return list(self.invites.items())


@pytest.fixture
def static_dir(tmp_path):
    (tmp_path / "index.html").write_bytes(INDEX)
    (tmp_path / "favicon.ico").write_bytes(b"ICON")
    (tmp_path / "css").mkdir()
    (tmp_path / "css" / "style.css").write_bytes(b"body{}")
    (tmp_path / "css" / "evil.css").write_bytes(b"evil{}")
    (tmp_path / "resources").mkdir()
    (tmp_path / "resources" / "github.webp").write_bytes(b"WEBP")
    return tmp_path


def make_data():
    ids = IdCache(guild=1, admin_role=2, graveyard_category=3, bot_log_channel=4)
    return LeagueCordData(ids=ids, invites=InviteTracker())


@pytest.fixture
def setup(static_dir):
    api = FakeApi()
    data = make_data()
    with TestClient(build_app(api, data, static_dir)) as client:
        yield client, api, data


def test_content_type_is_case_insensitive():
    assert content_type_for("style.css") == content_type_for("STYLE.CSS")
    assert content_type_for("style.css").startswith("text/css")


def test_content_type_unknown_or_missing_extension():
    assert content_type_for("README") is None
    assert content_type_for("archive.unknownext") is None
    assert content_type_for("trailing.") is None


def test_static_file_response_reads_file(static_dir):
    response = static_file_response(static_dir, "/index.html", "text/html")
    assert response.status == HTTPStatus.OK
    assert response.body_bytes() == INDEX
    assert response.content_type == "text/html"


def test_static_file_response_missing_file(static_dir):
    response = static_file_response(static_dir, "missing.html", "text/html")
    assert response.status == HTTPStatus.NOT_FOUND
    assert response.body_bytes() == b""


def test_root_serves_index(setup):
    client, _, _ = setup
    for path in ("/", "/404", "/group_not_found", "/index.html"):
        resp = client.get(path)
        assert resp.status_code == 200
        assert resp.content == INDEX


def test_favicon_content_type(setup):
    client, _, _ = setup
    resp = client.get("/favicon.ico")
    assert resp.content == b"ICON"
    assert resp.headers["content-type"] == content_type_for("favicon.ico")


def test_unknown_path_redirects_to_404(setup):
    client, _, _ = setup
    resp = client.get("/nowhere", follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/404"


def test_css_allowlist(setup):
    client, _, _ = setup
    allowed = client.get("/css/style.css")
    assert allowed.status_code == 200
    assert allowed.content == b"body{}"
    assert allowed.headers["content-type"] == content_type_for("style.css")
    assert client.get("/css/evil.css").status_code == 404


def test_resource_allowlist(setup):
    client, _, _ = setup
    assert client.get("/resources/github.webp").content == b"WEBP"
    assert client.get("/resources/other.webp").status_code == 404


def test_missing_static_file_is_404(setup):
    client, _, _ = setup
    assert client.get("/front.js").status_code == 404


def test_unknown_group_redirects(setup):
    client, _, _ = setup
    resp = client.get("/group/123", follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/group_not_found"


def test_invalid_group_id_redirects_to_404(setup):
    client, _, _ = setup
    resp = client.get("/group/abc", follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/404"


def test_group_data_unknown_is_404(setup):
    client, _, _ = setup
    assert client.get("/group_data/42").status_code == 404


def test_create_group_then_fetch(setup):
    client, _, data = setup
    resp = client.get("/create_group")
    assert resp.status_code == 200
    group_id = int(resp.text)
    assert [g.id for g in data.groups] == [group_id]
    assert data.invites.get(data.groups[0].invite_code) == 0

    page = client.get(f"/group/{group_id}")
    assert page.status_code == 200
    assert page.content == INDEX

    info = client.get(f"/group_data/{group_id}")
    assert info.status_code == 200
    assert info.headers["cache-control"] == "max-age=30"
    assert GroupData.from_json(info.text) == data.groups[0].to_data()


def test_create_group_failure(static_dir):
    data = make_data()
    with TestClient(build_app(FakeApi(fail=True), data, static_dir)) as client:
        resp = client.get("/create_group")
    assert resp.status_code == 500
    assert resp.text == "Failed to create a group"
    assert data.groups == []


def test_default_content_type_on_group_creation(setup):
    client, _, _ = setup
    resp = client.get("/create_group")
    assert resp.headers["content-type"] == ANY_CONTENT_TYPE