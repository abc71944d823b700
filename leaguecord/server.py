"""Web server: the static page, group creation and group data."""

from __future__ import annotations

import ipaddress
import logging
import re
from collections.abc import Iterator
from http import HTTPStatus
from pathlib import Path
from typing import Union

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import Response as HttpResponse
from starlette.responses import StreamingResponse
from starlette.routing import Route

from .data import DiscordApi, DiscordError, Group, GroupCreationSpamTracker, LeagueCordData
from .response import ANY_CONTENT_TYPE, Response

logger = logging.getLogger(__name__)

HTML = "text/html; charset=utf-8"
JAVASCRIPT = "text/javascript"
WASM = "application/wasm"
ICON = "image/x-icon"

ALLOWED_RESOURCES = frozenset({"github.webp"})
ALLOWED_CSS = frozenset(
    {"contact.css", "home.css", "notification.css", "style.css", "theme.css"}
)

_EXTENSION_TYPES = {
    "html": HTML,
    "htm": HTML,
    "css": "text/css; charset=utf-8",
    "js": JAVASCRIPT,
    "mjs": JAVASCRIPT,
    "wasm": WASM,
    "ico": ICON,
    "webp": "image/webp",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "json": "application/json",
    "txt": "text/plain; charset=utf-8",
    "xml": "text/xml; charset=utf-8",
    "pdf": "application/pdf",
    "woff": "font/woff",
    "woff2": "font/woff2",
    "ttf": "font/ttf",
    "otf": "font/otf",
}

_U64_MAX = 2**64 - 1
_U64_PATTERN = re.compile(r"\+?[0-9]+")
_STREAM_CHUNK = 64 * 1024

StaticDir = Union[str, Path]


def content_type_for(file_name: str) -> str | None:
    """The content type for a file's extension, or None when it is unknown."""
    if "." not in file_name:
        return None
    extension = file_name.rsplit(".", 1)[1]
    return _EXTENSION_TYPES.get(extension.lower())


def static_file_response(static_dir: StaticDir, path: str, content_type: str) -> Response:
    """Serve ``path`` from ``static_dir``; a 404 response when it cannot be read."""
    file_path = Path(static_dir) / path.lstrip("/")
    try:
        content = file_path.read_bytes()
    except OSError:
        return Response(status=HTTPStatus.NOT_FOUND)
    logger.debug("Static file query: %s (%d bytes)", path, len(content))
    return Response(status=HTTPStatus.OK, content=content, content_type=content_type)


def _serve_static(static_dir: StaticDir, path: str, file: str) -> Response:
    content_type = content_type_for(file)
    if content_type is None:
        logger.error("Could not infer content type of file: %s, requested in %s", file, path)
        content_type = ANY_CONTENT_TYPE
    logger.info("Serving %s/%s w/ type: %s", path, file, content_type)
    return static_file_response(static_dir, f"{path}/{file}", content_type)


def _parse_u64(text: str) -> int | None:
    if not _U64_PATTERN.fullmatch(text):
        return None
    value = int(text)
    return value if value <= _U64_MAX else None


def _client_ip(request: Request) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    if request.client is None:
        return None
    try:
        return ipaddress.ip_address(request.client.host)
    except ValueError:
        return None


def _stream(reader) -> Iterator[bytes]:
    while chunk := reader.read(_STREAM_CHUNK):
        yield bytes(chunk)


def _to_http(response: Response) -> HttpResponse:
    headers = {"Content-Type": response.content_type, **response.headers}
    if isinstance(response.content, bytes):
        return HttpResponse(response.content, status_code=int(response.status), headers=headers)
    return StreamingResponse(
        _stream(response.content), status_code=int(response.status), headers=headers
    )


def build_app(
    api: DiscordApi,
    data: LeagueCordData,
    static_dir: StaticDir = "./static",
    spam_tracker: GroupCreationSpamTracker | None = None,
) -> Starlette:
    """Assemble the web application around the shared bot state."""
    tracker = spam_tracker if spam_tracker is not None else GroupCreationSpamTracker()

    def root_response() -> Response:
        return static_file_response(static_dir, "index.html", HTML)

    def static_route(path: str, content_type: str):
        async def endpoint(request: Request) -> HttpResponse:
            return _to_http(static_file_response(static_dir, path, content_type))

        return endpoint

    def allowlisted_route(directory: str, allowed: frozenset[str]):
        async def endpoint(request: Request) -> HttpResponse:
            file = request.path_params["file"]
            if file not in allowed:
                return _to_http(Response(status=HTTPStatus.NOT_FOUND))
            return _to_http(_serve_static(static_dir, directory, file))

        return endpoint

    async def root(request: Request) -> HttpResponse:
        return _to_http(root_response())

    async def create_group(request: Request) -> HttpResponse:
        tracker.update()
        try:
            group = await Group.create_new(api, data.ids)
        except DiscordError as e:
            logger.error("Failed to create group for %s due to: %s", request.client, e)
            return _to_http(
                Response(
                    status=HTTPStatus.INTERNAL_SERVER_ERROR,
                    content="Failed to create a group",
                )
            )

        ip = _client_ip(request)
        if ip is not None:
            tracker.register(ip, group.id)
        else:
            logger.warning("Could not register group %s: unknown client address", group.id)

        async with data.lock:
            await data.invites.update(api, data.ids)
            data.groups.append(group)

        return _to_http(Response(content=str(group.id)))

    async def group(request: Request) -> HttpResponse:
        group_id = _parse_u64(request.path_params["id"])
        if group_id is None:
            return _to_http(Response.redirect("/404"))
        if not any(g.id == group_id for g in data.groups):
            return _to_http(Response.redirect("/group_not_found"))
        return _to_http(root_response())

    async def group_data(request: Request) -> HttpResponse:
        group_id = _parse_u64(request.path_params["id"])
        if group_id is None:
            return _to_http(Response.redirect("/404"))
        found = next((g for g in data.groups if g.id == group_id), None)
        if found is None:
            return _to_http(Response(status=HTTPStatus.NOT_FOUND))
        logger.info("Requested group data for group: %s", found.id)
        response = Response(content=found.to_data().to_json()).with_header(
            "Cache-Control", "max-age=30"
        )
        return _to_http(response)

    async def not_found(request: Request, exc: Exception) -> HttpResponse:
        return _to_http(Response.redirect("/404"))

    routes = [
        Route("/", root, name="root"),
        Route("/404", root, name="notfound"),
        Route("/create_group", create_group, name="create_group"),
        Route("/group/{id}", group, name="group"),
        Route("/group_data/{id}", group_data, name="group_data"),
        Route("/group_not_found", root, name="group_not_found"),
        Route("/front.js", static_route("/front.js", JAVASCRIPT), name="front_js"),
        Route("/front_bg.wasm", static_route("/front_bg.wasm", WASM), name="front_bg_wasm"),
        Route("/index.html", static_route("/index.html", HTML), name="index_html"),
        Route(
            "/resources/{file}",
            allowlisted_route("/resources", ALLOWED_RESOURCES),
            name="static_resource",
        ),
        Route("/css/{file}", allowlisted_route("/css", ALLOWED_CSS), name="static_css"),
        Route("/favicon.ico", static_route("favicon.ico", ICON), name="favicon_ico"),
    ]

    app = Starlette(routes=routes, exception_handlers={404: not_found, 405: not_found})
    app.state.api = api
    app.state.data = data
    app.state.spam_tracker = tracker
    return app