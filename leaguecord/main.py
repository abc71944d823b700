"""Logging setup and the start-up summary of the server configuration."""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional, Tuple, Union

UNDEFINED = "[ERROR] Undefined"
OFF = logging.CRITICAL + 10

_LIMIT_NAMES = ("bytes", "data-form", "file", "json", "msgpack", "string")

_DEP_FILTERS = {
    "asyncio": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "h11": logging.ERROR,
    "h2": logging.ERROR,
    "urllib3": logging.WARNING,
    "websockets": logging.WARNING,
    "aiohttp": logging.WARNING,
}

_BOT_LOGGERS = ("leaguecord.handlers", "leaguecord.commands", "leaguecord.command")

_COLORS = {
    logging.DEBUG: "\x1b[36m",
    logging.INFO: "\x1b[32m",
    logging.WARNING: "\x1b[33m",
    logging.ERROR: "\x1b[31m",
    logging.CRITICAL: "\x1b[35m",
}
_RESET = "\x1b[0m"
_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _default_limits() -> dict[str, int]:
    return {
        "bytes": 8 * 1024,
        "data-form": 2 * 1024 * 1024,
        "file": 1024 * 1024,
        "json": 1024 * 1024,
        "msgpack": 1024 * 1024,
        "string": 8 * 1024,
    }


@dataclass
class ServerConfig:
    """Settings of the running web server."""

    profile: str = "debug"
    address: str = "127.0.0.1"
    port: int = 8000
    workers: int = field(default_factory=lambda: os.cpu_count() or 1)
    ident: Optional[str] = "LeagueCord"
    ip_header: Optional[str] = "X-Real-IP"
    limits: Mapping[str, int] = field(default_factory=_default_limits)
    keep_alive: int = 5
    shutdown: str = "ctrlc"


@dataclass(frozen=True)
class RouteInfo:
    """A mounted route: HTTP method, path and handler name."""

    method: str
    uri: str
    name: Optional[str] = None


CatcherInfo = Tuple[Optional[int], str, Optional[str]]


class _PrefixFilter(logging.Filter):
    """Drops records below the level set for the most specific matching logger name."""

    def __init__(self, rules: Mapping[str, int]) -> None:
        super().__init__()
        self._rules = sorted(rules.items(), key=lambda item: len(item[0]), reverse=True)

    def filter(self, record: logging.LogRecord) -> bool:
        for prefix, level in self._rules:
            if record.name == prefix or record.name.startswith(prefix + "."):
                return record.levelno >= level
        return True


class _ColorFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        color = _COLORS.get(record.levelno)
        return f"{color}{text}{_RESET}" if color else text


def _file_handler(path: Path, rules: Mapping[str, int]) -> logging.Handler:
    handler = TimedRotatingFileHandler(path, when="h", interval=1, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler.addFilter(_PrefixFilter(rules))
    return handler


def setup_loggers(log_dir: Union[str, Path] = "./log") -> list[logging.Handler]:
    """Log to the console, to server.log and to bot.log; returns the handlers installed."""
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.DEBUG)
    console.setFormatter(_ColorFormatter(_FORMAT))
    console.addFilter(
        _PrefixFilter({**_DEP_FILTERS, "uvicorn": logging.WARNING, "starlette": logging.WARNING})
    )

    server_rules = {
        **_DEP_FILTERS,
        "uvicorn": logging.WARNING,
        "starlette": logging.WARNING,
        "leaguecord.data": OFF,
        **{name: OFF for name in _BOT_LOGGERS},
    }
    bot_rules = {
        **_DEP_FILTERS,
        "uvicorn": OFF,
        "starlette": OFF,
        "leaguecord.server": OFF,
    }

    handlers = [
        console,
        _file_handler(log_dir / "server.log", server_rules),
        _file_handler(log_dir / "bot.log", bot_rules),
    ]
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in handlers:
        root.addHandler(handler)
    return handlers


def _format_bytes(count: int) -> str:
    for suffix, size in (("GiB", 1 << 30), ("MiB", 1 << 20), ("KiB", 1 << 10)):
        if count >= size and count % size == 0:
            return f"{count // size}{suffix}"
    return f"{count}B"


def _display_list(items: Iterable[str]) -> str:
    body = "".join(f"    {item}\n" for item in items)
    return f"[\n{body}]"


def format_config(
    config: ServerConfig,
    routes: Iterable[RouteInfo],
    catchers: Iterable[CatcherInfo],
) -> str:
    """The configuration summary logged at start-up.

    ``catchers`` holds (status code, base path, name) triples.
    """
    limits = [f"{name}: {_format_bytes(config.limits.get(name, 0))}" for name in _LIMIT_NAMES]
    route_lines = [
        f"{route.method:<5} {route.uri:<20} {route.name or UNDEFINED}" for route in routes
    ]
    catcher_lines = [
        f"{str(code) if code is not None else UNDEFINED:<5} {base:<20} {name or UNDEFINED}"
        for code, base, name in catchers
    ]
    return (
        "Config:\n"
        f"Using profile: {config.profile}\n"
        f"Address: {config.address}:{config.port}\n"
        f"Workers: {config.workers}\n"
        f"Indent: {config.ident or UNDEFINED}\n"
        f"Headers: {config.ip_header or UNDEFINED}\n"
        f"Limits: {_display_list(limits)}\n"
        f"Connection lifetime: {config.keep_alive}s\n"
        f"Shutdown mode: {config.shutdown}\n"
        f"Routes: {_display_list(route_lines)}\n"
        f"Catchers: {_display_list(catcher_lines)}"
    )