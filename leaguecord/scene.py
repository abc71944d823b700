"""Page routes, scenes and the scene switcher of the web page."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

_U64_MAX = 2**64 - 1
_U64_PATTERN = re.compile(r"\+?[0-9]+")


class SceneKind(Enum):
    HOME = "Home"
    ABOUT = "About"
    CONTACT = "Contact"
    GROUP = "Group"
    GROUP_NOT_FOUND = "Group not found"


@dataclass(frozen=True)
class Scene:
    """A page section; GROUP scenes carry the group id."""

    kind: SceneKind
    group_id: int | None = None

    def __post_init__(self) -> None:
        if self.kind is SceneKind.GROUP:
            if self.group_id is None or not 0 <= self.group_id <= _U64_MAX:
                raise ValueError("a group scene needs a valid group id")
        elif self.group_id is not None:
            raise ValueError(f"{self.kind.value} scene takes no group id")

    def __str__(self) -> str:
        return self.kind.value


_ROUTE_NAMES = ("home", "not_found", "group", "group_not_found")


@dataclass(frozen=True)
class Route:
    """A page address: home, not_found, group (with an id) or group_not_found."""

    name: str
    group_id: int | None = None

    def __post_init__(self) -> None:
        if self.name not in _ROUTE_NAMES:
            raise ValueError(f"unknown route: {self.name!r}")
        if (self.name == "group") != (self.group_id is not None):
            raise ValueError("only the group route carries a group id")

    @property
    def path(self) -> str:
        return {
            "home": "/",
            "not_found": "/404",
            "group_not_found": "/group_not_found",
        }.get(self.name) or f"/group/{self.group_id}"


def _parse_u64(text: str) -> int | None:
    if not _U64_PATTERN.fullmatch(text):
        return None
    value = int(text)
    return value if value <= _U64_MAX else None


def parse_route(path: str) -> Route:
    """Match a URL path to a route; anything unknown is not_found."""
    path = path.split("#", 1)[0].split("?", 1)[0]
    if path == "/":
        return Route("home")
    if path == "/group_not_found":
        return Route("group_not_found")
    if path.startswith("/group/"):
        group_id = _parse_u64(path[len("/group/"):])
        if group_id is not None:
            return Route("group", group_id)
    return Route("not_found")


def scenes_for_route(route: Route) -> tuple[list[Scene], int] | None:
    """Scenes offered on a route and the index shown first; None for the 404 page."""
    if route.name == "home":
        return [Scene(SceneKind.HOME), Scene(SceneKind.ABOUT), Scene(SceneKind.CONTACT)], 0
    if route.name == "group":
        middle = Scene(SceneKind.GROUP, route.group_id)
    elif route.name == "group_not_found":
        middle = Scene(SceneKind.GROUP_NOT_FOUND)
    else:
        return None
    return [Scene(SceneKind.HOME), middle, Scene(SceneKind.ABOUT), Scene(SceneKind.CONTACT)], 1


class App:
    """Tracks which of a page's scenes is shown."""

    def __init__(self, scenes: Iterable[Scene], default_scene_index: int = 0) -> None:
        self.scenes = list(scenes)
        if not self.scenes:
            raise ValueError("an app needs at least one scene")
        if 0 <= default_scene_index < len(self.scenes):
            self.current_scene = self.scenes[default_scene_index]
        else:
            self.current_scene = self.scenes[0]

    def switch_scene(self, scene: Scene) -> bool:
        """Show ``scene``; returns True as the page must be redrawn."""
        self.current_scene = scene
        return True

    def scene_buttons(self) -> list[tuple[str, str]]:
        """Label and CSS class of each scene button in the header."""
        return [
            (str(scene), "scene_button current" if scene == self.current_scene else "scene_button")
            for scene in self.scenes
        ]