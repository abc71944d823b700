"""Parsing of chat commands such as ``!help``."""

from __future__ import annotations

from enum import Enum

DEFAULT_PREFIX = "!"


class Case(Enum):
    SENSITIVE = "sensitive"
    INSENSITIVE = "insensitive"


class Prefix(Enum):
    YES = "yes"
    NO = "no"


def parse(
    content: str,
    base_command: str,
    case: Case = Case.INSENSITIVE,
    prefix: Prefix = Prefix.YES,
) -> list[str] | None:
    """Return the arguments if ``content`` invokes ``base_command``, else None."""
    prefix_text = DEFAULT_PREFIX if prefix is Prefix.YES else ""
    words = content.split()
    if not words:
        return None

    first, *args = words
    if not first.startswith(prefix_text):
        return None

    if case is Case.SENSITIVE:
        if first != f"{prefix_text}{base_command}":
            return None
    elif first.lower() != f"{prefix_text}{base_command.lower()}":
        return None

    return args