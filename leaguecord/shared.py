"""Group data exchanged between the server and the web page."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime

_U32_MAX = 2**32 - 1
_U64_MAX = 2**64 - 1


def _unsigned(payload: dict, key: str, limit: int) -> int:
    if key not in payload:
        raise ValueError(f"missing field `{key}`")
    value = payload[key]
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"field `{key}` must be an integer")
    if not 0 <= value <= limit:
        raise ValueError(f"field `{key}` is out of range")
    return value


@dataclass(frozen=True)
class GroupData:
    """Public description of a voice group."""

    id: int
    creation_time_s_since_epoch: int
    user_count: int
    invite_code: str

    @classmethod
    def create(
        cls, id: int, creation_time: datetime, user_count: int, invite_code: str
    ) -> GroupData:
        """Build from a creation time; times before the epoch count as 0."""
        seconds = creation_time.timestamp()
        return cls(
            id=id,
            creation_time_s_since_epoch=int(seconds) if seconds > 0 else 0,
            user_count=user_count,
            invite_code=invite_code,
        )

    def to_json(self) -> str:
        return json.dumps(
            {
                "id": self.id,
                "creation_time_s_since_epoch": self.creation_time_s_since_epoch,
                "user_count": self.user_count,
                "invite_code": self.invite_code,
            },
            separators=(",", ":"),
            ensure_ascii=False,
        )

    @classmethod
    def from_json(cls, text: str) -> GroupData:
        """Parse JSON text; raises ValueError when it is malformed."""
        payload = json.loads(text)
        if not isinstance(payload, dict):
            raise ValueError("expected a JSON object")
        invite_code = payload.get("invite_code")
        if "invite_code" not in payload:
            raise ValueError("missing field `invite_code`")
        if not isinstance(invite_code, str):
            raise ValueError("field `invite_code` must be a string")
        return cls(
            id=_unsigned(payload, "id", _U64_MAX),
            creation_time_s_since_epoch=_unsigned(
                payload, "creation_time_s_since_epoch", _U64_MAX
            ),
            user_count=_unsigned(payload, "user_count", _U32_MAX),
            invite_code=invite_code,
        )