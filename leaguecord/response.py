"""HTTP response value used by the web server."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import BinaryIO, Union

ANY_CONTENT_TYPE = "*/*"

Content = Union[bytes, str, BinaryIO]


@dataclass
class Response:
    """Status, extra headers, body (bytes or a binary stream) and content type."""

    status: HTTPStatus = HTTPStatus.OK
    headers: dict[str, str] = field(default_factory=dict)
    content: Content = b""
    content_type: str = ANY_CONTENT_TYPE

    def __post_init__(self) -> None:
        self.status = HTTPStatus(self.status)
        if isinstance(self.content, str):
            self.content = self.content.encode("utf-8")
        elif isinstance(self.content, (bytearray, memoryview)):
            self.content = bytes(self.content)
        elif not isinstance(self.content, bytes) and not hasattr(self.content, "read"):
            raise TypeError(f"unsupported response content: {self.content!r}")

    @classmethod
    def redirect(cls, to: str) -> Response:
        """A 303 See Other response pointing at ``to``."""
        return cls(status=HTTPStatus.SEE_OTHER, headers={"Location": to})

    def with_header(self, name: str, value: str) -> Response:
        """Return a copy with ``name`` set to ``value``."""
        return dataclasses.replace(self, headers={**self.headers, name: value})

    def body_bytes(self) -> bytes:
        """The whole body; a stream is read once and kept."""
        if not isinstance(self.content, bytes):
            self.content = bytes(self.content.read())
        return self.content