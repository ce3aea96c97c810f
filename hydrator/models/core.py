"""Core models for request hydration."""

import io
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

from hydrator.core.errors import BodyConsumedError


class ContentKind(StrEnum):
    """Body content type classification for request parsing."""

    JSON = "application/json"
    URLENCODED = "application/x-www-form-urlencoded"
    MULTIPART = "multipart/form-data"
    UNKNOWN = "unknown"
    ABSENT = "absent"


class UploadFile:
    """File part from a multipart/form-data request."""

    __slots__ = ("name", "filename", "content_type", "content")

    def __init__(
        self,
        name: str,
        filename: str,
        content: bytes = b"",
        content_type: str = "application/octet-stream",
    ) -> None:
        self.name = name
        self.filename = filename
        self.content = content
        self.content_type = content_type

    def __bool__(self) -> bool:
        return bool(self.content)

    def __len__(self) -> int:
        return len(self.content)

    def __repr__(self) -> str:
        return f"UploadFile(name={self.name!r}, filename={self.filename!r}, size={self.size})"

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def file(self) -> io.BytesIO:
        """Fresh binary file object over the content."""
        return io.BytesIO(self.content)


BodyValue = str | int | float | bool | None | list[Any] | dict[str, Any] | UploadFile


class ParsedBody(BaseModel):
    """Decoded request body plus the content type used to decode it."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    content_type: str | None = None
    data: dict[str, BodyValue] | None = None

    def get(self, name: str) -> BodyValue:
        if self.data is None:
            return None
        return self.data.get(name)


class Headers:
    """Case-insensitive header map."""

    __slots__ = ("_data",)

    def __init__(self, headers: Mapping[str, str] | None = None) -> None:
        self._data: dict[str, tuple[str, str]] = {}
        for key, value in (headers or {}).items():
            self.set(key, value)

    def get(self, name: str, default: str | None = None) -> str | None:
        item = self._data.get(name.lower())
        return item[1] if item else default

    def set(self, name: str, value: str) -> None:
        self._data[name.lower()] = (name, str(value))

    def __getitem__(self, name: str) -> str:
        return self._data[name.lower()][1]

    def __setitem__(self, name: str, value: str) -> None:
        self.set(name, value)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._data

    def __iter__(self) -> Iterator[str]:
        return (original for original, _ in self._data.values())

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Headers({dict(self._data.values())})"


class HeaderMap(Protocol):
    """What hydration needs from a request's headers."""

    def get(self, name: str, /) -> str | None: ...

    def set(self, name: str, value: str, /) -> None: ...


@runtime_checkable
class BodyStream(Protocol):
    """Single-read request body."""

    async def read(self, n: int = -1) -> bytes: ...


class BytesBody:
    """In-memory body stream that can be consumed only once."""

    __slots__ = ("_buffer", "_consumed")

    def __init__(self, data: bytes = b"") -> None:
        self._buffer = io.BytesIO(data)
        self._consumed = False

    @property
    def consumed(self) -> bool:
        return self._consumed

    async def read(self, n: int = -1) -> bytes:
        if self._consumed:
            raise BodyConsumedError("Request body was already read")
        chunk = self._buffer.read(n)
        if n < 0 or not chunk:
            self._consumed = True
        return chunk


@dataclass
class RawRequest:
    """Request as handed over by the listener and router."""

    method: str
    url: str
    headers: HeaderMap = field(default_factory=Headers)
    body: BodyStream = field(default_factory=BytesBody)
    path_params: dict[str, str] = field(default_factory=dict)
