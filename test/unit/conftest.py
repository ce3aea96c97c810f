"""Test fixtures for request-hydrator unit tests."""

from dataclasses import dataclass, field

import pytest
import structlog

from hydrator.models.core import BytesBody, Headers, RawRequest

BOUNDARY = "----hydratorBoundary7MA4YWxk"


# -----------------------------------------------------------------------------
# Mock classes for Robyn Request
# -----------------------------------------------------------------------------


@dataclass
class MockHeaders:
    """Mock Headers object for Robyn Request."""

    _data: dict = field(default_factory=dict)

    def __post_init__(self) -> None:
        self._data = {key.lower(): value for key, value in self._data.items()}

    def get(self, key: str, default: str | None = None) -> str | None:
        return self._data.get(key.lower(), default)

    def set(self, key: str, value: str) -> None:
        self._data[key.lower()] = value


@dataclass
class MockUrl:
    """Mock Url object for Robyn Request."""

    path: str = "/"
    scheme: str = "http"
    host: str = "localhost"


@dataclass
class MockQueryParams:
    """Mock QueryParams object for Robyn Request."""

    _data: dict[str, list[str]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, list[str]]:
        return dict(self._data)

    def __bool__(self) -> bool:
        return bool(self._data)


@dataclass
class MockRequest:
    """Mock Request object for Robyn."""

    body: str | bytes = ""
    headers: MockHeaders = field(default_factory=MockHeaders)
    method: str = "GET"
    url: MockUrl = field(default_factory=MockUrl)
    query_params: MockQueryParams = field(default_factory=MockQueryParams)
    path_params: dict = field(default_factory=dict)


# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------


class RecordingLogger:
    """Logger stand-in recording each event with the structlog context bound at call time."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict]] = []

    def _record(self, event: str, **kwargs) -> None:
        self.calls.append((event, structlog.contextvars.get_contextvars()))

    debug = info = error = _record


# -----------------------------------------------------------------------------
# Body builders
# -----------------------------------------------------------------------------


def build_multipart(
    fields: dict[str, str] | None = None,
    files: dict[str, tuple[str, bytes, str]] | None = None,
    boundary: str = BOUNDARY,
    closed: bool = True,
) -> bytes:
    """Encode text fields and (filename, content, content_type) files as multipart/form-data."""
    parts = []
    for name, value in (fields or {}).items():
        parts.append(
            f'--{boundary}\r\nContent-Disposition: form-data; name="{name}"\r\n\r\n{value}\r\n'.encode()
        )
    for name, (filename, content, content_type) in (files or {}).items():
        head = (
            f"--{boundary}\r\n"
            f'Content-Disposition: form-data; name="{name}"; filename="{filename}"\r\n'
            f"Content-Type: {content_type}\r\n\r\n"
        )
        parts.append(head.encode() + content + b"\r\n")
    if closed:
        parts.append(f"--{boundary}--\r\n".encode())
    return b"".join(parts)


def multipart_content_type(boundary: str = BOUNDARY) -> str:
    return f"multipart/form-data; boundary={boundary}"


# -----------------------------------------------------------------------------
# Raw request fixture
# -----------------------------------------------------------------------------


@pytest.fixture
def make_raw_request():
    """Factory fixture to create raw requests with a Content-Length matching the body."""

    def _make(
        url: str = "/",
        body: bytes | str = b"",
        headers: dict | None = None,
        method: str = "POST",
        path_params: dict | None = None,
    ) -> RawRequest:
        raw = body.encode() if isinstance(body, str) else body
        request_headers = Headers(headers)
        if raw and "Content-Length" not in request_headers:
            request_headers.set("Content-Length", str(len(raw)))
        return RawRequest(
            method=method,
            url=url,
            headers=request_headers,
            body=BytesBody(raw),
            path_params=path_params or {},
        )

    return _make


@pytest.fixture
def make_mock_request():
    """Factory fixture to create mock Robyn requests."""

    def _make(
        path: str = "/",
        body: str | bytes = "",
        headers: dict | None = None,
        query: dict[str, list[str]] | None = None,
        method: str = "POST",
        path_params: dict | None = None,
    ) -> MockRequest:
        return MockRequest(
            body=body,
            headers=MockHeaders(dict(headers or {})),
            method=method,
            url=MockUrl(path=path),
            query_params=MockQueryParams(dict(query or {})),
            path_params=path_params or {},
        )

    return _make
