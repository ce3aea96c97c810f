"""Request body presence checks and content-type specific decoders."""

import re
from collections.abc import AsyncIterator

import orjson
from python_multipart import MultipartParser
from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import parse_options_header

from hydrator.core.errors import BodyDecodeError, MemoryLimitError
from hydrator.core.logger import LogIcon, logger
from hydrator.core.options import NormalizedOptions
from hydrator.core.url import parse_query_string
from hydrator.models.core import BodyStream, BodyValue, ContentKind, HeaderMap, ParsedBody, RawRequest, UploadFile

BOUNDARY_PATTERN = re.compile(r"boundary=([^\s]+)")
READ_CHUNK_SIZE = 64 * 1024

# When several tokens appear in one Content-Type, the earlier entry wins.
CLASSIFICATION_ORDER = (ContentKind.URLENCODED, ContentKind.JSON, ContentKind.MULTIPART)

# Read failures are wrapped together with parse failures.
DECODE_FAILURES = (ValueError, OSError, EOFError)


def has_body(headers: HeaderMap) -> bool:
    """True when Content-Length is an integer greater than zero."""
    for name in ("content-length", "Content-Length"):
        try:
            if int(headers.get(name)) > 0:  # type: ignore[arg-type]
                return True
        except (TypeError, ValueError):
            continue
    return False


def classify_content_type(content_type: str | None) -> ContentKind:
    """Map a Content-Type header value onto the decoder that handles it."""
    if not content_type:
        return ContentKind.ABSENT
    for kind in CLASSIFICATION_ORDER:
        if kind.value in content_type:
            return kind
    return ContentKind.UNKNOWN


def parse_boundary(content_type: str) -> str | None:
    match = BOUNDARY_PATTERN.search(content_type)
    return match.group(1) if match else None


def parse_form_urlencoded(raw: bytes) -> dict[str, str]:
    body = raw.decode("utf-8")
    if "?" in body:
        body = body.partition("?")[2]
    return parse_query_string(body.replace('"', ""))


def parse_json(raw: bytes) -> dict[str, BodyValue]:
    data = orjson.loads(raw)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


async def iter_body(stream: BodyStream, chunk_size: int = READ_CHUNK_SIZE) -> AsyncIterator[bytes]:
    while chunk := await stream.read(chunk_size):
        yield chunk


class MultipartFormReader:
    """Collects multipart/form-data parts into a name -> value mapping.

    Text parts become ``str`` and parts carrying a filename become ``UploadFile``.
    A repeated part name keeps the last part. Writing more than ``max_bytes``
    raises ``MemoryLimitError`` before the chunk is buffered.
    """

    def __init__(self, boundary: str, max_bytes: int) -> None:
        self.max_bytes = max_bytes
        self.received = 0
        self.form: dict[str, BodyValue] = {}
        self._complete = False
        self._reset_part()
        self._parser = MultipartParser(
            boundary,
            callbacks={
                "on_part_begin": self._reset_part,
                "on_header_field": self._on_header_field,
                "on_header_value": self._on_header_value,
                "on_header_end": self._on_header_end,
                "on_part_data": self._on_part_data,
                "on_part_end": self._on_part_end,
                "on_end": self._on_end,
            },
        )

    def write(self, chunk: bytes) -> None:
        self.received += len(chunk)
        if self.received > self.max_bytes:
            raise MemoryLimitError(self.max_bytes, self.received)
        self._parser.write(chunk)

    def finalize(self) -> dict[str, BodyValue]:
        self._parser.finalize()
        if not self._complete:
            raise MultipartParseError("Body ended before the closing boundary")
        return self.form

    def _reset_part(self) -> None:
        self._headers: dict[str, str] = {}
        self._header_field = bytearray()
        self._header_value = bytearray()
        self._data = bytearray()

    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field.extend(data[start:end])

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value.extend(data[start:end])

    def _on_header_end(self) -> None:
        if self._header_field:
            name = self._header_field.decode("latin-1").lower()
            # parse_options_header re-encodes values as latin-1; option bytes are decoded as utf-8 later.
            self._headers[name] = self._header_value.decode("latin-1")
        self._header_field = bytearray()
        self._header_value = bytearray()

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        self._data.extend(data[start:end])

    def _on_part_end(self) -> None:
        _, options = parse_options_header(self._headers.get("content-disposition", ""))
        name = options.get(b"name")
        if not name:
            return

        field_name = name.decode("utf-8", errors="replace")
        filename = options.get(b"filename")
        if filename:
            self.form[field_name] = UploadFile(
                name=field_name,
                filename=filename.decode("utf-8", errors="replace"),
                content=bytes(self._data),
                content_type=self._headers.get("content-type", "application/octet-stream"),
            )
        else:
            self.form[field_name] = self._data.decode("utf-8", errors="replace")

    def _on_end(self) -> None:
        self._complete = True


async def read_multipart_form(stream: BodyStream, boundary: str, max_bytes: int) -> dict[str, BodyValue]:
    reader = MultipartFormReader(boundary, max_bytes)
    async for chunk in iter_body(stream):
        reader.write(chunk)
    return reader.finalize()


async def decode_body(request: RawRequest, options: NormalizedOptions) -> ParsedBody:
    """
    Decode the request body according to its declared Content-Type.

    Returns an empty ParsedBody without reading the stream when the request has
    no body or declares a content type none of the decoders handle.

    Raises:
        BodyDecodeError: The body could not be read or decoded; ``kind`` names
            the content type that was attempted.
    """
    if not has_body(request.headers):
        return ParsedBody()

    content_type = request.headers.get("Content-Type")
    kind = classify_content_type(content_type)

    match kind:
        case ContentKind.ABSENT:
            try:
                data = parse_form_urlencoded(await request.body.read())
            except DECODE_FAILURES as ex:
                raise BodyDecodeError(
                    ContentKind.URLENCODED,
                    "Error reading request body. No Content-Type header was specified. "
                    "Therefore, the body was parsed as application/x-www-form-urlencoded by default and failed.",
                    ex,
                ) from ex
            icon = LogIcon.FORM
        case ContentKind.MULTIPART:
            try:
                boundary = parse_boundary(content_type)  # type: ignore[arg-type]
                if boundary is None:
                    raise MultipartParseError("No boundary in multipart/form-data Content-Type")
                data = await read_multipart_form(request.body, boundary, options.multipart_form_data_bytes)
            except (MemoryLimitError, *DECODE_FAILURES) as ex:
                raise BodyDecodeError(kind, "Error reading request body as multipart/form-data.", ex) from ex
            icon = LogIcon.UPLOAD
        case ContentKind.JSON:
            try:
                data = parse_json(await request.body.read())
            except DECODE_FAILURES as ex:
                raise BodyDecodeError(kind, "Error reading request body as application/json.", ex) from ex
            icon = LogIcon.JSON
        case ContentKind.URLENCODED:
            try:
                data = parse_form_urlencoded(await request.body.read())
            except DECODE_FAILURES as ex:
                raise BodyDecodeError(
                    kind, "Error reading request body as application/x-www-form-urlencoded.", ex
                ) from ex
            icon = LogIcon.FORM
        case ContentKind.UNKNOWN:
            logger.debug("Leaving body undecoded", icon=LogIcon.WARNING, content_type=content_type)
            return ParsedBody()

    decoded_as = ContentKind.URLENCODED if kind is ContentKind.ABSENT else kind
    logger.debug("Body decoded", icon=icon, content_type=decoded_as.value, fields=len(data))
    return ParsedBody(content_type=decoded_as.value, data=data)
