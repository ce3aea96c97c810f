"""Request hydration: enrich a raw request once, read it many times."""

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

import structlog

from hydrator.core.body import decode_body
from hydrator.core.errors import BodyConsumedError
from hydrator.core.logger import LogIcon, logger
from hydrator.core.negotiation import resolve_response_content_type
from hydrator.core.options import HydrationOptions, normalize_options
from hydrator.core.url import parse_query_params, split_path
from hydrator.models.core import BodyStream, BodyValue, HeaderMap, ParsedBody, RawRequest, UploadFile


@runtime_checkable
class RequestAccessors(Protocol):
    """Uniform read access to a hydrated request's parameters."""

    def get_body_param(self, name: str) -> BodyValue: ...

    def get_body_file(self, name: str) -> UploadFile | BodyValue: ...

    def get_header_param(self, name: str) -> str | None: ...

    def get_path_param(self, name: str) -> str | None: ...

    def get_query_param(self, name: str) -> str | None: ...


@dataclass(frozen=True, slots=True)
class HydratedRequest:
    """Raw request plus everything derived from it during hydration."""

    method: str
    url: str
    headers: HeaderMap
    body: BodyStream
    url_path: str
    url_query_params: dict[str, str]
    response_content_type: str
    parsed_body: ParsedBody = field(default_factory=ParsedBody)
    path_params: dict[str, str] = field(default_factory=dict)

    def get_body_param(self, name: str) -> BodyValue:
        return self.parsed_body.get(name)

    def get_body_file(self, name: str) -> UploadFile | BodyValue:
        return self.parsed_body.get(name)

    def get_header_param(self, name: str) -> str | None:
        return self.headers.get(name)

    def get_path_param(self, name: str) -> str | None:
        return self.path_params.get(name)

    def get_query_param(self, name: str) -> str | None:
        return self.url_query_params.get(name)


def set_headers(headers: HeaderMap, extra: dict[str, str] | None) -> None:
    """Merge extra headers into the request, overwriting same-named ones."""
    for key, value in (extra or {}).items():
        headers.set(key, value)


async def hydrate(request: RawRequest, options: HydrationOptions | None = None) -> HydratedRequest:
    """
    Hydrate a raw request.

    The body is read and decoded here, exactly once, so handlers can read
    body params synchronously afterwards.

    Raises:
        BodyDecodeError: The body could not be decoded as its declared content type.
        BodyConsumedError: The request was already hydrated.
    """
    if isinstance(request, HydratedRequest):
        raise BodyConsumedError("Request was already hydrated; its body cannot be read again")

    normalized = normalize_options(options)
    set_headers(request.headers, normalized.headers)

    url_path = split_path(request.url)
    with structlog.contextvars.bound_contextvars(method=request.method, path=url_path):
        url_query_params = parse_query_params(request.url)
        parsed_body = await decode_body(request, normalized)
        response_content_type = resolve_response_content_type(
            request.headers,
            query_params=url_query_params,
            body_data=parsed_body.data,
            default_type=normalized.default_response_content_type,
        )
        logger.debug("Request hydrated", icon=LogIcon.COMPLETE, response_content_type=response_content_type)

    return HydratedRequest(
        method=request.method,
        url=request.url,
        headers=request.headers,
        body=request.body,
        url_path=url_path,
        url_query_params=url_query_params,
        response_content_type=response_content_type,
        parsed_body=parsed_body,
        path_params=dict(request.path_params or {}),
    )
