"""Router that hydrates Robyn requests and injects them into handlers."""

import inspect
from collections.abc import Callable
from functools import wraps
from typing import Any
from urllib.parse import urlencode
from uuid import uuid4

import orjson
import structlog
from pydantic import BaseModel
from robyn import Request, Response, SubRouter, status_codes
from robyn.robyn import HttpMethod

from hydrator.core.errors import BodyDecodeError
from hydrator.core.hydrate import HydratedRequest, hydrate
from hydrator.core.logger import LogIcon, logger
from hydrator.core.negotiation import DEFAULT_RESPONSE_CONTENT_TYPE
from hydrator.core.options import HydrationOptions
from hydrator.core.settings import settings as st
from hydrator.models.core import BytesBody, RawRequest

REQUEST_ID_HEADER = "X-Request-ID"


def parse_endpoint_signature(sig: inspect.Signature) -> set[str]:
    """Names of the parameters annotated with HydratedRequest."""
    return {name for name, param in sig.parameters.items() if param.annotation is HydratedRequest}


def to_raw_request(request: Request) -> RawRequest:
    """Rebuild the raw request a Robyn request was parsed from."""
    url = request.url.path or "/"
    query = request.query_params.to_dict() if request.query_params else {}
    if query:
        url = f"{url}?{urlencode(query, doseq=True)}"

    body = request.body or b""
    if isinstance(body, str):
        body = body.encode("utf-8")

    return RawRequest(
        method=request.method,
        url=url,
        headers=request.headers,
        body=BytesBody(bytes(body)),
        path_params=dict(request.path_params or {}),
    )


def fallback_content_type(options: HydrationOptions) -> str:
    """Response content type used when a handler takes no hydrated request."""
    return options.default_response_content_type or DEFAULT_RESPONSE_CONTENT_TYPE


def error_response(ex: BodyDecodeError) -> Response:
    return Response(
        status_code=status_codes.HTTP_500_INTERNAL_SERVER_ERROR,
        headers={"content-type": "application/json"},
        description=orjson.dumps({"error": "body_decode_error", "kind": ex.kind.value, "detail": str(ex)}).decode(),
    )


async def hydrate_robyn_request(request: Request, options: HydrationOptions | None = None) -> HydratedRequest | Response:
    """Hydrate a Robyn request; a body that cannot be decoded becomes a 500 response.

    Log events emitted meanwhile carry the client's X-Request-ID, or a fresh id.
    """
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
    with structlog.contextvars.bound_contextvars(request_id=request_id):
        try:
            return await hydrate(to_raw_request(request), options)
        except BodyDecodeError as ex:
            logger.error("Request body could not be decoded", icon=LogIcon.ERROR, kind=ex.kind.value)
            return error_response(ex)


def parse_response(result: Any, content_type: str = DEFAULT_RESPONSE_CONTENT_TYPE) -> Response:
    """Convert handler result to Response."""
    match result:
        case Response():
            return result
        case BaseModel():
            return Response(
                status_code=status_codes.HTTP_200_OK,
                headers={"content-type": "application/json"},
                description=result.model_dump_json(indent=4),
            )
        case dict():
            return Response(
                status_code=status_codes.HTTP_200_OK,
                headers={"content-type": "application/json"},
                description=orjson.dumps(result, default=str).decode(),
            )
        case _:
            return Response(
                status_code=status_codes.HTTP_200_OK,
                headers={"content-type": content_type},
                description=str(result),
            )


HTTP_METHODS = (
    HttpMethod.GET,
    HttpMethod.POST,
    HttpMethod.PUT,
    HttpMethod.DELETE,
    HttpMethod.PATCH,
    HttpMethod.HEAD,
    HttpMethod.OPTIONS,
    HttpMethod.TRACE,
    HttpMethod.CONNECT,
)


def _create_method_wrapper(original_method: Callable, options: HydrationOptions) -> Callable:
    @wraps(original_method)
    def method_wrapper(*args, **kwargs) -> Callable:
        decorator = original_method(*args, **kwargs)

        def handler_decorator(handler: Callable) -> Callable:
            sig = inspect.signature(handler)
            hydrated_params = parse_endpoint_signature(sig)
            has_request_param = "request" in sig.parameters

            @wraps(handler)
            async def wrapped_handler(request: Request, **h_kwargs):
                content_type = fallback_content_type(options)

                if hydrated_params:
                    hydrated = await hydrate_robyn_request(request, options)
                    if isinstance(hydrated, Response):
                        return hydrated
                    content_type = hydrated.response_content_type
                    for name in hydrated_params:
                        h_kwargs[name] = hydrated

                # Pass request to handler only if it declared it
                if has_request_param:
                    h_kwargs["request"] = request

                result = await handler(**h_kwargs)
                return parse_response(result, content_type)

            # Build signature: always include request for Robyn injection
            new_params = [inspect.Parameter("request", inspect.Parameter.POSITIONAL_OR_KEYWORD, annotation=Request)]
            for name, param in sig.parameters.items():
                if name == "request" or name in hydrated_params:
                    continue
                new_params.append(param)

            wrapped_handler.__signature__ = sig.replace(parameters=new_params)  # type: ignore[attr-defined]
            return decorator(wrapped_handler)

        return handler_decorator

    return method_wrapper


class Router(SubRouter):
    """SubRouter that hands HydratedRequest-annotated parameters a hydrated request."""

    def __init__(self, *args, options: HydrationOptions | None = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._options = options or HydrationOptions.from_settings(st)
        self._wrap_methods()

    def _wrap_methods(self) -> None:
        """Wrap HTTP methods with hydration logic."""
        for method in HTTP_METHODS:
            method_name = str(method).split(".")[-1].lower()
            if hasattr(self, method_name):
                original_method = getattr(self, method_name)
                wrapped_method = _create_method_wrapper(original_method, self._options)
                setattr(self, method_name, wrapped_method)
