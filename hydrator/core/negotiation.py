"""Response content type negotiation."""

from collections.abc import Mapping
from typing import Any

from hydrator.models.core import HeaderMap

DEFAULT_RESPONSE_CONTENT_TYPE = "application/json"
RESPONSE_CONTENT_TYPE_HEADER = "Response-Content-Type"
RESPONSE_CONTENT_TYPE_KEY = "response_content_type"


def resolve_response_content_type(
    headers: HeaderMap,
    query_params: Mapping[str, str] | None = None,
    body_data: Mapping[str, Any] | None = None,
    default_type: str | None = DEFAULT_RESPONSE_CONTENT_TYPE,
) -> str:
    """
    Pick the content type the client asked the response to be in.

    Sources, highest precedence first:
    - ``response_content_type`` in the parsed request body
    - ``?response_content_type=`` in the URL query
    - the ``Response-Content-Type`` header
    - ``default_type``, or ``application/json`` when that is empty

    Each source is checked in ascending precedence and overwrites the previous match.
    """
    content_type: str | None = None

    if header_value := headers.get(RESPONSE_CONTENT_TYPE_HEADER):
        content_type = header_value

    if query_params and (query_value := query_params.get(RESPONSE_CONTENT_TYPE_KEY)):
        content_type = query_value

    if body_data and isinstance(body_value := body_data.get(RESPONSE_CONTENT_TYPE_KEY), str) and body_value:
        content_type = body_value

    return content_type or default_type or DEFAULT_RESPONSE_CONTENT_TYPE
