"""URL decomposition into path and query params."""

from urllib.parse import parse_qsl

from hydrator.core.logger import LogIcon, logger


def split_path(url: str) -> str:
    """Return the URL without its query string."""
    try:
        if url == "/" or "?" not in url:
            return url
        return url.split("?")[0]
    except (AttributeError, TypeError):
        return url


def split_query_string(url: str) -> str | None:
    """Return the query string without the leading "?", or None when there is none."""
    try:
        if "?" not in url:
            return None
        return url.partition("?")[2]
    except (AttributeError, TypeError):
        return None


def parse_query_string(query: str | None) -> dict[str, str]:
    """Decode ``key=value&...`` pairs. A repeated key keeps its last value."""
    if not query:
        return {}
    return dict(parse_qsl(query, keep_blank_values=True))


def parse_query_params(url: str) -> dict[str, str]:
    """Parse the URL's query params, empty on any failure."""
    try:
        return parse_query_string(split_query_string(url))
    except (TypeError, ValueError, UnicodeError) as ex:
        logger.debug("Ignoring malformed query string", icon=LogIcon.QUERY, url=url, error=str(ex))
        return {}
