"""
Pagination

Computes the URL of the next page from the page just fetched.

Each strategy is a plain function keyed by PaginationStrategy in
STRATEGIES; next_page_url() applies the shared stop conditions.
"""

from typing import Any, Callable, Mapping, Optional
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

from requests.utils import parse_header_links

from schemas.extraction import PaginationConfig, PaginationStrategy


DEFAULT_OFFSET_PARAM = "offset"
DEFAULT_LIMIT_PARAM = "limit"
DEFAULT_PAGE_PARAM = "page"
DEFAULT_CURSOR_PARAM = "cursor"
DEFAULT_LIMIT = 10


# -----------------------------------------------------------------------------
# Query string helpers
# -----------------------------------------------------------------------------


def get_query_int(url: str, name: str, default: int) -> int:
    """Read the first value of ``name`` as an int, falling back to ``default``."""
    for key, value in parse_qsl(urlsplit(url).query, keep_blank_values=True):
        if key == name:
            try:
                return int(value)
            except ValueError:
                return default
    return default


def set_query_param(url: str, name: str, value: str) -> str:
    """
    Set ``name`` to ``value`` in the URL's query string.

    The first occurrence is replaced in place and later duplicates are
    dropped; the parameter is appended when absent.
    """
    parts = urlsplit(url)
    pairs = []
    replaced = False
    for key, current in parse_qsl(parts.query, keep_blank_values=True):
        if key == name:
            if not replaced:
                pairs.append((key, value))
                replaced = True
            continue
        pairs.append((key, current))
    if not replaced:
        pairs.append((name, value))
    return urlunsplit(parts._replace(query=urlencode(pairs)))


def find_next_link(headers: Mapping[str, str], base_url: str) -> Optional[str]:
    """Return the rel="next" target of a Link header, resolved against base_url."""
    link_header = headers.get("Link") or headers.get("link")
    if not link_header:
        return None
    for link in parse_header_links(link_header):
        if "next" in link.get("rel", "").split() and link.get("url"):
            return urljoin(base_url, link["url"])
    return None


# -----------------------------------------------------------------------------
# Strategies
# -----------------------------------------------------------------------------


def _next_offset(
    pagination: PaginationConfig,
    current_url: str,
    headers: Mapping[str, str],
    body: Any,
) -> Optional[str]:
    offset_param = pagination.page_param or DEFAULT_OFFSET_PARAM
    limit_param = pagination.limit_param or DEFAULT_LIMIT_PARAM
    offset = get_query_int(current_url, offset_param, 0)
    limit = get_query_int(current_url, limit_param, DEFAULT_LIMIT)
    return set_query_param(current_url, offset_param, str(offset + limit))


def _next_page(
    pagination: PaginationConfig,
    current_url: str,
    headers: Mapping[str, str],
    body: Any,
) -> Optional[str]:
    page_param = pagination.page_param or DEFAULT_PAGE_PARAM
    page = get_query_int(current_url, page_param, 1)
    return set_query_param(current_url, page_param, str(page + 1))


def _next_cursor(
    pagination: PaginationConfig,
    current_url: str,
    headers: Mapping[str, str],
    body: Any,
) -> Optional[str]:
    linked = find_next_link(headers, current_url)
    if linked:
        return linked

    if isinstance(body, dict) and body.get("next_cursor"):
        cursor_param = pagination.page_param or DEFAULT_CURSOR_PARAM
        return set_query_param(current_url, cursor_param, str(body["next_cursor"]))

    return None


STRATEGIES: dict[
    PaginationStrategy,
    Callable[[PaginationConfig, str, Mapping[str, str], Any], Optional[str]],
] = {
    PaginationStrategy.OFFSET: _next_offset,
    PaginationStrategy.PAGE: _next_page,
    PaginationStrategy.CURSOR: _next_cursor,
}


def next_page_url(
    pagination: PaginationConfig,
    current_url: str,
    page_index: int,
    response_headers: Mapping[str, str],
    parsed_body: Any,
) -> Optional[str]:
    """
    Compute the next page URL, or None when pagination is over.

    Args:
        pagination: Pagination config from the request
        current_url: URL of the page just fetched
        page_index: 0-based index of the page just fetched
        response_headers: Headers of that page's response
        parsed_body: Decoded document of that page

    Returns:
        The next URL, or None if disabled, at max_pages, or no progress
    """
    if not pagination.enabled:
        return None
    if page_index + 1 >= pagination.max_pages:
        return None

    next_url = STRATEGIES[pagination.strategy](
        pagination, current_url, response_headers, parsed_body
    )
    if not next_url or next_url == current_url:
        return None
    return next_url
