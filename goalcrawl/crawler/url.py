"""URL normalization, resolution, and path helpers."""

from __future__ import annotations

import posixpath
import re
from typing import Sequence
from urllib.parse import (
    parse_qsl,
    quote,
    urlencode,
    urljoin,
    urlsplit,
    urlunsplit,
)


DEFAULT_ALLOWED_SCHEMES = ("http", "https")
SKIP_HREF_PREFIXES = ("javascript:", "mailto:", "tel:", "data:")
TRACKING_QUERY_PARAM_PREFIXES = ("utm_",)
TRACKING_QUERY_PARAMS = {
    "fbclid",
    "gclid",
    "mc_cid",
    "mc_eid",
    "mkt_tok",
    "igshid",
    "ref_src",
}


def hostname_of(url: str) -> str:
    """Return the lowercase hostname of a URL, or "" when there is none."""

    return (urlsplit(url).hostname or "").lower()


def path_of(url: str) -> str:
    """Return the URL path, defaulting to "/"."""

    return urlsplit(url).path or "/"


def path_segments(url_or_path: str) -> list[str]:
    """Return non-empty path segments of a URL or bare path."""

    path = path_of(url_or_path) if "://" in url_or_path else url_or_path
    return [segment for segment in path.split("/") if segment]


def _has_default_port(scheme: str, port: int | None) -> bool:
    if port is None:
        return False
    return (scheme == "http" and port == 80) or (scheme == "https" and port == 443)


def _normalize_netloc(parsed_url, *, strip_default_port: bool) -> str:
    host = (parsed_url.hostname or "").lower()
    if not host:
        return parsed_url.netloc.lower()

    userinfo = ""
    if parsed_url.username:
        userinfo = quote(parsed_url.username, safe="")
        if parsed_url.password:
            userinfo += ":" + quote(parsed_url.password, safe="")
        userinfo += "@"

    try:
        port = parsed_url.port
    except ValueError:
        port = None

    include_port = port is not None and (
        not strip_default_port or not _has_default_port(parsed_url.scheme.lower(), port)
    )
    if include_port:
        return f"{userinfo}{host}:{port}"
    return f"{userinfo}{host}"


def _normalize_path(path: str, *, remove_trailing_slash: bool) -> str:
    if not path:
        return "/"

    collapsed = re.sub(r"/{2,}", "/", path)
    normalized = posixpath.normpath(collapsed)

    if collapsed.startswith("/") and not normalized.startswith("/"):
        normalized = "/" + normalized
    if normalized in {"", "."}:
        normalized = "/"
    if remove_trailing_slash and normalized != "/":
        normalized = normalized.rstrip("/")

    return normalized or "/"


def _is_tracking_query_key(key: str) -> bool:
    normalized = key.strip().lower()
    if not normalized:
        return False
    if normalized in TRACKING_QUERY_PARAMS:
        return True
    return any(normalized.startswith(prefix) for prefix in TRACKING_QUERY_PARAM_PREFIXES)


def _normalize_query(query: str) -> str:
    if not query:
        return ""

    pairs = [
        (key, value)
        for key, value in parse_qsl(query, keep_blank_values=True)
        if not _is_tracking_query_key(key)
    ]
    if not pairs:
        return ""
    return urlencode(sorted(pairs), doseq=True)


def normalize_url(
    url: str | None,
    *,
    strip_default_port: bool = True,
    remove_trailing_slash: bool = True,
    allowed_schemes: Sequence[str] = DEFAULT_ALLOWED_SCHEMES,
) -> str | None:
    """Canonicalize an absolute URL for the visited set and frontier.

    Fragments and tracking parameters are dropped and the query is sorted.
    Returns `None` for URLs that are invalid or outside allowed schemes.
    """

    if not url:
        return None

    raw = url.strip()
    if not raw:
        return None

    parsed = urlsplit(raw)
    if not parsed.scheme or not parsed.netloc:
        return None

    scheme = parsed.scheme.lower()
    if scheme not in {item.lower() for item in allowed_schemes}:
        return None

    netloc = _normalize_netloc(parsed, strip_default_port=strip_default_port)
    if not netloc:
        return None

    path = _normalize_path(parsed.path, remove_trailing_slash=remove_trailing_slash)
    return urlunsplit((scheme, netloc, path, _normalize_query(parsed.query), ""))


def resolve_url(base_url: str, href: str | None) -> str | None:
    """Resolve a possibly relative href against `base_url` and normalize it.

    Empty hrefs, in-page anchors and script/mail/tel/data links resolve to None.
    """

    if href is None:
        return None

    candidate = href.strip()
    if not candidate or candidate.startswith("#"):
        return None

    lowered = candidate.lower()
    if any(lowered.startswith(prefix) for prefix in SKIP_HREF_PREFIXES):
        return None

    try:
        absolute = urljoin(base_url, candidate)
    except ValueError:
        return None
    return normalize_url(absolute)


__all__ = [
    "DEFAULT_ALLOWED_SCHEMES",
    "SKIP_HREF_PREFIXES",
    "hostname_of",
    "normalize_url",
    "path_of",
    "path_segments",
    "resolve_url",
]
