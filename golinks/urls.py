"""URL composition helpers for the redirect path.

How to Use
===========
::
    merge_query_params(
        "https://taxgeniuspro.tax/start-filing/form?ref=TGP-123456",
        [("utm_source", "instagram"), ("ref", "spoofed")],
    )
    # -> "https://taxgeniuspro.tax/start-filing/form?ref=TGP-123456&utm_source=instagram"

    build_fallback_url("/", RedirectError.LINK_NOT_FOUND)
    # -> "/?error=link-not-found"

Key Behaviours
===============
- Keys already present on the destination are never overwritten by the
  incoming request. The destination's own query string is kept byte-for-byte.
- A repeated incoming key forwards only its first value.
- The fragment of the destination stays at the end of the URL.
"""

from collections.abc import Iterable
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from golinks.enums import RedirectError

__all__ = ["ensure_absolute_url", "merge_query_params", "build_fallback_url"]

ALLOWED_SCHEMES = ("http", "https")


def ensure_absolute_url(url: str) -> None:
    parts = urlsplit(url)
    if parts.scheme.lower() not in ALLOWED_SCHEMES or not parts.netloc:
        raise ValueError(f"Destination is not an absolute http(s) URL: {url!r}")


def merge_query_params(destination: str, incoming: Iterable[tuple[str, str]]) -> str:
    parts = urlsplit(destination)
    seen = {key for key, _ in parse_qsl(parts.query, keep_blank_values=True)}

    forwarded: list[tuple[str, str]] = []
    for key, value in incoming:
        if key in seen:
            continue
        seen.add(key)
        forwarded.append((key, value))

    if not forwarded:
        return destination

    extra = urlencode(forwarded)
    query = f"{parts.query}&{extra}" if parts.query else extra
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def build_fallback_url(site_root: str, error: RedirectError) -> str:
    separator = "&" if "?" in site_root else "?"
    return f"{site_root}{separator}{urlencode({'error': error.value})}"
