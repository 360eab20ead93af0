"""
Canonical comparison keys for product and brand display names.

Two products are compared on their normalized names, never on the raw display
string, so casing, punctuation and spacing differences between ingestions of
the same item collapse to a single key.
"""

import re
from typing import Optional
from urllib.parse import urlparse

_DISALLOWED_CHARS = re.compile(r"[^a-z0-9\s]")
_WHITESPACE_RUN = re.compile(r"\s+")
_URL_PREFIX = re.compile(r"^(https?://)?(www\.)?")


def normalize_name(name: Optional[str]) -> str:
    """Lower-case, drop everything outside ``[a-z0-9\\s]``, collapse whitespace, trim."""
    if not name:
        return ""
    cleaned = _DISALLOWED_CHARS.sub("", name.lower())
    return _WHITESPACE_RUN.sub(" ", cleaned).strip()


def normalize_url(url: Optional[str]) -> str:
    if not url:
        return ""
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        parsed = None
    if parsed is not None and parsed.scheme and parsed.netloc:
        host = parsed.netloc.lower()
        if host.startswith("www."):
            host = host[4:]
        return host + parsed.path.rstrip("/")
    return _URL_PREFIX.sub("", url.strip().lower()).rstrip("/")
