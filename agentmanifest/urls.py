"""URL helpers shared by the field checks and the network probes."""

from typing import Optional
from urllib.parse import urljoin, urlparse

WELL_KNOWN_MANIFEST_PATH = "/.well-known/agent-manifest.json"


def is_valid_url(value) -> bool:
    """True if value parses as an absolute URL (scheme and host present)"""
    if not isinstance(value, str) or not value.strip():
        return False
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc)


def is_http_url(value) -> bool:
    """True if value is an absolute http(s) URL that can be probed"""
    if not is_valid_url(value):
        return False
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.hostname)


def normalize_base_url(url: str) -> str:
    """Add a missing https:// scheme and drop the trailing slash"""
    base = url.strip()
    if not base.startswith("http://") and not base.startswith("https://"):
        base = f"https://{base}"
    return base.rstrip("/")


def resolve_url(path_or_url: str, base_url: Optional[str]) -> Optional[str]:
    """Resolve a possibly relative path against base_url.

    Absolute URLs are returned unchanged. Relative paths without a base,
    and anything urljoin cannot parse (e.g. an unbalanced IPv6 bracket),
    yield None.
    """
    if is_valid_url(path_or_url):
        return path_or_url
    if not base_url:
        return None
    try:
        return urljoin(base_url, path_or_url)
    except ValueError:
        return None


def manifest_url(base_url: str) -> Optional[str]:
    """Well-known manifest location under base_url, or None if unparseable"""
    return resolve_url(WELL_KNOWN_MANIFEST_PATH, base_url)
