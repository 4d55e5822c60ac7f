"""
Serving URL helpers.

Serving URLs have the form ``<base>/img/<token>=s<size>``. The size
suffix mirrors the display-size option of the handle so a URL can be
read without a database lookup.

Exports:
    build_serving_url: Compose a serving URL
    parse_serving_path: Split the last path segment into token and size
"""

from typing import Optional, Tuple
from urllib.parse import urlsplit, urlunsplit


SERVING_PATH = "img"


def build_serving_url(base_url: str, token: str, size: int, secure: bool) -> str:
    """
    Compose the public serving URL for a handle.

    With ``secure`` the scheme is forced to https whatever the base says.
    """
    parts = urlsplit(base_url.rstrip('/'))
    scheme = 'https' if secure else (parts.scheme or 'http')
    path = f"{parts.path}/{SERVING_PATH}/{token}=s{size}"
    return urlunsplit((scheme, parts.netloc, path, '', ''))


def parse_serving_path(segment: str) -> Tuple[str, Optional[int]]:
    """
    Split '<token>=s<size>' into (token, size).

    A segment without a size suffix returns (segment, None).

    Raises:
        ValueError: Empty token or a malformed size suffix
    """
    token, sep, suffix = segment.partition('=')
    if not token:
        raise ValueError("serving token is empty")
    if not sep:
        return token, None
    if not suffix.startswith('s') or not suffix[1:].isdigit():
        raise ValueError(f"malformed size suffix '{suffix}'")
    return token, int(suffix[1:])
