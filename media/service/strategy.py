"""
Acquisition strategy selection.

Determines whether to fetch a URL as a buffered download, a streamed download,
or a live extraction through yt-dlp.
"""

from pathlib import Path
from urllib.parse import urlparse

from media.service.constants import (
    ACQUIRE_STRATEGIES,
    MEDIA_EXTENSIONS,
    STRATEGY_AUTO,
    STRATEGY_LIVE,
    STRATEGY_STREAMED,
)
from media.service.errors import InvalidRequest


def is_valid_source_url(url):
    """Return True if url is an absolute http(s) URL with a host."""
    if not url:
        return False
    parsed = urlparse(url)
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


def get_media_extension(url):
    """
    Get the media extension of a URL's path.

    Returns:
        str: Lowercase extension such as '.mp3', or '' if the path has none we know
    """
    ext = Path(urlparse(url).path).suffix.lower()
    return ext if ext in MEDIA_EXTENSIONS else ''


def choose_acquire_strategy(url, configured):
    """
    Resolve the acquisition strategy for a URL.

    Args:
        url: The source URL
        configured: Strategy name from settings or the request ('auto' inspects the URL)

    Returns:
        str: 'buffered', 'streamed' or 'live'

    Raises:
        InvalidRequest: If the strategy name is unknown
    """
    if configured == STRATEGY_AUTO:
        # Direct media files stream to disk, anything else is a hosted page
        if get_media_extension(url):
            return STRATEGY_STREAMED
        return STRATEGY_LIVE

    if configured not in ACQUIRE_STRATEGIES:
        raise InvalidRequest(
            f'Unknown strategy: {configured}. Must be one of: '
            f'{", ".join(ACQUIRE_STRATEGIES + [STRATEGY_AUTO])}'
        )
    return configured
