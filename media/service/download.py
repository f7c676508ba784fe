"""
Acquisition service for source media.

Handles buffered and streamed HTTP downloads, and live extraction of a hosted
media page's audio track through yt-dlp.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Optional

import requests
import yt_dlp
from yt_dlp.utils import DownloadError

from media.service.config import get_fetch_options, get_fetch_timeout, get_ytdlp_options
from media.service.constants import (
    CHUNK_SIZE,
    STRATEGY_BUFFERED,
    STRATEGY_LIVE,
    STRATEGY_STREAMED,
)
from media.service.errors import AcquisitionFailure, InvalidRequest


@dataclass
class AcquiredMedia:
    """
    Handle to acquired source media.

    Either a completed local file (path, file_size) or an open byte stream.
    """

    strategy: str
    path: Optional[Path] = None
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    title: Optional[str] = None
    stream: Optional[Iterator[bytes]] = None
    response: Any = None

    @property
    def is_stream(self):
        return self.stream is not None

    def close(self):
        """Release the underlying connection, if any."""
        if self.response is not None:
            self.response.close()
            self.response = None


def _declared_length(response):
    """Content-Length of an unencoded response body, or None if unknown."""
    encoding = response.headers.get('content-encoding', 'identity')
    length = response.headers.get('content-length')
    if encoding != 'identity' or not length:
        return None
    try:
        return int(length)
    except (TypeError, ValueError):
        return None


class Acquirer:
    """Obtains source media for one job"""

    name = None

    def acquire(self, url, input_path, options, logger=None):
        """
        Acquire the media at url.

        Args:
            url: Source URL
            input_path: Where to write the media (ignored by stream-only acquirers)
            options: FetchOptions with the request headers to send
            logger: Optional callable(str) for logging

        Returns:
            AcquiredMedia

        Raises:
            AcquisitionFailure: On transport errors, HTTP errors or truncated bodies
        """
        raise NotImplementedError


class BufferedFetch(Acquirer):
    """Download the whole body into memory, then persist it with one write"""

    name = STRATEGY_BUFFERED

    def acquire(self, url, input_path, options, logger=None):
        def log(message):
            if logger:
                logger(message)

        input_path = Path(input_path)

        log(f'Downloading (buffered) from: {url}')

        try:
            response = requests.get(url, headers=options.to_headers(), timeout=get_fetch_timeout())
            response.raise_for_status()
            body = response.content
        except requests.RequestException as e:
            raise AcquisitionFailure(e) from e

        expected = _declared_length(response)
        if expected is not None and len(body) < expected:
            raise AcquisitionFailure(
                f'Download ended prematurely: received {len(body)} of {expected} bytes'
            )

        input_path.write_bytes(body)

        file_size = input_path.stat().st_size
        log(f'Downloaded {file_size} bytes to {input_path}')

        return AcquiredMedia(
            strategy=self.name,
            path=input_path,
            file_size=file_size,
            mime_type=response.headers.get('content-type', 'application/octet-stream'),
        )


class StreamedFetch(Acquirer):
    """Pipe the response body to disk as it arrives"""

    name = STRATEGY_STREAMED

    def acquire(self, url, input_path, options, logger=None):
        def log(message):
            if logger:
                logger(message)

        input_path = Path(input_path)

        log(f'Downloading (streamed) from: {url}')
        log(f'Saving to: {input_path}')

        try:
            response = requests.get(
                url, headers=options.to_headers(), stream=True, timeout=get_fetch_timeout()
            )
        except requests.RequestException as e:
            raise AcquisitionFailure(e) from e

        try:
            response.raise_for_status()
            written = 0
            with open(input_path, 'wb') as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    f.write(chunk)
                    written += len(chunk)
        except requests.HTTPError as e:
            raise AcquisitionFailure(e) from e
        except requests.RequestException as e:
            raise AcquisitionFailure(f'Download ended prematurely: {e}') from e
        finally:
            response.close()

        expected = _declared_length(response)
        if expected is not None and written < expected:
            raise AcquisitionFailure(
                f'Download ended prematurely: received {written} of {expected} bytes'
            )

        file_size = input_path.stat().st_size
        log(f'Downloaded {file_size} bytes')

        return AcquiredMedia(
            strategy=self.name,
            path=input_path,
            file_size=file_size,
            mime_type=response.headers.get('content-type', 'application/octet-stream'),
        )


def _iter_stream(response):
    """Yield body chunks, reporting a broken transfer as an acquisition failure."""
    try:
        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
            if chunk:
                yield chunk
    except requests.RequestException as e:
        raise AcquisitionFailure(f'Stream ended prematurely: {e}') from e


class LiveExtraction(Acquirer):
    """Resolve a hosted page's audio track with yt-dlp and stream it without a file"""

    name = STRATEGY_LIVE

    # Plain progressive HTTP only; ffmpeg reads the bytes from stdin
    format_spec = (
        'bestaudio[protocol^=http][protocol!*=dash]/best[protocol^=http][protocol!*=dash]'
    )

    def extract(self, url, options, logger=None):
        """
        Resolve the direct media URL for a hosted page.

        Returns:
            dict: yt-dlp info dict for the selected format
        """
        ydl_opts = {
            'format': self.format_spec,
            'noplaylist': True,
            'quiet': True,
            'no_warnings': True,
            'http_headers': options.to_headers(),
        }
        ydl_opts = get_ytdlp_options(ydl_opts)

        try:
            with yt_dlp.YoutubeDL(ydl_opts) as ydl:
                info = ydl.extract_info(url, download=False)
        except DownloadError as e:
            raise AcquisitionFailure(f'Unsupported source: {e}') from e

        if not info:
            raise AcquisitionFailure(f'yt-dlp returned no info for {url}')
        if 'entries' in info:
            raise AcquisitionFailure('Playlists are not supported, pass a single item URL')
        if not info.get('url'):
            raise AcquisitionFailure(f'No streamable audio format found for {url}')

        return info

    def acquire(self, url, input_path, options, logger=None):
        def log(message):
            if logger:
                logger(message)

        log(f'Extracting with yt-dlp: {url}')
        info = self.extract(url, options, logger=logger)
        log(f'Title: {info.get("title", "Untitled")}')
        log(f'Format: {info.get("format_id")} ({info.get("ext")}, {info.get("acodec")})')

        headers = options.to_headers()
        headers.update(info.get('http_headers') or {})

        response = None
        try:
            response = requests.get(
                info['url'], headers=headers, stream=True, timeout=get_fetch_timeout()
            )
            response.raise_for_status()
        except requests.RequestException as e:
            if response is not None:
                response.close()
            raise AcquisitionFailure(e) from e

        log('Live stream opened')

        return AcquiredMedia(
            strategy=self.name,
            mime_type=response.headers.get('content-type'),
            title=info.get('title'),
            stream=_iter_stream(response),
            response=response,
        )


ACQUIRERS = {
    STRATEGY_BUFFERED: BufferedFetch(),
    STRATEGY_STREAMED: StreamedFetch(),
    STRATEGY_LIVE: LiveExtraction(),
}


def acquire(url, strategy, input_path=None, options=None, logger=None):
    """
    Acquire source media with the named strategy.

    Args:
        url: Source URL
        strategy: 'buffered', 'streamed' or 'live'
        input_path: Local path for file-producing strategies
        options: FetchOptions (default: from settings)
        logger: Optional callable(str) for logging

    Returns:
        AcquiredMedia
    """
    acquirer = ACQUIRERS.get(strategy)
    if acquirer is None:
        raise InvalidRequest(f'Unknown strategy: {strategy}')
    if options is None:
        options = get_fetch_options()
    return acquirer.acquire(url, input_path, options, logger=logger)
