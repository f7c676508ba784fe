"""
Configuration adapter for the transcoding pipeline.

Centralizes access to Django settings and environment variables,
ensuring consistent configuration across the CLI and the web endpoint.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from django.conf import settings


@dataclass(frozen=True)
class TranscodeSpec:
    """Target encoding, fixed per deployment"""

    codec: str = 'aac'
    bitrate: str = '96k'
    container: str = 'ipod'
    extension: str = '.m4a'
    input_format: Optional[str] = None

    def output_args(self):
        """ffmpeg arguments describing the output encoding."""
        return ['-vn', '-c:a', self.codec, '-b:a', self.bitrate, '-f', self.container]


@dataclass(frozen=True)
class FetchOptions:
    """Request headers sent to the source origin"""

    user_agent: Optional[str] = None
    referer: Optional[str] = None
    origin: Optional[str] = None
    accept: str = '*/*'
    accept_encoding: str = 'identity'
    connection: str = 'keep-alive'
    host: Optional[str] = None
    extra_headers: Dict[str, str] = field(default_factory=dict)

    def to_headers(self):
        """
        Render the options as HTTP headers.

        Unset options are left out. extra_headers win over everything else.

        Returns:
            dict: Header name to value
        """
        headers = {
            'Accept': self.accept,
            'Accept-Encoding': self.accept_encoding,
            'Connection': self.connection,
        }
        if self.user_agent:
            headers['User-Agent'] = self.user_agent
        if self.referer:
            headers['Referer'] = self.referer
        if self.origin:
            headers['Origin'] = self.origin
        if self.host:
            headers['Host'] = self.host
        headers.update(self.extra_headers or {})
        return headers


def get_transcode_spec():
    """Get the deployment's target encoding."""
    return TranscodeSpec(
        codec=settings.AUDIORELAY_AUDIO_CODEC,
        bitrate=settings.AUDIORELAY_AUDIO_BITRATE,
        container=settings.AUDIORELAY_OUTPUT_FORMAT,
        extension=settings.AUDIORELAY_OUTPUT_EXTENSION,
        input_format=settings.AUDIORELAY_INPUT_FORMAT,
    )


def get_fetch_options(**overrides):
    """
    Get the configured fetch options.

    Args:
        **overrides: FetchOptions fields to replace (None values are ignored)

    Returns:
        FetchOptions
    """
    values = {
        'user_agent': settings.AUDIORELAY_USER_AGENT,
        'referer': settings.AUDIORELAY_REFERER,
        'origin': settings.AUDIORELAY_ORIGIN,
        'host': settings.AUDIORELAY_HOST_HEADER,
        'extra_headers': dict(settings.AUDIORELAY_EXTRA_HEADERS or {}),
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    return FetchOptions(**values)


def get_scratch_dir():
    """Get the shared scratch directory for transient job files"""
    return Path(settings.AUDIORELAY_SCRATCH_DIR)


def get_acquire_strategy():
    """Get the configured acquisition strategy name"""
    return settings.AUDIORELAY_ACQUIRE_STRATEGY


def get_min_source_bytes():
    """Get the smallest acceptable acquired payload size"""
    return settings.AUDIORELAY_MIN_SOURCE_BYTES


def get_ffmpeg_binary():
    return settings.AUDIORELAY_FFMPEG_BINARY


def get_upload_url():
    return settings.AUDIORELAY_UPLOAD_URL


def get_upload_timeout():
    return settings.AUDIORELAY_UPLOAD_TIMEOUT


def get_fetch_timeout():
    """Get the fetch deadline in seconds, or None to wait indefinitely"""
    return settings.AUDIORELAY_FETCH_TIMEOUT


def get_transcode_timeout():
    """Get the ffmpeg deadline in seconds, or None to wait indefinitely"""
    return settings.AUDIORELAY_TRANSCODE_TIMEOUT


def get_ytdlp_options(base_opts):
    """
    Apply deployment settings to a yt-dlp options dict.

    Args:
        base_opts: Base yt-dlp options dict to update

    Returns:
        dict: Updated yt-dlp options dict
    """
    # Add proxy if configured (needed for cloud VMs where YouTube blocks requests)
    if settings.AUDIORELAY_YTDLP_PROXY:
        base_opts['proxy'] = settings.AUDIORELAY_YTDLP_PROXY
    timeout = get_fetch_timeout()
    if timeout:
        base_opts['socket_timeout'] = timeout
    return base_opts


def get_log_file():
    return settings.AUDIORELAY_LOG_FILE
