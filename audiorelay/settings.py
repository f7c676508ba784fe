"""
Django settings for the audiorelay project.

Every AUDIORELAY_* setting can be overridden with an environment variable of
the same name.
"""

import json
import os
import tempfile
from pathlib import Path

from django.core.exceptions import ImproperlyConfigured

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_int(name, default):
    value = os.environ.get(name)
    if value in (None, ''):
        return default
    return int(value)


def _env_float(name, default=None):
    value = os.environ.get(name)
    if value in (None, ''):
        return default
    return float(value)


def _env_json_object(name):
    value = os.environ.get(name)
    if value in (None, ''):
        return {}
    try:
        parsed = json.loads(value)
    except ValueError as e:
        raise ImproperlyConfigured(f'{name} is not valid JSON: {e}') from e
    if not isinstance(parsed, dict):
        raise ImproperlyConfigured(
            f'{name} must be a JSON object of header names to values, got {type(parsed).__name__}'
        )
    return {str(k): str(v) for k, v in parsed.items()}


SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'django-insecure-audiorelay-dev-key')

DEBUG = os.environ.get('DJANGO_DEBUG', 'false').lower() in ('1', 'true', 'yes')

ALLOWED_HOSTS = [h for h in os.environ.get('DJANGO_ALLOWED_HOSTS', '*').split(',') if h]

INSTALLED_APPS = [
    'media',
]

MIDDLEWARE = [
    'django.middleware.common.CommonMiddleware',
]

ROOT_URLCONF = 'audiorelay.urls'

WSGI_APPLICATION = 'audiorelay.wsgi.application'

# Jobs are not persisted
DATABASES = {}

USE_TZ = True
TIME_ZONE = 'UTC'

# Scratch directory for per-job input/output files (must already exist)
AUDIORELAY_SCRATCH_DIR = os.environ.get('AUDIORELAY_SCRATCH_DIR', tempfile.gettempdir())

# buffered | streamed | live | auto
AUDIORELAY_ACQUIRE_STRATEGY = os.environ.get('AUDIORELAY_ACQUIRE_STRATEGY', 'buffered')

# Payloads smaller than this are rejected before ffmpeg runs
AUDIORELAY_MIN_SOURCE_BYTES = _env_int('AUDIORELAY_MIN_SOURCE_BYTES', 1024)

# Transcoding
AUDIORELAY_FFMPEG_BINARY = os.environ.get('AUDIORELAY_FFMPEG_BINARY', 'ffmpeg')
AUDIORELAY_AUDIO_CODEC = os.environ.get('AUDIORELAY_AUDIO_CODEC', 'aac')
AUDIORELAY_AUDIO_BITRATE = os.environ.get('AUDIORELAY_AUDIO_BITRATE', '96k')
AUDIORELAY_OUTPUT_FORMAT = os.environ.get('AUDIORELAY_OUTPUT_FORMAT', 'ipod')
AUDIORELAY_OUTPUT_EXTENSION = os.environ.get('AUDIORELAY_OUTPUT_EXTENSION', '.m4a')
AUDIORELAY_INPUT_FORMAT = os.environ.get('AUDIORELAY_INPUT_FORMAT') or None

# Request headers sent to the source origin
AUDIORELAY_USER_AGENT = os.environ.get(
    'AUDIORELAY_USER_AGENT',
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/124.0 Safari/537.36',
)
AUDIORELAY_REFERER = os.environ.get('AUDIORELAY_REFERER') or None
AUDIORELAY_ORIGIN = os.environ.get('AUDIORELAY_ORIGIN') or None
AUDIORELAY_HOST_HEADER = os.environ.get('AUDIORELAY_HOST_HEADER') or None
AUDIORELAY_EXTRA_HEADERS = _env_json_object('AUDIORELAY_EXTRA_HEADERS')

# Anonymous file host
AUDIORELAY_UPLOAD_URL = os.environ.get('AUDIORELAY_UPLOAD_URL', 'https://catbox.moe/user/api.php')
AUDIORELAY_UPLOAD_TIMEOUT = _env_float('AUDIORELAY_UPLOAD_TIMEOUT', 60.0)

# Optional deadlines; unset means wait indefinitely
AUDIORELAY_FETCH_TIMEOUT = _env_float('AUDIORELAY_FETCH_TIMEOUT')
AUDIORELAY_TRANSCODE_TIMEOUT = _env_float('AUDIORELAY_TRANSCODE_TIMEOUT')

# Proxy for yt-dlp extraction (needed for cloud VMs where YouTube blocks requests)
AUDIORELAY_YTDLP_PROXY = os.environ.get('AUDIORELAY_YTDLP_PROXY') or None

# Append job log lines to this file in addition to stdout
AUDIORELAY_LOG_FILE = os.environ.get('AUDIORELAY_LOG_FILE') or None
