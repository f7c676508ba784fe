"""
Publishing service.

Uploads a transcoded file to the anonymous file host and returns its public URL.
"""

from pathlib import Path
from urllib.parse import urlparse

import requests

from media.service.config import get_upload_timeout, get_upload_url
from media.service.errors import PublishFailure


def is_public_url(text):
    """Return True if text is an absolute http(s) URL with a host."""
    parsed = urlparse(text)
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc) and ' ' not in text


def upload_to_file_host(file_path, logger=None):
    """
    Upload a file with a multipart form post.

    The host answers with the public URL as a bare text body.

    Args:
        file_path: Local file to upload
        logger: Optional callable(str) for logging

    Returns:
        str: Public URL of the uploaded file

    Raises:
        PublishFailure: On transport errors, timeouts, non-2xx statuses or non-URL bodies
    """
    def log(message):
        if logger:
            logger(message)

    file_path = Path(file_path)
    upload_url = get_upload_url()

    log(f'Uploading {file_path.name} ({file_path.stat().st_size} bytes) to {upload_url}')

    try:
        with open(file_path, 'rb') as f:
            response = requests.post(
                upload_url,
                data={'reqtype': 'fileupload'},
                files={'fileToUpload': (file_path.name, f)},
                timeout=get_upload_timeout(),
            )
    except requests.RequestException as e:
        log(f'File host unreachable: {e}')
        raise PublishFailure(f'Could not reach the file host: {e}') from e

    body = (response.text or '').strip()

    if not 200 <= response.status_code < 300:
        log(f'File host rejected upload: HTTP {response.status_code}: {body[:200]}')
        raise PublishFailure(f'File host returned HTTP {response.status_code}')

    if not is_public_url(body):
        log(f'File host returned an unexpected response: {body[:200]}')
        raise PublishFailure('File host response was not a URL')

    log(f'Uploaded: {body}')
    return body
