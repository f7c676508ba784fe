"""
Main transcode service entrypoint.

Provides a single function to turn a source URL into a published audio file,
used by both the CLI and the web endpoint.
"""
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from media.service.config import (
    get_acquire_strategy,
    get_log_file,
    get_min_source_bytes,
    get_scratch_dir,
    get_transcode_spec,
)
from media.service.constants import STRATEGY_LIVE
from media.service.download import acquire
from media.service.errors import InvalidRequest, InvalidSourceContent, PipelineError
from media.service.process import partial_path_for, transcode_to_m4a
from media.service.scratch import TransientFiles
from media.service.strategy import (
    choose_acquire_strategy,
    get_media_extension,
    is_valid_source_url,
)
from media.service.upload import upload_to_file_host
from media.utils import generate_job_id, make_job_logger


@dataclass
class Job:
    """One source URL on its way to a published artifact"""

    STATE_CREATED = 'CREATED'
    STATE_ACQUIRING = 'ACQUIRING'
    STATE_VALIDATING = 'VALIDATING'
    STATE_TRANSCODING = 'TRANSCODING'
    STATE_PUBLISHING = 'PUBLISHING'
    STATE_SUCCEEDED = 'SUCCEEDED'
    STATE_FAILED = 'FAILED'

    job_id: str
    source_url: str
    strategy: str
    output_path: Path
    input_path: Optional[Path] = None
    state: str = STATE_CREATED

    @property
    def transient_paths(self):
        """Every local path this job may create."""
        paths = [partial_path_for(self.output_path), self.output_path]
        if self.input_path is not None:
            paths.insert(0, self.input_path)
        return paths


@dataclass(frozen=True)
class RemoteArtifact:
    """Result of a successful job"""
    url: str
    job_id: str
    original_url: str


def create_job(source_url, strategy, scratch_dir, spec):
    """
    Create a job with a fresh identity and its derived transient paths.

    Live extraction never writes an input file, so it gets no input path.
    """
    job_id = generate_job_id()
    scratch_dir = Path(scratch_dir)

    input_path = None
    if strategy != STRATEGY_LIVE:
        input_path = scratch_dir / f'{job_id}_input{get_media_extension(source_url)}'

    return Job(
        job_id=job_id,
        source_url=source_url,
        strategy=strategy,
        input_path=input_path,
        output_path=scratch_dir / f'{job_id}_output{spec.extension}',
    )


def validate_source(media, min_bytes):
    """
    Reject payloads too small to be real media (empty bodies, error pages).

    Raises:
        InvalidSourceContent
    """
    if media.file_size is None or media.file_size < min_bytes:
        raise InvalidSourceContent(
            f'Source returned {media.file_size or 0} bytes, expected at least {min_bytes}'
        )


def run_job(source_url, strategy=None, options=None, logger=None):
    """
    Acquire, validate, transcode and publish one source URL.

    Each stage runs at most once and any failure aborts the job. Every
    transient file is removed before this returns or raises.

    Args:
        source_url: Source media URL
        strategy: 'buffered', 'streamed', 'live' or 'auto' (default: from settings)
        options: FetchOptions (default: from settings)
        logger: Optional callable(str) for logging (default: job logger on stdout)

    Returns:
        RemoteArtifact

    Raises:
        InvalidRequest: If the URL or strategy is invalid (no job is created)
        PipelineError: Subclass describing the failed stage
    """
    if not is_valid_source_url(source_url):
        raise InvalidRequest(f'Invalid url parameter: {source_url!r}. Must be an http(s) URL')

    strategy = choose_acquire_strategy(source_url, strategy or get_acquire_strategy())
    spec = get_transcode_spec()
    job = create_job(source_url, strategy, get_scratch_dir(), spec)

    log = logger or make_job_logger(job.job_id, get_log_file())

    log(f'Processing URL: {source_url}')
    log(f'Strategy: {strategy}')

    media = None
    with TransientFiles(logger=log) as scratch:
        for path in job.transient_paths:
            scratch.register(path)

        try:
            job.state = Job.STATE_ACQUIRING
            log('Stage 1: acquiring source')
            media = acquire(
                source_url, strategy, input_path=job.input_path, options=options, logger=log
            )
            log(f'Acquired {media.mime_type or "unknown content type"}')

            job.state = Job.STATE_VALIDATING
            if not media.is_stream:
                validate_source(media, get_min_source_bytes())

            job.state = Job.STATE_TRANSCODING
            log('Stage 2: transcoding')
            processed = transcode_to_m4a(media, job.output_path, spec, logger=log)
            media.close()
            log(f'Output: {processed.path.name} ({processed.file_size} bytes)')

            job.state = Job.STATE_PUBLISHING
            log('Stage 3: publishing')
            public_url = upload_to_file_host(processed.path, logger=log)

        except PipelineError as e:
            job.state = Job.STATE_FAILED
            e.job_id = job.job_id
            log(f'FAILED ({e.error_type}): {e}')
            raise
        except BaseException:
            job.state = Job.STATE_FAILED
            log(f'FAILED unexpectedly:\n{traceback.format_exc()}')
            raise
        finally:
            if media is not None:
                media.close()
            log('Cleaning up transient files')

        job.state = Job.STATE_SUCCEEDED

    log(f'Complete! URL: {public_url}')

    return RemoteArtifact(url=public_url, job_id=job.job_id, original_url=source_url)
