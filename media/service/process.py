"""
Transcoding service.

Runs ffmpeg against a local file or a live byte stream and produces the
normalized audio file.
"""

import os
import subprocess
import threading
from dataclasses import dataclass
from pathlib import Path

from media.service.config import get_ffmpeg_binary, get_transcode_timeout
from media.service.errors import PipelineError, TranscodeFailure

STDIN_INPUT = 'pipe:0'


@dataclass
class ProcessedFileInfo:
    """Information about a transcoded file"""
    path: Path
    file_size: int
    extension: str


def partial_path_for(output_path):
    """Path ffmpeg writes to before the result is moved into place."""
    output_path = Path(output_path)
    return output_path.with_name(output_path.name + '.part')


def build_ffmpeg_command(input_ref, output_path, spec):
    """
    Build the ffmpeg command line.

    Args:
        input_ref: Input file path, or 'pipe:0' for stdin
        output_path: Path ffmpeg writes to
        spec: TranscodeSpec

    Returns:
        list: argv
    """
    cmd = [get_ffmpeg_binary(), '-hide_banner', '-y']
    if input_ref != STDIN_INPUT:
        cmd.append('-nostdin')
    # Don't trust the file name when the caller knows better
    if spec.input_format:
        cmd.extend(['-f', spec.input_format])
    cmd.extend(['-i', str(input_ref)])
    cmd.extend(spec.output_args())
    cmd.append(str(output_path))
    return cmd


def _stderr_tail(stderr, lines=5):
    if not stderr:
        return ''
    if isinstance(stderr, bytes):
        stderr = stderr.decode('utf-8', errors='replace')
    return '\n'.join(stderr.strip().splitlines()[-lines:])


def _run_on_file(cmd, log):
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            # Tag metadata in ffmpeg's log is not always valid UTF-8
            errors='replace',
            timeout=get_transcode_timeout(),
        )
    except FileNotFoundError as e:
        raise TranscodeFailure(f'ffmpeg could not be started: {e}') from e
    except subprocess.TimeoutExpired as e:
        raise TranscodeFailure(f'ffmpeg timed out after {e.timeout} seconds') from e
    return result.returncode, result.stderr


def _run_on_stream(cmd, stream, log):
    try:
        proc = subprocess.Popen(
            cmd,
            stdin=subprocess.PIPE,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise TranscodeFailure(f'ffmpeg could not be started: {e}') from e

    stderr_chunks = []

    # ffmpeg blocks if nobody drains stderr while we fill stdin
    def _read_stderr():
        for line in iter(proc.stderr.readline, b''):
            stderr_chunks.append(line)
        proc.stderr.close()

    reader = threading.Thread(target=_read_stderr, name='ffmpeg-stderr-reader', daemon=True)
    reader.start()

    # Deadline covers feeding stdin as well as the final wait
    timeout = get_transcode_timeout()
    timed_out = threading.Event()

    def _kill_on_deadline():
        timed_out.set()
        proc.kill()

    deadline = None
    if timeout:
        deadline = threading.Timer(timeout, _kill_on_deadline)
        deadline.daemon = True
        deadline.start()

    fed = 0
    try:
        try:
            for chunk in stream:
                proc.stdin.write(chunk)
                fed += len(chunk)
        except BrokenPipeError:
            log('ffmpeg closed its input early')
        finally:
            try:
                proc.stdin.close()
            except BrokenPipeError:
                pass
        log(f'Fed {fed} bytes to ffmpeg')
        returncode = proc.wait()
        if timed_out.is_set():
            raise TranscodeFailure(f'ffmpeg timed out after {timeout} seconds')
    except BaseException:
        if proc.poll() is None:
            proc.kill()
            proc.wait()
        raise
    finally:
        if deadline is not None:
            deadline.cancel()
        reader.join(timeout=5)

    return returncode, b''.join(stderr_chunks)


def transcode_to_m4a(media, output_path, spec, logger=None):
    """
    Transcode acquired media into the deployment's audio format.

    The output is written to a .part sibling and moved onto output_path only
    after ffmpeg reports success, so output_path is either complete or absent.

    Args:
        media: AcquiredMedia (local file or live stream)
        output_path: Final output path
        spec: TranscodeSpec
        logger: Optional callable(str) for logging

    Returns:
        ProcessedFileInfo

    Raises:
        TranscodeFailure: If ffmpeg cannot start, fails, times out or writes nothing
    """
    def log(message):
        if logger:
            logger(message)

    output_path = Path(output_path)
    partial_path = partial_path_for(output_path)

    input_ref = STDIN_INPUT if media.is_stream else media.path
    cmd = build_ffmpeg_command(input_ref, partial_path, spec)

    log(f'Transcoding {"live stream" if media.is_stream else input_ref} to {output_path}')
    log(f'Running: {" ".join(cmd)}')

    try:
        if media.is_stream:
            returncode, stderr = _run_on_stream(cmd, media.stream, log)
        else:
            returncode, stderr = _run_on_file(cmd, log)

        if returncode != 0:
            log(f'ffmpeg stderr: {stderr}')
            message = f'ffmpeg failed with code {returncode}'
            tail = _stderr_tail(stderr)
            if tail:
                message = f'{message}: {tail}'
            raise TranscodeFailure(message)

        if not partial_path.exists() or partial_path.stat().st_size == 0:
            raise TranscodeFailure('ffmpeg exited cleanly but produced no output')

        os.replace(partial_path, output_path)
    except PipelineError:
        partial_path.unlink(missing_ok=True)
        raise

    file_size = output_path.stat().st_size
    log(f'Transcoding complete: {file_size} bytes')

    return ProcessedFileInfo(
        path=output_path,
        file_size=file_size,
        extension=output_path.suffix,
    )
