import os
from datetime import datetime

from nanoid import generate

JOB_ID_ALPHABET = 'ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789'

# 62**22 is about 2**131
JOB_ID_SIZE = 22


def generate_job_id():
    """Generate a NanoID job identity with A-Z a-z 0-9 alphabet"""
    return generate(JOB_ID_ALPHABET, size=JOB_ID_SIZE)


def write_log(log_path, message):
    """Append message to log file"""
    if log_path:
        os.makedirs(os.path.dirname(os.path.abspath(log_path)), exist_ok=True)
        with open(log_path, 'a') as f:
            timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
            f.write(f'[{timestamp}] {message}\n')


def make_job_logger(job_id, log_path=None, echo=True):
    """
    Build a logger callable that tags every line with the job id.

    Args:
        job_id: Job identity to prefix
        log_path: Optional file to append lines to
        echo: Print lines to stdout

    Returns:
        callable(str)
    """
    def logger(message):
        line = f'[{job_id}] {message}'
        if echo:
            timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
            print(f'[{timestamp}] {line}', flush=True)
        write_log(log_path, line)

    return logger
