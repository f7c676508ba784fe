"""
Transient file tracking for a single job.

Paths are registered before anything is written to them and released together
when the job's scope ends, however it ends.
"""

from pathlib import Path


class TransientFiles:
    """
    Scoped set of per-job files.

    Usage:
        with TransientFiles(logger=log) as scratch:
            input_path = scratch.register(scratch_dir / f'{job_id}_input')
            ...
    """

    def __init__(self, logger=None):
        self.logger = logger
        self._paths = []
        self._released = False

    def log(self, message):
        if self.logger:
            self.logger(message)

    @property
    def paths(self):
        return list(self._paths)

    def register(self, path):
        """Track path for removal and return it."""
        path = Path(path)
        if path not in self._paths:
            self._paths.append(path)
        return path

    def release(self):
        """
        Remove every registered path that exists.

        Runs once; later calls do nothing. Removal errors are logged and
        never raised.

        Returns:
            list: Paths that were removed
        """
        if self._released:
            return []
        self._released = True

        removed = []
        for path in self._paths:
            try:
                if path.exists():
                    path.unlink()
                    removed.append(path)
            except OSError as e:
                self.log(f'Failed to remove {path}: {e}')
        if removed:
            self.log(f'Removed {len(removed)} transient file(s)')
        return removed

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, tb):
        self.release()
        return False
