"""
Management command to clean up abandoned job files.

Finds and removes {job_id}_input* / {job_id}_output* files left in the
scratch directory by processes that were killed before they could clean up.
"""
import re
import time

from django.core.management.base import BaseCommand

from media.service.config import get_scratch_dir

JOB_FILE_RE = re.compile(r'^[A-Za-z0-9]{22}_(input|output)(\.[A-Za-z0-9]+)*$')


def find_job_files(scratch_dir, max_age_minutes, now=None):
    """
    List job files older than max_age_minutes.

    Returns:
        list: (path, age_seconds) tuples
    """
    now = now if now is not None else time.time()
    found = []
    if not scratch_dir.exists():
        return found
    for path in scratch_dir.iterdir():
        if not path.is_file() or not JOB_FILE_RE.match(path.name):
            continue
        age = now - path.stat().st_mtime
        if age > max_age_minutes * 60:
            found.append((path, age))
    return sorted(found)


class Command(BaseCommand):
    help = 'Clean up abandoned job files from the scratch directory'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be deleted without actually deleting'
        )
        parser.add_argument(
            '--force',
            action='store_true',
            help='Delete files without confirmation'
        )
        parser.add_argument(
            '--max-age',
            type=int,
            default=60,
            help='Maximum age in minutes before considering a job file abandoned (default: 60)'
        )

    def handle(self, *args, **options):
        """Find and clean up abandoned job files"""
        dry_run = options['dry_run']
        force = options['force']
        max_age_minutes = options['max_age']

        scratch_dir = get_scratch_dir()
        old_files = find_job_files(scratch_dir, max_age_minutes)

        if not old_files:
            self.stdout.write(self.style.SUCCESS(
                f"No job files older than {max_age_minutes} minutes in {scratch_dir}"
            ))
            return

        plural = 's' if len(old_files) != 1 else ''
        self.stdout.write(f"\nFound {len(old_files)} abandoned job file{plural}:")
        self.stdout.write(f"{'=' * 80}")

        total_size = 0
        for path, age in old_files:
            size = path.stat().st_size
            total_size += size
            self.stdout.write(
                f"{path.name:50} | Age: {int(age // 60):6} min | Size: {size / (1024 * 1024):6.1f} MB"
            )

        self.stdout.write(f"{'=' * 80}")
        self.stdout.write(f"Total size: {total_size / (1024 * 1024):.1f} MB\n")

        if dry_run:
            self.stdout.write(self.style.WARNING(
                f"\nDRY RUN: Would delete {len(old_files)} file{plural}"
            ))
            self.stdout.write("Run without --dry-run to actually delete")
            return

        if not force:
            response = input(f"\nDelete these {len(old_files)} file{plural}? [y/N]: ")
            if response.lower() != 'y':
                self.stdout.write("Cancelled")
                return

        deleted_count = 0
        for path, _ in old_files:
            try:
                path.unlink()
                self.stdout.write(self.style.SUCCESS(f"✓ Deleted: {path.name}"))
                deleted_count += 1
            except OSError as e:
                self.stdout.write(self.style.ERROR(f"✗ Failed to delete {path.name}: {e}"))

        self.stdout.write(self.style.SUCCESS(
            f"\n✓ Deleted {deleted_count} of {len(old_files)} file{plural}"
        ))
