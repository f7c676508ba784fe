"""
Django management command for converting a media URL.

This is a thin CLI wrapper around the transcode_service.
"""
import json
import sys

from django.core.management.base import BaseCommand, CommandError

from media.service.constants import ACQUIRE_STRATEGIES, STRATEGY_AUTO
from media.service.errors import PipelineError
from media.service.transcode_service import run_job


class Command(BaseCommand):
    help = 'Download, convert to M4A and publish media from a URL'

    def add_arguments(self, parser):
        parser.add_argument(
            'url',
            type=str,
            help='Source media URL'
        )
        parser.add_argument(
            '--strategy',
            type=str,
            default=None,
            choices=ACQUIRE_STRATEGIES + [STRATEGY_AUTO],
            help='Acquisition strategy (default: AUDIORELAY_ACQUIRE_STRATEGY)'
        )
        parser.add_argument(
            '--verbose',
            action='store_true',
            help='Enable verbose output'
        )
        parser.add_argument(
            '--json',
            action='store_true',
            help='Output result as JSON'
        )

    def handle(self, *args, **options):
        url = options['url']
        strategy = options['strategy']
        verbose = options['verbose']
        output_json = options['json']

        def logger(message):
            if verbose:
                self.stderr.write(message)

        try:
            artifact = run_job(url, strategy=strategy, logger=logger)
        except PipelineError as e:
            if output_json:
                error_output = {'success': False, 'job_id': e.job_id, **e.to_dict()}
                self.stdout.write(json.dumps(error_output, indent=2))
                sys.exit(1)
            raise CommandError(f'{e.message} {e}')

        if output_json:
            output = {
                'success': True,
                'job_id': artifact.job_id,
                'original_url': artifact.original_url,
                'converted_url': artifact.url,
            }
            self.stdout.write(json.dumps(output, indent=2))
        else:
            self.stdout.write(self.style.SUCCESS('✓ Conversion complete'))
            self.stdout.write(artifact.url)
