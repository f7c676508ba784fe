"""
Pipeline error taxonomy.

Every stage failure is raised as a PipelineError subclass. The class carries a
human-readable message for the client; str(error) is the underlying detail.
"""


class PipelineError(Exception):
    """Base class for failures that abort a job"""

    message = 'An error occurred while processing the audio.'
    status_code = 500

    def __init__(self, details, job_id=None):
        super().__init__(details)
        self.details = str(details)
        self.job_id = job_id

    @property
    def error_type(self):
        return type(self).__name__

    def to_dict(self):
        """Render the JSON body returned to the client."""
        return {
            'status': 'error',
            'message': self.message,
            'details': self.details,
            'error_type': self.error_type,
        }


class AcquisitionFailure(PipelineError):
    """Fetching the source failed (transport, HTTP status, truncated body, bad locator)"""

    message = 'Could not download the source media.'


class InvalidSourceContent(PipelineError):
    """The acquired payload is too small to be real media"""

    message = 'The source did not return valid media content.'


class TranscodeFailure(PipelineError):
    """ffmpeg failed to start, reported an error, or produced nothing"""

    message = 'Could not convert the audio.'


class PublishFailure(PipelineError):
    """The file host was unreachable or returned something other than a URL"""

    message = 'Could not upload the converted audio.'


class InvalidRequest(PipelineError):
    """Missing or malformed request parameters"""

    message = 'Invalid request.'
    status_code = 400

    def to_dict(self):
        return {'status': 'error', 'message': self.details}
