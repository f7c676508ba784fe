from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from media.service.errors import PipelineError
from media.service.transcode_service import run_job


@require_http_methods(['GET'])
def convert_view(request):
    """
    Public endpoint to convert a media URL to M4A and publish it.

    Params:
        url (required): Source media URL
        strategy (optional): buffered|streamed|live|auto (default from settings)

    Returns:
        JSON response with the public URL of the converted file
    """
    url = request.GET.get('url')
    strategy = request.GET.get('strategy') or None

    if not url:
        return JsonResponse(
            {'status': 'error', 'message': 'Missing required parameter: url'}, status=400
        )

    try:
        artifact = run_job(url, strategy=strategy)
    except PipelineError as e:
        # InvalidRequest renders as a 400, stage failures as a 500
        return JsonResponse(e.to_dict(), status=e.status_code)
    except Exception as e:
        # Traceback is logged by the job; only the message goes back
        return JsonResponse(
            {
                'status': 'error',
                'message': PipelineError.message,
                'details': str(e),
                'error_type': type(e).__name__,
            },
            status=500,
        )

    return JsonResponse(
        {
            'status': 'success',
            'message': 'Audio converted successfully.',
            'result': {
                'original_url': artifact.original_url,
                'converted_url': artifact.url,
            },
        }
    )
