"""
Tests for service/download.py
"""

import tempfile
from pathlib import Path
from unittest.mock import MagicMock, patch

import requests
from django.test import SimpleTestCase
from yt_dlp.utils import DownloadError

from media.service.config import FetchOptions
from media.service.download import (
    ACQUIRERS,
    AcquiredMedia,
    BufferedFetch,
    LiveExtraction,
    StreamedFetch,
    acquire,
)
from media.service.errors import AcquisitionFailure, InvalidRequest


def make_response(content=b'', status_code=200, headers=None, chunks=None):
    """Build a fake requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.content = content
    response.headers = headers if headers is not None else {'content-type': 'audio/mpeg'}
    response.iter_content.return_value = chunks if chunks is not None else [content]
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(
            f'{status_code} Client Error: Not Found for url: https://example.com/missing.mp3'
        )
    return response


class AcquiredMediaTest(SimpleTestCase):
    """Tests for the acquisition handle"""

    def test_file_handle(self):
        media = AcquiredMedia(strategy='buffered', path=Path('/tmp/x_input.mp3'), file_size=2048)
        self.assertFalse(media.is_stream)
        media.close()

    def test_stream_handle_close(self):
        response = MagicMock()
        media = AcquiredMedia(strategy='live', stream=iter([b'a']), response=response)
        self.assertTrue(media.is_stream)
        media.close()
        media.close()
        response.close.assert_called_once()


class BufferedFetchTest(SimpleTestCase):
    """Tests for buffered downloads"""

    @patch('media.service.download.requests.get')
    def test_buffered_success(self, mock_get):
        """Test the body is written to the input path"""
        mock_get.return_value = make_response(b'x' * 2048)

        with tempfile.TemporaryDirectory() as temp_dir:
            input_path = Path(temp_dir) / 'job_input.mp3'
            result = BufferedFetch().acquire(
                'https://example.com/audio.mp3', input_path, FetchOptions(user_agent='UA')
            )

            self.assertEqual(result.path, input_path)
            self.assertEqual(result.file_size, 2048)
            self.assertEqual(input_path.read_bytes(), b'x' * 2048)
            self.assertEqual(result.mime_type, 'audio/mpeg')
            self.assertEqual(result.strategy, 'buffered')

        headers = mock_get.call_args.kwargs['headers']
        self.assertEqual(headers['User-Agent'], 'UA')
        self.assertNotIn('stream', mock_get.call_args.kwargs)

    @patch('media.service.download.requests.get')
    def test_buffered_http_404(self, mock_get):
        """Test non-success statuses are acquisition failures"""
        mock_get.return_value = make_response(status_code=404)

        with tempfile.TemporaryDirectory() as temp_dir:
            input_path = Path(temp_dir) / 'job_input.mp3'
            with self.assertRaises(AcquisitionFailure) as ctx:
                BufferedFetch().acquire('https://example.com/missing.mp3', input_path, FetchOptions())

            self.assertIn('404', str(ctx.exception))
            self.assertFalse(input_path.exists())

    @patch('media.service.download.requests.get')
    def test_buffered_connection_error(self, mock_get):
        """Test transport errors are acquisition failures"""
        mock_get.side_effect = requests.ConnectionError('Connection refused')

        with tempfile.TemporaryDirectory() as temp_dir:
            with self.assertRaises(AcquisitionFailure) as ctx:
                BufferedFetch().acquire(
                    'https://example.com/a.mp3', Path(temp_dir) / 'in', FetchOptions()
                )
            self.assertIn('Connection refused', str(ctx.exception))

    @patch('media.service.download.requests.get')
    def test_buffered_truncated_body(self, mock_get):
        """Test a body shorter than Content-Length is rejected"""
        mock_get.return_value = make_response(
            b'x' * 100, headers={'content-length': '5000'}
        )

        with tempfile.TemporaryDirectory() as temp_dir:
            with self.assertRaises(AcquisitionFailure) as ctx:
                BufferedFetch().acquire(
                    'https://example.com/a.mp3', Path(temp_dir) / 'in', FetchOptions()
                )
            self.assertIn('prematurely', str(ctx.exception))

    @patch('media.service.download.requests.get')
    def test_buffered_with_logger(self, mock_get):
        """Test buffered download with logger callback"""
        mock_get.return_value = make_response(b'data')
        logs = []

        with tempfile.TemporaryDirectory() as temp_dir:
            BufferedFetch().acquire(
                'https://example.com/a.mp3', Path(temp_dir) / 'in', FetchOptions(), logger=logs.append
            )

        self.assertTrue(any('Downloading' in log for log in logs))


class StreamedFetchTest(SimpleTestCase):
    """Tests for streamed downloads"""

    @patch('media.service.download.requests.get')
    def test_streamed_success(self, mock_get):
        """Test chunks are written as they arrive"""
        response = make_response(chunks=[b'a' * 1000, b'b' * 1000, b'c' * 500])
        mock_get.return_value = response

        with tempfile.TemporaryDirectory() as temp_dir:
            input_path = Path(temp_dir) / 'job_input'
            result = StreamedFetch().acquire('https://example.com/a.mp3', input_path, FetchOptions())

            self.assertEqual(result.file_size, 2500)
            self.assertEqual(input_path.read_bytes(), b'a' * 1000 + b'b' * 1000 + b'c' * 500)

        self.assertTrue(mock_get.call_args.kwargs['stream'])
        response.close.assert_called_once()

    @patch('media.service.download.requests.get')
    def test_streamed_http_error(self, mock_get):
        """Test non-success statuses are acquisition failures"""
        response = make_response(status_code=404)
        mock_get.return_value = response

        with tempfile.TemporaryDirectory() as temp_dir:
            with self.assertRaises(AcquisitionFailure) as ctx:
                StreamedFetch().acquire(
                    'https://example.com/missing.mp3', Path(temp_dir) / 'in', FetchOptions()
                )
            self.assertIn('404', str(ctx.exception))
        response.close.assert_called_once()

    @patch('media.service.download.requests.get')
    def test_streamed_premature_end(self, mock_get):
        """Test a broken transfer mid-body"""
        def broken_body(chunk_size):
            yield b'a' * 1000
            raise requests.exceptions.ChunkedEncodingError('Connection broken')

        response = make_response()
        response.iter_content.side_effect = broken_body
        mock_get.return_value = response

        with tempfile.TemporaryDirectory() as temp_dir:
            with self.assertRaises(AcquisitionFailure) as ctx:
                StreamedFetch().acquire('https://example.com/a.mp3', Path(temp_dir) / 'in', FetchOptions())
            self.assertIn('prematurely', str(ctx.exception))

    @patch('media.service.download.requests.get')
    def test_streamed_short_content_length(self, mock_get):
        """Test fewer bytes than declared"""
        mock_get.return_value = make_response(
            headers={'content-length': '4096'}, chunks=[b'a' * 1024]
        )

        with tempfile.TemporaryDirectory() as temp_dir:
            with self.assertRaises(AcquisitionFailure):
                StreamedFetch().acquire('https://example.com/a.mp3', Path(temp_dir) / 'in', FetchOptions())

    @patch('media.service.download.requests.get')
    def test_streamed_ignores_length_for_encoded_body(self, mock_get):
        """Test Content-Length is not compared against a decoded body"""
        mock_get.return_value = make_response(
            headers={'content-length': '10', 'content-encoding': 'gzip'}, chunks=[b'a' * 2048]
        )

        with tempfile.TemporaryDirectory() as temp_dir:
            result = StreamedFetch().acquire(
                'https://example.com/a.mp3', Path(temp_dir) / 'in', FetchOptions()
            )
            self.assertEqual(result.file_size, 2048)


class LiveExtractionTest(SimpleTestCase):
    """Tests for live extraction through yt-dlp"""

    def _mock_ydl(self, mock_ytdlp_class, info=None, error=None):
        mock_ydl = MagicMock()
        if error is not None:
            mock_ydl.extract_info.side_effect = error
        else:
            mock_ydl.extract_info.return_value = info
        mock_ytdlp_class.return_value.__enter__.return_value = mock_ydl
        return mock_ydl

    @patch('media.service.download.requests.get')
    @patch('media.service.download.yt_dlp.YoutubeDL')
    def test_live_opens_stream(self, mock_ytdlp_class, mock_get):
        """Test the resolved media URL is streamed without a file"""
        mock_ydl = self._mock_ydl(mock_ytdlp_class, info={
            'title': 'Talk',
            'url': 'https://cdn.example.com/audio.webm',
            'http_headers': {'User-Agent': 'yt-dlp-UA'},
            'format_id': '251',
            'ext': 'webm',
            'acodec': 'opus',
        })
        response = make_response(chunks=[b'one', b'', b'two'])
        mock_get.return_value = response

        media = LiveExtraction().acquire(
            'https://www.youtube.com/watch?v=abc', None, FetchOptions(referer='https://ref/')
        )

        self.assertTrue(media.is_stream)
        self.assertIsNone(media.path)
        self.assertEqual(media.title, 'Talk')
        self.assertEqual(list(media.stream), [b'one', b'two'])

        mock_ydl.extract_info.assert_called_once_with('https://www.youtube.com/watch?v=abc', download=False)
        self.assertEqual(mock_get.call_args.args[0], 'https://cdn.example.com/audio.webm')
        headers = mock_get.call_args.kwargs['headers']
        self.assertEqual(headers['User-Agent'], 'yt-dlp-UA')
        self.assertEqual(headers['Referer'], 'https://ref/')

        ydl_opts = mock_ytdlp_class.call_args.args[0]
        self.assertTrue(ydl_opts['noplaylist'])
        self.assertEqual(ydl_opts['http_headers']['Referer'], 'https://ref/')

        media.close()
        response.close.assert_called_once()

    @patch('media.service.download.yt_dlp.YoutubeDL')
    def test_live_unsupported_source(self, mock_ytdlp_class):
        """Test yt-dlp errors are acquisition failures"""
        self._mock_ydl(mock_ytdlp_class, error=DownloadError('Unsupported URL: https://example.com/'))

        with self.assertRaises(AcquisitionFailure) as ctx:
            LiveExtraction().acquire('https://example.com/', None, FetchOptions())
        self.assertIn('Unsupported', str(ctx.exception))

    @patch('media.service.download.yt_dlp.YoutubeDL')
    def test_live_rejects_playlist(self, mock_ytdlp_class):
        """Test playlist pages are rejected"""
        self._mock_ydl(mock_ytdlp_class, info={'title': 'List', 'entries': [{}, {}]})

        with self.assertRaises(AcquisitionFailure) as ctx:
            LiveExtraction().acquire('https://www.youtube.com/playlist?list=x', None, FetchOptions())
        self.assertIn('Playlist', str(ctx.exception))

    @patch('media.service.download.yt_dlp.YoutubeDL')
    def test_live_no_stream_url(self, mock_ytdlp_class):
        """Test info without a direct URL"""
        self._mock_ydl(mock_ytdlp_class, info={'title': 'Talk'})

        with self.assertRaises(AcquisitionFailure):
            LiveExtraction().acquire('https://www.youtube.com/watch?v=abc', None, FetchOptions())

    @patch('media.service.download.requests.get')
    @patch('media.service.download.yt_dlp.YoutubeDL')
    def test_live_error_status_closes_response(self, mock_ytdlp_class, mock_get):
        """Test a rejected media URL releases its connection"""
        self._mock_ydl(mock_ytdlp_class, info={'url': 'https://cdn.example.com/a'})
        response = make_response(status_code=403)
        mock_get.return_value = response

        with self.assertRaises(AcquisitionFailure) as ctx:
            LiveExtraction().acquire('https://www.youtube.com/watch?v=abc', None, FetchOptions())

        self.assertIn('403', str(ctx.exception))
        response.close.assert_called_once()

    @patch('media.service.download.requests.get')
    @patch('media.service.download.yt_dlp.YoutubeDL')
    def test_live_connection_error(self, mock_ytdlp_class, mock_get):
        self._mock_ydl(mock_ytdlp_class, info={'url': 'https://cdn.example.com/a'})
        mock_get.side_effect = requests.ConnectionError('Connection refused')

        with self.assertRaises(AcquisitionFailure) as ctx:
            LiveExtraction().acquire('https://www.youtube.com/watch?v=abc', None, FetchOptions())

        self.assertIn('Connection refused', str(ctx.exception))

    @patch('media.service.download.requests.get')
    @patch('media.service.download.yt_dlp.YoutubeDL')
    def test_live_stream_breaks(self, mock_ytdlp_class, mock_get):
        """Test a broken stream surfaces as an acquisition failure while reading"""
        self._mock_ydl(mock_ytdlp_class, info={'url': 'https://cdn.example.com/a'})

        def broken_body(chunk_size):
            yield b'a'
            raise requests.exceptions.ChunkedEncodingError('Connection broken')

        response = make_response()
        response.iter_content.side_effect = broken_body
        mock_get.return_value = response

        media = LiveExtraction().acquire('https://www.youtube.com/watch?v=abc', None, FetchOptions())
        stream = iter(media.stream)
        self.assertEqual(next(stream), b'a')
        with self.assertRaises(AcquisitionFailure):
            next(stream)


class AcquireDispatchTest(SimpleTestCase):
    """Tests for the acquire() entrypoint"""

    def test_registry(self):
        self.assertEqual(set(ACQUIRERS), {'buffered', 'streamed', 'live'})
        for name, acquirer in ACQUIRERS.items():
            self.assertEqual(acquirer.name, name)

    def test_unknown_strategy(self):
        with self.assertRaises(InvalidRequest):
            acquire('https://example.com/a.mp3', 'torrent')

    @patch('media.service.download.requests.get')
    def test_dispatch_uses_settings_options(self, mock_get):
        """Test default options come from settings"""
        mock_get.return_value = make_response(b'x' * 10)

        with tempfile.TemporaryDirectory() as temp_dir:
            acquire('https://example.com/a.mp3', 'buffered', input_path=Path(temp_dir) / 'in')

        headers = mock_get.call_args.kwargs['headers']
        self.assertIn('Mozilla', headers['User-Agent'])
