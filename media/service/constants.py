"""
Media format and pipeline constants.

Centralized definitions of file extensions and acquisition strategies.
"""

# All supported media file extensions
MEDIA_EXTENSIONS = [
    '.mp3',
    '.m4a',
    '.mp4',
    '.webm',
    '.ogg',
    '.oga',
    '.wav',
    '.aac',
    '.flac',
    '.opus',
    '.mkv',
    '.avi',
    '.mov',
]

# Acquisition strategies
STRATEGY_BUFFERED = 'buffered'
STRATEGY_STREAMED = 'streamed'
STRATEGY_LIVE = 'live'
STRATEGY_AUTO = 'auto'

ACQUIRE_STRATEGIES = [STRATEGY_BUFFERED, STRATEGY_STREAMED, STRATEGY_LIVE]

# Chunk size for streamed reads
CHUNK_SIZE = 64 * 1024
