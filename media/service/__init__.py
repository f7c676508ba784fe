"""
Service layer for media conversion.

This module contains the pipeline that acquires, transcodes and publishes
media, independent of the HTTP layer. These functions are used by:
- The web endpoint (media/views.py)
- The CLI management command (management/commands/convert.py)
"""
