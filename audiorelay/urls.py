"""
URL configuration for the audiorelay project.

A single public endpoint: GET /?url=<source media URL>
"""

from django.urls import path

from media.views import convert_view

urlpatterns = [
    path('', convert_view, name='convert'),
]
