"""
Template Render Service
=======================

An HTTP service that renders named HTML templates into PNG stills and
short composited MP4 clips.

This package provides:
- FastAPI REST endpoints for PNG and video rendering
- Browser automation with Playwright for template capture
- ffmpeg-driven composition of transparent overlays on background video
"""

__version__ = "1.0.0"
__author__ = "Template Render Service Team"
