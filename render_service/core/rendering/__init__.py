"""
Rendering Module
===============

Template capture with browser automation and video composition.

Components:
- browser: Process-wide shared Chromium instance
- readiness: Polling primitive for page readiness signals
- page_renderer: Template to PNG capture
- filter_graph: ffmpeg filter graph representation
- video_composer: Overlay + background video composition
"""
