"""
FastAPI REST Endpoints
======================

Endpoints:
- GET /health: Health check endpoint
- POST /render/png: Render a template to PNG
- POST /render/video: Composite a template overlay onto background video
"""
