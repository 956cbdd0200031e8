"""
Core Rendering Pipeline
=======================

Modules:
- normalize: Coercion of untrusted numeric request fields
- process_runner: External tool execution with hard timeouts
- cleanup: Best-effort resource release
- rendering: Page capture and video composition
"""
