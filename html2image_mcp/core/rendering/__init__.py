"""
Rendering
=========

Playwright browser handle and the render orchestrator built on it.
"""
