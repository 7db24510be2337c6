"""
FastAPI Todo Backend package.

This module marks the 'src.api' directory as a Python package. The application
lives in ``src.api.main`` (``app`` and the ``create_app`` factory).
"""
