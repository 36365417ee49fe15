"""
FastAPI routers for IDTA Form Studio.
"""

from formstudio.routers import editor, submodels, templates

__all__ = ["templates", "editor", "submodels"]
