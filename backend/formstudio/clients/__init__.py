"""
HTTP clients for external services.
"""

from formstudio.clients.basyx_client import BaSyxClient, BaSyxError

__all__ = ["BaSyxClient", "BaSyxError"]
