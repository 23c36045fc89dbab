"""
HTTP Interface

FastAPI host service.
"""

from .rest import create_app

__all__ = ["create_app"]
