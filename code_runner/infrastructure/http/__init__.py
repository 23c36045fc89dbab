"""
HTTP Infrastructure

HTTP client adapters for the host endpoints and Piston's REST API.
"""

from .host_client import HostApiClient
from .piston_client import PistonClient

__all__ = ["HostApiClient", "PistonClient"]
