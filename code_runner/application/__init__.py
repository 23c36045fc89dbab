"""
Application Layer

Orchestrates domain objects and ports to run code.
"""

from .services.session_manager import ExecutionSessionManager

__all__ = ["ExecutionSessionManager"]
