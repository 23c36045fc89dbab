"""
Application Services

Service classes for handling use cases.
"""

from .session_manager import ExecutionSessionManager

__all__ = ["ExecutionSessionManager"]
