"""
Code Runner Domain Layer

Execution sessions, output events and the text heuristics applied to them.
"""

from .entities import ExecutionSession, OutputLog
from .value_objects import (
    ExecutionMode,
    OutputChannel,
    OutputEvent,
    SessionState,
)

__all__ = [
    "ExecutionSession",
    "OutputLog",
    "ExecutionMode",
    "OutputChannel",
    "OutputEvent",
    "SessionState",
]
