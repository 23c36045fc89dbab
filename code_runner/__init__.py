"""
Aurora Code Runner

Execution session manager for the Code mini-app: runs a source buffer
against the Piston sandbox in batch or interactive mode.
"""

__version__ = "1.0.0"

from .domain.entities import ExecutionSession, OutputLog
from .domain.value_objects import (
    BatchResult,
    ErrorKind,
    ExecutionMode,
    InboundFrame,
    InputRequirement,
    OutputChannel,
    OutputEvent,
    RunRequest,
    SessionState,
)

__all__ = [
    "ExecutionSession",
    "OutputLog",
    "BatchResult",
    "ErrorKind",
    "ExecutionMode",
    "InboundFrame",
    "InputRequirement",
    "OutputChannel",
    "OutputEvent",
    "RunRequest",
    "SessionState",
]
