"""
Domain Errors

Error types raised by the code runner.
"""

from typing import Any, Dict, Optional

from code_runner.domain.value_objects import ErrorKind


class CodeRunnerError(Exception):
    """Base class for code runner errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class SessionStateError(CodeRunnerError):
    """Operation is not valid in the current session state or mode."""


class TransportError(CodeRunnerError):
    """The sandbox could not be reached or the connection broke."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.TRANSPORT,
        original_error: Optional[Exception] = None,
    ):
        self.kind = kind
        self.original_error = original_error
        super().__init__(message, details={"kind": kind.value})


class FrameDecodeError(CodeRunnerError):
    """An inbound frame is not valid JSON or has an unknown shape."""

    def __init__(self, message: str, raw: Any = None):
        self.raw = raw
        super().__init__(message)


class ProbeError(CodeRunnerError):
    """The host capability endpoint did not announce an interactive sandbox."""


class PistonError(CodeRunnerError):
    """Piston's REST API answered with an error status."""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(
            f"Piston returned {status_code}: {body}",
            details={"status_code": status_code},
        )
