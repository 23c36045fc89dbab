"""
Execution Value Objects

Immutable value objects describing runs, output and sandbox frames.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class ExecutionMode(str, Enum):
    """How a run reaches the sandbox."""

    BATCH = "batch"
    INTERACTIVE = "interactive"


class SessionState(str, Enum):
    """Lifecycle state of an execution session."""

    IDLE = "idle"
    CONNECTING = "connecting"
    RUNNING = "running"
    AWAITING_INPUT = "awaiting_input"
    COMPLETED = "completed"
    FAILED = "failed"
    STOPPED = "stopped"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.COMPLETED, SessionState.FAILED, SessionState.STOPPED)

    @property
    def is_active(self) -> bool:
        """Running or waiting for stdin."""
        return self in (SessionState.RUNNING, SessionState.AWAITING_INPUT)

    @property
    def is_in_flight(self) -> bool:
        return self is SessionState.CONNECTING or self.is_active


class OutputChannel(str, Enum):
    """Classification of a console line."""

    STDOUT = "stdout"
    STDERR = "stderr"
    INFO = "info"
    STDIN = "stdin"


class ErrorKind(str, Enum):
    """Reason a session ended in the failed state."""

    TRANSPORT = "transport"
    SANDBOX = "sandbox"
    TIMEOUT = "timeout"


class FrameType(str, Enum):
    """Frame types spoken by the Piston WebSocket API."""

    INIT = "init"
    DATA = "data"
    SIGNAL = "signal"
    RUNTIME = "runtime"
    STAGE = "stage"
    EXIT = "exit"
    ERROR = "error"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class OutputEvent:
    """
    One classified unit of execution output.

    Attributes:
        channel: Console channel the content belongs to
        content: Text payload, possibly multi-line
        session_id: Run that produced the event
        timestamp: Capture time, display only
    """

    channel: OutputChannel
    content: str
    session_id: Optional[str] = None
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "channel": self.channel.value,
            "content": self.content,
            "session_id": self.session_id,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class SourceFile:
    """A named file sent to the sandbox."""

    name: str
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "content": self.content}


@dataclass(frozen=True)
class RunRequest:
    """
    Request to run a source buffer.

    Attributes:
        source_code: Full text of the buffer
        filename: Name shown in the console and sent to the sandbox
        language: Sandbox language identifier
        version: Runtime version resolved for the language
        stdin: Pre-supplied stdin for batch mode
    """

    source_code: str
    filename: str
    language: str
    version: str
    stdin: str = ""

    @property
    def files(self) -> List[SourceFile]:
        return [SourceFile(name=self.filename, content=self.source_code)]


@dataclass(frozen=True)
class BatchResult:
    """
    Accumulated output of a single-shot execution.

    Any subset of the text fields may be populated; empty strings
    are treated the same as missing ones.
    """

    stdout: Optional[str] = None
    stderr: Optional[str] = None
    error: Optional[str] = None
    exit_code: Optional[int] = None


@dataclass(frozen=True)
class InboundFrame:
    """
    Decoded frame received from the interactive sandbox.

    Only the fields relevant to ``type`` are populated.
    """

    type: FrameType
    stream: Optional[str] = None
    data: Optional[str] = None
    version: Optional[str] = None
    language: Optional[str] = None
    stage: Optional[str] = None
    code: Optional[int] = None
    signal: Optional[str] = None
    message: Optional[str] = None


@dataclass(frozen=True)
class Capabilities:
    """Result of the host capability probe."""

    interactive_url: Optional[str] = None

    @property
    def mode(self) -> ExecutionMode:
        if self.interactive_url:
            return ExecutionMode.INTERACTIVE
        return ExecutionMode.BATCH


@dataclass(frozen=True)
class InputRequirement:
    """
    How many stdin values a batch run expects versus how many were supplied.

    The expected count is a static approximation, not a parse.
    """

    expected: int
    supplied: int

    @property
    def missing(self) -> int:
        return max(self.expected - self.supplied, 0)

    @property
    def is_satisfied(self) -> bool:
        return self.supplied >= self.expected
