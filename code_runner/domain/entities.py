"""
Execution Entities

Core domain entities for a run of a source buffer against the sandbox.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterator, List, Optional, Tuple

import structlog

from code_runner.domain.value_objects import (
    ErrorKind,
    ExecutionMode,
    OutputChannel,
    OutputEvent,
    SessionState,
    utcnow,
)


logger = structlog.get_logger(__name__)

OutputListener = Callable[[OutputEvent], None]


class OutputLog:
    """
    Append-only, ordered console log shared by the runs of one manager.

    Events are stored in the order they are appended. ``clear`` is the
    only way to remove them.
    """

    def __init__(self) -> None:
        self._events: List[OutputEvent] = []
        self._listeners: List[OutputListener] = []

    def append(self, event: OutputEvent) -> OutputEvent:
        self._events.append(event)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.warning(
                    "Output listener failed",
                    listener=getattr(listener, "__name__", repr(listener)),
                    error=str(e),
                )
        return event

    def clear(self) -> None:
        self._events.clear()

    def subscribe(self, listener: OutputListener) -> Callable[[], None]:
        """
        Register a callback invoked for every appended event.

        Returns:
            A function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def events(self) -> Tuple[OutputEvent, ...]:
        return tuple(self._events)

    def by_channel(self, channel: OutputChannel) -> List[OutputEvent]:
        return [e for e in self._events if e.channel == channel]

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[OutputEvent]:
        return iter(list(self._events))


def new_session_id() -> str:
    return f"run_{uuid.uuid4().hex[:12]}"


@dataclass
class ExecutionSession:
    """
    Represents one run of a source buffer.

    Tracks the run's state machine and writes its output into the
    shared log. A session reaches a terminal state exactly once and
    refuses further output after that.
    """

    mode: ExecutionMode
    filename: str
    language: str
    output_log: OutputLog
    pending_stdin: Optional[str] = None
    session_id: str = field(default_factory=new_session_id)
    state: SessionState = SessionState.IDLE
    error_kind: Optional[ErrorKind] = None
    exit_code: Optional[int] = None
    created_at: datetime = field(default_factory=utcnow)
    finished_at: Optional[datetime] = None

    def emit(self, channel: OutputChannel, content: str) -> Optional[OutputEvent]:
        """
        Append an event to the output log.

        Returns:
            The appended event, or None if the run already ended
        """
        if self.state.is_terminal:
            return None
        event = OutputEvent(channel=channel, content=content, session_id=self.session_id)
        return self.output_log.append(event)

    def mark_as_connecting(self) -> None:
        """Mark the session as setting up its transport."""
        if self.state is SessionState.IDLE:
            self.state = SessionState.CONNECTING

    def mark_as_running(self) -> None:
        """Mark the session as running (also clears the awaiting-input hint)."""
        if self.state in (SessionState.CONNECTING, SessionState.AWAITING_INPUT):
            self.state = SessionState.RUNNING

    def mark_as_awaiting_input(self) -> None:
        """Flag that the program looks like it is waiting for stdin."""
        if self.state is SessionState.RUNNING:
            self.state = SessionState.AWAITING_INPUT

    def mark_as_completed(self, exit_code: Optional[int] = None) -> bool:
        """Mark the session as completed. Returns False if it already ended."""
        if not self._finish(SessionState.COMPLETED):
            return False
        self.exit_code = exit_code
        return True

    def mark_as_failed(self, kind: ErrorKind) -> bool:
        """Mark the session as failed. Returns False if it already ended."""
        if not self._finish(SessionState.FAILED):
            return False
        self.error_kind = kind
        return True

    def mark_as_stopped(self) -> bool:
        """Mark the session as stopped. Returns False if it already ended."""
        return self._finish(SessionState.STOPPED)

    def _finish(self, state: SessionState) -> bool:
        if self.state.is_terminal:
            return False
        self.state = state
        self.finished_at = utcnow()
        return True

    @property
    def is_finished(self) -> bool:
        return self.state.is_terminal

    @property
    def duration_ms(self) -> Optional[int]:
        """Wall-clock duration of the run in milliseconds."""
        if self.finished_at:
            delta = self.finished_at - self.created_at
            return int(delta.total_seconds() * 1000)
        return None
