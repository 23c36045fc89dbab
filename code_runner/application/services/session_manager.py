"""
Execution Session Manager

Owns the lifecycle of the runs of one source buffer: picks batch or
interactive mode once, drives the transport of the active run, and turns
sandbox output into ordered console events.
"""

import asyncio
from typing import Optional

import structlog

from code_runner.domain.entities import ExecutionSession, OutputLog
from code_runner.domain.errors import ProbeError, SessionStateError, TransportError
from code_runner.domain.ports import (
    IBatchExecutionPort,
    ICapabilityPort,
    IInteractiveConnection,
    IInteractiveTransportPort,
)
from code_runner.domain.services import (
    StderrNoiseFilter,
    infer_language,
    input_requirement,
    looks_like_input_prompt,
)
from code_runner.domain.value_objects import (
    ErrorKind,
    ExecutionMode,
    FrameType,
    InboundFrame,
    InputRequirement,
    OutputChannel,
    RunRequest,
    SessionState,
)
from code_runner.infrastructure.config import Settings, get_settings
from code_runner.infrastructure.websocket.frames import init_frame, kill_frame, stdin_frame


logger = structlog.get_logger(__name__)

STOPPED_MESSAGE = "■ Execution stopped"


class ExecutionSessionManager:
    """
    Mediates a source buffer's execution against the external sandbox.

    All methods must be called from one event loop. At most one run is in
    flight at a time; starting a new run tears the previous one down
    first. Output from every run lands in the shared ``output_log``.
    """

    def __init__(
        self,
        capability_port: ICapabilityPort,
        batch_port: IBatchExecutionPort,
        transport_port: IInteractiveTransportPort,
        settings: Optional[Settings] = None,
        mode: Optional[ExecutionMode] = None,
        interactive_url: Optional[str] = None,
        output_log: Optional[OutputLog] = None,
    ):
        """
        Initialize the manager.

        Args:
            capability_port: Host capability probe
            batch_port: Single-shot execution endpoint
            transport_port: Interactive WebSocket transport
            settings: Application settings, defaults to the cached instance
            mode: Fixed execution mode; skips the probe when given
            interactive_url: Sandbox URL, required with a fixed interactive mode
            output_log: Console log to write to, a new one by default
        """
        if mode is ExecutionMode.INTERACTIVE and not interactive_url:
            raise ValueError("interactive mode requires an interactive_url")

        self._capability_port = capability_port
        self._batch_port = batch_port
        self._transport_port = transport_port
        self.settings = settings or get_settings()
        self.output_log = output_log or OutputLog()
        self._noise_filter = StderrNoiseFilter(self.settings.stderr_noise_patterns)

        self._mode: Optional[ExecutionMode] = mode
        self._interactive_url = interactive_url
        self._session: Optional[ExecutionSession] = None
        self._connection: Optional[IInteractiveConnection] = None
        self._reader_task: Optional[asyncio.Task] = None
        self._watchdog_task: Optional[asyncio.Task] = None
        self._run_lock = asyncio.Lock()

    @property
    def mode(self) -> Optional[ExecutionMode]:
        """Selected mode, None until initialized."""
        return self._mode

    @property
    def session(self) -> Optional[ExecutionSession]:
        """The most recent run."""
        return self._session

    @property
    def state(self) -> SessionState:
        return self._session.state if self._session else SessionState.IDLE

    @property
    def is_busy(self) -> bool:
        return self.state.is_in_flight

    async def initialize(self) -> ExecutionMode:
        """
        Select the execution mode.

        Probes the host once. The result is kept for the manager's
        lifetime; a failed probe means batch mode without retry.
        """
        if self._mode is not None:
            return self._mode

        try:
            capabilities = await self._capability_port.probe()
            self._mode = capabilities.mode
            self._interactive_url = capabilities.interactive_url
        except (ProbeError, TransportError) as e:
            logger.info("Interactive execution unavailable, using batch mode", reason=e.message)
            self._mode = ExecutionMode.BATCH

        logger.info("Execution mode selected", mode=self._mode.value)
        return self._mode

    def input_requirement(self, source_code: str, filename: str, stdin_buffer: str = "") -> InputRequirement:
        """Compare the input calls found in the source with the stdin lines supplied."""
        language = infer_language(filename, self.settings.default_language)
        return input_requirement(source_code, stdin_buffer, language)

    async def run(
        self,
        source_code: str,
        filename: str,
        stdin_buffer: str = "",
        language: Optional[str] = None,
    ) -> ExecutionSession:
        """
        Run a source buffer.

        In batch mode this returns once the single response has been
        processed. In interactive mode it returns once the transport is
        set up; output then arrives through the output log.

        Args:
            source_code: Full text of the buffer
            filename: File name shown in the console and sent to the sandbox
            stdin_buffer: Pre-supplied stdin, used in batch mode only
            language: Sandbox language, inferred from the file name by default

        Returns:
            The new session
        """
        async with self._run_lock:
            mode = await self.initialize()
            await self._teardown_active()

            language = language or infer_language(filename, self.settings.default_language)
            is_batch = mode is ExecutionMode.BATCH
            request = RunRequest(
                source_code=source_code,
                filename=filename,
                language=language,
                version=self.settings.version_for(language),
                stdin=stdin_buffer if is_batch else "",
            )
            session = ExecutionSession(
                mode=mode,
                filename=filename,
                language=language,
                output_log=self.output_log,
                pending_stdin=stdin_buffer if is_batch else None,
            )
            self._session = session

            logger.info(
                "Run started",
                session_id=session.session_id,
                mode=mode.value,
                filename=filename,
                language=language,
            )
            session.emit(OutputChannel.INFO, f"▶ Running {filename}...")
            session.mark_as_connecting()

            if is_batch:
                await self._run_batch(session, request)
            else:
                await self._run_interactive(session, request)

            return session

    async def send_input(self, text: str) -> None:
        """
        Send one line of stdin to the running program.

        Raises:
            SessionStateError: In batch mode, or when no program is running
        """
        if self._mode is not ExecutionMode.INTERACTIVE:
            raise SessionStateError(
                "Live input requires interactive mode; supply stdin before running",
                details={"mode": self._mode.value if self._mode else None},
            )

        session = self._session
        connection = self._connection
        if session is None or not session.state.is_active or connection is None:
            raise SessionStateError(
                "No running program to send input to",
                details={"state": self.state.value},
            )

        data = text if text.endswith("\n") else text + "\n"
        try:
            await connection.send(stdin_frame(data))
        except TransportError as e:
            if self._fail(session, e.message, e.kind):
                await self._release_transport()
            return

        session.emit(OutputChannel.STDIN, text.strip())
        session.mark_as_running()

    async def stop(self) -> bool:
        """
        Stop the in-flight interactive run.

        Returns:
            True if a run was stopped, False if there was nothing to stop
        """
        if self._mode is not ExecutionMode.INTERACTIVE:
            logger.debug("Stop ignored: batch runs cannot be cancelled")
            return False

        session = self._session
        if session is None or not session.state.is_in_flight:
            return False

        session.emit(OutputChannel.INFO, STOPPED_MESSAGE)
        session.mark_as_stopped()
        logger.info("Run stopped", session_id=session.session_id)

        connection = self._connection
        if connection is not None and not connection.closed:
            try:
                await connection.send(kill_frame())
            except TransportError as e:
                logger.warning(
                    "Failed to send kill signal",
                    session_id=session.session_id,
                    error=e.message,
                )
        await self._release_transport()
        return True

    def clear_output(self) -> None:
        """Empty the console log without touching the active run."""
        self.output_log.clear()

    async def wait(self, timeout: Optional[float] = None) -> SessionState:
        """
        Wait for the active interactive run to finish reading frames.

        Returns:
            State of the most recent session
        """
        task = self._reader_task
        if task is not None and not task.done():
            await asyncio.wait({task}, timeout=timeout)
        return self.state

    async def close(self) -> None:
        """Tear down the active run and release client resources."""
        await self._teardown_active()
        await self._batch_port.close()
        await self._transport_port.close()
        if self._capability_port is not self._batch_port:
            close = getattr(self._capability_port, "close", None)
            if close is not None:
                await close()

    def _run_timeout(self) -> Optional[float]:
        timeout = self.settings.run_timeout_seconds
        return timeout if timeout and timeout > 0 else None

    async def _run_batch(self, session: ExecutionSession, request: RunRequest) -> None:
        try:
            result = await self._batch_port.execute(request, timeout=self._run_timeout())
        except TransportError as e:
            self._fail(session, e.message, e.kind)
            return

        for channel, content in (
            (OutputChannel.STDOUT, result.stdout),
            (OutputChannel.STDERR, result.stderr),
            (OutputChannel.STDERR, result.error),
        ):
            if content:
                session.emit(channel, content)

        session.mark_as_completed(result.exit_code)
        logger.info(
            "Run completed",
            session_id=session.session_id,
            exit_code=result.exit_code,
            duration_ms=session.duration_ms,
        )

    async def _run_interactive(self, session: ExecutionSession, request: RunRequest) -> None:
        try:
            connection = await self._transport_port.connect(self._interactive_url, session.session_id)
        except TransportError as e:
            self._fail(session, e.message, e.kind)
            return

        if session.is_finished:
            # Stopped while the connection was being established.
            await connection.close()
            return

        self._connection = connection
        try:
            await connection.send(init_frame(request))
        except TransportError as e:
            if self._fail(session, e.message, e.kind):
                await self._release_transport()
            return

        session.mark_as_running()
        self._reader_task = asyncio.create_task(self._read_frames(session, connection))

        timeout = self._run_timeout()
        if timeout is not None:
            self._watchdog_task = asyncio.create_task(self._watchdog(session, timeout))

    def _owns(self, session: ExecutionSession, connection: IInteractiveConnection) -> bool:
        return (
            self._session is session
            and self._connection is connection
            and connection.session_id == session.session_id
        )

    async def _read_frames(self, session: ExecutionSession, connection: IInteractiveConnection) -> None:
        log = logger.bind(session_id=session.session_id)
        try:
            async for frame in connection.frames():
                if session.is_finished:
                    break
                if not self._owns(session, connection):
                    log.debug("Ignoring frame from superseded run", frame_type=frame.type.value)
                    break
                self._handle_frame(session, frame)
                if session.is_finished:
                    break
            else:
                if self._owns(session, connection):
                    self._fail(session, "Connection closed before the program exited", ErrorKind.TRANSPORT)
        except TransportError as e:
            if self._owns(session, connection):
                self._fail(session, e.message, e.kind)
        finally:
            await connection.close()
            if self._session is session:
                self._cancel_watchdog()

    def _handle_frame(self, session: ExecutionSession, frame: InboundFrame) -> None:
        if frame.type is FrameType.RUNTIME:
            language = frame.language or session.language
            session.emit(OutputChannel.INFO, f"Runtime {language} {frame.version or ''}".rstrip())

        elif frame.type is FrameType.STAGE:
            if frame.stage == "run":
                session.mark_as_running()

        elif frame.type is FrameType.DATA:
            if frame.stream == "stdout":
                if frame.data:
                    session.emit(OutputChannel.STDOUT, frame.data)
                    if looks_like_input_prompt(frame.data):
                        session.mark_as_awaiting_input()
            elif frame.stream == "stderr":
                visible = self._noise_filter.filter(frame.data or "")
                if visible:
                    session.emit(OutputChannel.STDERR, visible)

        elif frame.type is FrameType.EXIT:
            if frame.code is None and frame.signal:
                message = f"Process terminated by {frame.signal}"
            elif frame.code is None:
                message = "Process exited"
            else:
                message = f"Process exited with code {frame.code}"
            session.emit(OutputChannel.INFO, message)
            session.mark_as_completed(frame.code)
            logger.info(
                "Run completed",
                session_id=session.session_id,
                exit_code=frame.code,
                duration_ms=session.duration_ms,
            )

        elif frame.type is FrameType.ERROR:
            self._fail(session, frame.message or "Sandbox error", ErrorKind.SANDBOX)

    def _fail(self, session: ExecutionSession, message: str, kind: ErrorKind) -> bool:
        """Record a failure as one stderr event. Returns False if the run already ended."""
        if session.is_finished:
            return False
        session.emit(OutputChannel.STDERR, f"Error: {message}")
        session.mark_as_failed(kind)
        logger.warning(
            "Run failed",
            session_id=session.session_id,
            error_kind=kind.value,
            error=message,
        )
        return True

    async def _watchdog(self, session: ExecutionSession, timeout: float) -> None:
        await asyncio.sleep(timeout)
        if self._session is not session or session.is_finished:
            return
        self._fail(session, f"Execution timed out after {timeout:g}s", ErrorKind.TIMEOUT)
        await self._release_transport()

    def _cancel_watchdog(self) -> None:
        task = self._watchdog_task
        self._watchdog_task = None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()

    async def _release_transport(self) -> None:
        """Close the active connection and stop its background tasks."""
        self._cancel_watchdog()

        reader = self._reader_task
        self._reader_task = None
        if reader is not None and reader is not asyncio.current_task() and not reader.done():
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass

        connection = self._connection
        self._connection = None
        if connection is not None:
            await connection.close()

    async def _teardown_active(self) -> None:
        """Silently end an in-flight run so that a new one can start."""
        session = self._session
        if session is not None and session.state.is_in_flight:
            logger.info("Superseding active run", session_id=session.session_id)
            session.mark_as_stopped()
        await self._release_transport()
