"""
Terminal console for the Code mini-app.

Renders the output log as it grows and forwards typed lines to the
running program.
"""

import asyncio
import signal
import sys
import threading
from typing import Optional, TextIO

from code_runner.application.services.session_manager import ExecutionSessionManager
from code_runner.domain.errors import SessionStateError
from code_runner.domain.value_objects import ExecutionMode, OutputChannel, OutputEvent, SessionState


EXIT_FAILED = 1
EXIT_STOPPED = 130


class ConsoleRenderer:
    """
    Writes output events to a terminal stream.

    stderr is red, info lines green, echoed stdin dim.
    """

    def __init__(self, stream: Optional[TextIO] = None, use_colors: Optional[bool] = None):
        self.stream = stream or sys.stdout
        if use_colors is None:
            use_colors = hasattr(self.stream, "isatty") and self.stream.isatty()
        self.use_colors = use_colors

        if self.use_colors:
            self.colors = {
                OutputChannel.STDERR: "\033[91m",
                OutputChannel.INFO: "\033[92m",
                OutputChannel.STDIN: "\033[2m",
            }
            self.reset = "\033[0m"
        else:
            self.colors = {}
            self.reset = ""

    def format_event(self, event: OutputEvent) -> str:
        if event.channel is OutputChannel.STDOUT:
            return event.content

        content = event.content
        if event.channel is OutputChannel.STDIN:
            content = f"> {content}"
        if not content.endswith("\n"):
            content += "\n"

        color = self.colors.get(event.channel)
        if color:
            return f"{color}{content}{self.reset}"
        return content

    def render(self, event: OutputEvent) -> None:
        self.stream.write(self.format_event(event))
        self.stream.flush()


def _deliver(loop: asyncio.AbstractEventLoop, queue: "asyncio.Queue[Optional[str]]", item: Optional[str]) -> bool:
    """Hand a line to the loop from another thread. Returns False once the loop is gone."""
    if loop.is_closed():
        return False
    try:
        loop.call_soon_threadsafe(queue.put_nowait, item)
    except RuntimeError:
        # closed between the check and the call
        return False
    return True


def _start_stdin_reader(
    loop: asyncio.AbstractEventLoop, queue: "asyncio.Queue[Optional[str]]"
) -> threading.Thread:
    """Read stdin lines on a daemon thread; None marks end of input."""

    def read_lines() -> None:
        for line in sys.stdin:
            if not _deliver(loop, queue, line.rstrip("\n")):
                return
        _deliver(loop, queue, None)

    thread = threading.Thread(target=read_lines, name="stdin-reader", daemon=True)
    thread.start()
    return thread


async def _forward_input(manager: ExecutionSessionManager, queue: "asyncio.Queue[Optional[str]]") -> None:
    while True:
        line = await queue.get()
        if line is None:
            return
        try:
            await manager.send_input(line)
        except SessionStateError:
            return


def exit_code_for(manager: ExecutionSessionManager) -> int:
    session = manager.session
    if session is None:
        return EXIT_FAILED
    if session.state is SessionState.COMPLETED:
        return session.exit_code or 0
    if session.state is SessionState.STOPPED:
        return EXIT_STOPPED
    return EXIT_FAILED


async def run_console(
    manager: ExecutionSessionManager,
    source_code: str,
    filename: str,
    stdin_buffer: str = "",
    language: Optional[str] = None,
    renderer: Optional[ConsoleRenderer] = None,
    forward_stdin: bool = True,
) -> int:
    """
    Run one file and stream its output to the terminal.

    Returns:
        Process exit code for the CLI
    """
    renderer = renderer or ConsoleRenderer()
    unsubscribe = manager.output_log.subscribe(renderer.render)
    loop = asyncio.get_running_loop()
    sigint_installed = False

    try:
        mode = await manager.initialize()

        if mode is ExecutionMode.BATCH:
            requirement = manager.input_requirement(source_code, filename, stdin_buffer)
            if not requirement.is_satisfied:
                print(
                    f"Warning: {filename} reads {requirement.expected} input value(s) "
                    f"but {requirement.supplied} were supplied",
                    file=sys.stderr,
                )
        else:
            try:
                loop.add_signal_handler(signal.SIGINT, lambda: asyncio.ensure_future(manager.stop()))
                sigint_installed = True
            except (NotImplementedError, RuntimeError):
                pass

        await manager.run(source_code, filename, stdin_buffer=stdin_buffer, language=language)

        if mode is ExecutionMode.INTERACTIVE:
            forwarder = None
            if forward_stdin:
                queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue()
                _start_stdin_reader(loop, queue)
                forwarder = asyncio.create_task(_forward_input(manager, queue))
            await manager.wait()
            if forwarder is not None:
                forwarder.cancel()

        return exit_code_for(manager)

    finally:
        if sigint_installed:
            loop.remove_signal_handler(signal.SIGINT)
        unsubscribe()
        await manager.close()
