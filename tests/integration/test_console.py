"""
Integration tests for the terminal console and CLI.

Drives run_console against in-memory sandbox fakes and checks what the
terminal shows and the exit code the CLI would return.
"""

import asyncio
import io
import os
import signal
import sys
import threading

import pytest

from conftest import PISTON_WS_URL, FakeBatchPort, FakeCapabilityPort, FakeTransport, settle
from code_runner.application.services.session_manager import STOPPED_MESSAGE, ExecutionSessionManager
from code_runner.domain.errors import TransportError
from code_runner.domain.value_objects import BatchResult, ExecutionMode, OutputChannel, OutputEvent
from code_runner.infrastructure.config import get_settings
from code_runner.interfaces.cli.console import (
    EXIT_FAILED,
    EXIT_STOPPED,
    ConsoleRenderer,
    _deliver,
    _forward_input,
    _start_stdin_reader,
    run_console,
)
from code_runner.interfaces.cli.main import build_parser, entry_point, run_command


class ScriptedTransport(FakeTransport):
    """Connections replay a fixed list of inbound frames."""

    def __init__(self, frames):
        super().__init__()
        self.script = frames

    async def connect(self, url, session_id):
        connection = await super().connect(url, session_id)
        for frame in self.script:
            connection.push(**frame)
        return connection


def plain_renderer():
    stream = io.StringIO()
    return stream, ConsoleRenderer(stream=stream, use_colors=False)


class TestConsoleRenderer:
    def test_stdout_is_written_raw(self):
        stream, renderer = plain_renderer()
        renderer.render(OutputEvent(channel=OutputChannel.STDOUT, content="Name? "))
        assert stream.getvalue() == "Name? "

    def test_stdin_echo(self):
        stream, renderer = plain_renderer()
        renderer.render(OutputEvent(channel=OutputChannel.STDIN, content="Alice"))
        assert stream.getvalue() == "> Alice\n"

    def test_colors(self):
        renderer = ConsoleRenderer(stream=io.StringIO(), use_colors=True)
        text = renderer.format_event(OutputEvent(channel=OutputChannel.STDERR, content="boom"))
        assert text == "\033[91mboom\n\033[0m"

    def test_no_colors_for_non_tty(self):
        assert ConsoleRenderer(stream=io.StringIO()).use_colors is False


class TestRunConsole:
    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_batch_run(self, settings, capsys):
        batch_port = FakeBatchPort(result=BatchResult(stdout="hello\n", stderr="", exit_code=0))
        manager = ExecutionSessionManager(
            FakeCapabilityPort(error=TransportError("refused")),
            batch_port,
            FakeTransport(),
            settings=settings,
        )
        stream, renderer = plain_renderer()

        code = await run_console(manager, "print(input())", "main.py", stdin_buffer="hello", renderer=renderer)

        assert code == 0
        assert stream.getvalue() == "▶ Running main.py...\nhello\n"
        assert "Warning" not in capsys.readouterr().err
        assert batch_port.closed

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_batch_run_warns_about_missing_stdin(self, settings, capsys):
        manager = ExecutionSessionManager(
            FakeCapabilityPort(),
            FakeBatchPort(),
            FakeTransport(),
            settings=settings,
            mode=ExecutionMode.BATCH,
        )
        _, renderer = plain_renderer()

        await run_console(manager, "a = input()\nb = input()\n", "main.py", stdin_buffer="1", renderer=renderer)

        err = capsys.readouterr().err
        assert "reads 2 input value(s) but 1 were supplied" in err

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_batch_failure_exit_code(self, settings):
        manager = ExecutionSessionManager(
            FakeCapabilityPort(),
            FakeBatchPort(error=TransportError("Execution request failed")),
            FakeTransport(),
            settings=settings,
            mode=ExecutionMode.BATCH,
        )
        stream, renderer = plain_renderer()

        code = await run_console(manager, "print(1)", "main.py", renderer=renderer)

        assert code == EXIT_FAILED
        assert "Error: Execution request failed\n" in stream.getvalue()

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_interactive_run(self, settings):
        transport = ScriptedTransport(
            [
                {"type": "runtime", "language": "python", "version": "3.10.0"},
                {"type": "data", "stream": "stdout", "data": "hi\n"},
                {"type": "data", "stream": "stderr", "data": "isolate: cannot open cgroup"},
                {"type": "exit", "code": 3},
            ]
        )
        manager = ExecutionSessionManager(
            FakeCapabilityPort(interactive_url=PISTON_WS_URL),
            FakeBatchPort(),
            transport,
            settings=settings,
        )
        stream, renderer = plain_renderer()

        code = await run_console(manager, "print('hi')", "main.py", renderer=renderer, forward_stdin=False)

        assert code == 3
        assert stream.getvalue() == (
            "▶ Running main.py...\n"
            "Runtime python 3.10.0\n"
            "hi\n"
            "Process exited with code 3\n"
        )
        assert transport.closed

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_interactive_hang_up_exit_code(self, settings):
        transport = ScriptedTransport([{"type": "data", "stream": "stdout", "data": "partial"}])
        manager = ExecutionSessionManager(
            FakeCapabilityPort(interactive_url=PISTON_WS_URL),
            FakeBatchPort(),
            transport,
            settings=settings,
        )
        _, renderer = plain_renderer()

        async def hang_up_after_run(*args, **kwargs):
            session = await original_run(*args, **kwargs)
            transport.last.hang_up()
            return session

        original_run = manager.run
        manager.run = hang_up_after_run

        code = await run_console(manager, "print(1)", "main.py", renderer=renderer, forward_stdin=False)

        assert code == EXIT_FAILED

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_stopped_run_exit_code(self, settings):
        manager = ExecutionSessionManager(
            FakeCapabilityPort(interactive_url=PISTON_WS_URL),
            FakeBatchPort(),
            FakeTransport(),
            settings=settings,
        )
        stream, renderer = plain_renderer()

        async def stop_after_run(*args, **kwargs):
            session = await original_run(*args, **kwargs)
            await manager.stop()
            return session

        original_run = manager.run
        manager.run = stop_after_run

        code = await run_console(manager, "while True: pass", "main.py", renderer=renderer, forward_stdin=False)

        assert code == EXIT_STOPPED
        assert stream.getvalue().endswith(f"{STOPPED_MESSAGE}\n")

    @pytest.mark.integration
    @pytest.mark.asyncio
    @pytest.mark.skipif(sys.platform == "win32", reason="loop signal handlers need a POSIX loop")
    async def test_ctrl_c_stops_interactive_run(self, settings):
        transport = FakeTransport()
        manager = ExecutionSessionManager(
            FakeCapabilityPort(interactive_url=PISTON_WS_URL),
            FakeBatchPort(),
            transport,
            settings=settings,
        )
        stream, renderer = plain_renderer()

        async def interrupt_after_run(*args, **kwargs):
            session = await original_run(*args, **kwargs)
            os.kill(os.getpid(), signal.SIGINT)
            return session

        original_run = manager.run
        manager.run = interrupt_after_run

        code = await run_console(manager, "while True: pass", "main.py", renderer=renderer, forward_stdin=False)
        await settle()

        assert code == EXIT_STOPPED
        assert stream.getvalue().count(STOPPED_MESSAGE) == 1
        assert {"type": "signal", "signal": "SIGKILL"} in transport.last.sent


class TestInputForwarding:
    @pytest.mark.asyncio
    async def test_lines_are_sent_to_running_program(self, interactive_manager, transport):
        await interactive_manager.run("print(input())", "main.py")
        queue = asyncio.Queue()
        queue.put_nowait("Alice")
        queue.put_nowait(None)

        await asyncio.wait_for(_forward_input(interactive_manager, queue), timeout=1)

        assert transport.last.sent[-1] == {"type": "data", "stream": "stdin", "data": "Alice\n"}
        echoed = [
            e.content for e in interactive_manager.output_log.events if e.channel is OutputChannel.STDIN
        ]
        assert echoed == ["Alice"]

    @pytest.mark.asyncio
    async def test_forwarding_ends_once_program_exits(self, interactive_manager, transport):
        await interactive_manager.run("print(1)", "main.py")
        transport.last.push(type="exit", code=0)
        await interactive_manager.wait(timeout=1)
        sent_before = list(transport.last.sent)
        queue = asyncio.Queue()
        queue.put_nowait("late")
        queue.put_nowait("never read")

        await asyncio.wait_for(_forward_input(interactive_manager, queue), timeout=1)

        assert transport.last.sent == sent_before
        assert queue.qsize() == 1

    @pytest.mark.asyncio
    async def test_stdin_reader_queues_lines_then_end_marker(self, monkeypatch):
        monkeypatch.setattr(sys, "stdin", io.StringIO("one\ntwo\n"))
        queue = asyncio.Queue()

        thread = _start_stdin_reader(asyncio.get_running_loop(), queue)
        lines = [await asyncio.wait_for(queue.get(), timeout=2) for _ in range(3)]
        thread.join(timeout=2)

        assert lines == ["one", "two", None]
        assert not thread.is_alive()

    def test_deliver_after_loop_closed(self):
        loop = asyncio.new_event_loop()
        loop.close()

        assert _deliver(loop, asyncio.Queue(), "x") is False

    def test_stdin_reader_stops_quietly_after_loop_closed(self, monkeypatch):
        errors = []
        monkeypatch.setattr(threading, "excepthook", errors.append)
        monkeypatch.setattr(sys, "stdin", io.StringIO("late\nlater\n"))
        loop = asyncio.new_event_loop()
        loop.close()

        thread = _start_stdin_reader(loop, asyncio.Queue())
        thread.join(timeout=2)

        assert not thread.is_alive()
        assert errors == []


class TestCli:
    def test_run_arguments(self):
        args = build_parser().parse_args(
            ["run", "main.py", "--stdin", "hello", "--mode", "batch", "--timeout", "5"]
        )
        assert args.command == "run"
        assert args.script_path == "main.py"
        assert args.stdin == "hello"
        assert args.mode == "batch"
        assert args.timeout == 5.0

    def test_stdin_options_are_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["run", "main.py", "--stdin", "a", "--stdin-file", "in.txt"])

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            entry_point(["--version"])
        assert exc_info.value.code == 0
        assert "1.0.0" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_missing_script(self, tmp_path, capsys):
        args = build_parser().parse_args(["run", str(tmp_path / "missing.py")])

        assert await run_command(args) == 2
        assert "not found" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_interactive_mode_without_sandbox_url(self, tmp_path, monkeypatch, capsys):
        monkeypatch.delenv("AURORA_PISTON_WS_URL", raising=False)
        get_settings.cache_clear()
        script = tmp_path / "main.py"
        script.write_text("print(1)\n", encoding="utf-8")
        args = build_parser().parse_args(["run", str(script), "--mode", "interactive"])

        try:
            assert await run_command(args) == 2
        finally:
            get_settings.cache_clear()

        assert "AURORA_PISTON_WS_URL" in capsys.readouterr().err
