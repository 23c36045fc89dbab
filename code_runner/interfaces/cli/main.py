#!/usr/bin/env python3
"""
Aurora Code CLI - run a file against the Piston sandbox or serve the host endpoints
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

from code_runner import __version__
from code_runner.domain.value_objects import ExecutionMode
from code_runner.infrastructure.config import get_settings
from code_runner.infrastructure.dependencies import create_session_manager
from code_runner.infrastructure.logging import configure_logging
from code_runner.interfaces.cli.console import run_console


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser"""
    parser = argparse.ArgumentParser(
        prog="aurora-code",
        description="Aurora Code - run student code in the Piston sandbox",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run a source file")
    run_parser.add_argument("script_path", type=str, help="Source file to run")

    stdin_group = run_parser.add_mutually_exclusive_group()
    stdin_group.add_argument("--stdin", "-i", type=str, default="", help="Stdin for batch mode")
    stdin_group.add_argument("--stdin-file", type=str, help="Read batch stdin from a file")

    run_parser.add_argument(
        "--mode",
        choices=["auto", "batch", "interactive"],
        default="auto",
        help="Execution mode (default: auto, probes the host)",
    )
    run_parser.add_argument("--host", type=str, help="Host base URL (default: AURORA_HOST_URL)")
    run_parser.add_argument("--language", "-l", type=str, help="Language (default: from file extension)")
    run_parser.add_argument(
        "--timeout",
        "-t",
        type=float,
        help="Client-side run timeout in seconds, 0 disables it",
    )

    serve_parser = subparsers.add_parser("serve", help="Serve the capability and execute endpoints")
    serve_parser.add_argument("--bind", type=str, help="Bind address (default: AURORA_SERVER_HOST)")
    serve_parser.add_argument("--port", "-p", type=int, help="Port (default: AURORA_SERVER_PORT)")

    return parser


def read_text_file(file_path: str) -> str:
    """Read a text file or exit with status 2"""
    try:
        return Path(file_path).read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: File not found: {file_path}", file=sys.stderr)
        sys.exit(2)
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error reading file {file_path}: {e}", file=sys.stderr)
        sys.exit(2)


async def run_command(args: argparse.Namespace) -> int:
    """Run a file and return the exit code"""
    script_path = Path(args.script_path)
    if not script_path.is_file():
        print(f"Error: Script file not found: {args.script_path}", file=sys.stderr)
        return 2

    source_code = read_text_file(str(script_path))
    stdin_buffer = read_text_file(args.stdin_file) if args.stdin_file else args.stdin

    overrides = {}
    if args.host:
        overrides["host_url"] = args.host
    if args.timeout is not None:
        overrides["run_timeout_seconds"] = args.timeout
    settings = get_settings().model_copy(update=overrides)

    mode: Optional[ExecutionMode] = None
    if args.mode != "auto":
        mode = ExecutionMode(args.mode)

    try:
        manager = create_session_manager(settings, mode=mode)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    return await run_console(
        manager,
        source_code,
        script_path.name,
        stdin_buffer=stdin_buffer,
        language=args.language,
    )


def entry_point(argv: Optional[list] = None) -> None:
    """CLI entry point"""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, get_settings().log_format)

    if args.command == "serve":
        from code_runner.interfaces.http.rest import main as serve

        serve(host=args.bind, port=args.port)
        return

    try:
        sys.exit(asyncio.run(run_command(args)))
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    entry_point()
