"""
CLI Interface

Terminal console for running files.
"""

from .console import ConsoleRenderer, run_console

__all__ = ["ConsoleRenderer", "run_console"]
