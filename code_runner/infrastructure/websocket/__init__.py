"""
WebSocket Infrastructure

Interactive sandbox transport and its frame codec.
"""

from .frames import decode_frame, encode_frame, init_frame, kill_frame, stdin_frame
from .piston_socket import PistonSocketConnection, PistonSocketTransport

__all__ = [
    "PistonSocketConnection",
    "PistonSocketTransport",
    "decode_frame",
    "encode_frame",
    "init_frame",
    "kill_frame",
    "stdin_frame",
]
