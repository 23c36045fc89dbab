"""
Piston WebSocket frame codec.

Frame shapes are dictated by the Piston ``/api/v2/connect`` endpoint:

Outbound:
    {"type": "init", "language", "version", "files": [{"name", "content"}]}
    {"type": "data", "stream": "stdin", "data"}
    {"type": "signal", "signal": "SIGKILL"}

Inbound:
    {"type": "runtime", "language", "version"}
    {"type": "stage", "stage"}
    {"type": "data", "stream": "stdout" | "stderr", "data"}
    {"type": "exit", "stage", "code", "signal"}
    {"type": "error", "message"}
"""

import json
from typing import Any, Dict, Union

from code_runner.domain.errors import FrameDecodeError
from code_runner.domain.value_objects import FrameType, InboundFrame, RunRequest


INBOUND_TYPES = {
    FrameType.RUNTIME,
    FrameType.STAGE,
    FrameType.DATA,
    FrameType.EXIT,
    FrameType.ERROR,
}


def init_frame(request: RunRequest) -> Dict[str, Any]:
    return {
        "type": FrameType.INIT.value,
        "language": request.language,
        "version": request.version,
        "files": [f.to_dict() for f in request.files],
    }


def stdin_frame(data: str) -> Dict[str, Any]:
    return {"type": FrameType.DATA.value, "stream": "stdin", "data": data}


def kill_frame() -> Dict[str, Any]:
    return {"type": FrameType.SIGNAL.value, "signal": "SIGKILL"}


def encode_frame(frame: Dict[str, Any]) -> str:
    return json.dumps(frame)


def decode_frame(raw: Union[str, bytes]) -> InboundFrame:
    """
    Decode one inbound frame.

    Raises:
        FrameDecodeError: If the payload is not a JSON object of a known type
    """
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise FrameDecodeError(f"Frame is not valid JSON: {e}", raw=raw) from e

    if not isinstance(payload, dict):
        raise FrameDecodeError("Frame must be a JSON object", raw=raw)

    try:
        frame_type = FrameType(payload.get("type"))
    except ValueError:
        raise FrameDecodeError(f"Unknown frame type: {payload.get('type')!r}", raw=raw)

    if frame_type not in INBOUND_TYPES:
        raise FrameDecodeError(f"Unexpected inbound frame type: {frame_type.value}", raw=raw)

    code = payload.get("code")
    if code is not None and not isinstance(code, int):
        try:
            code = int(code)
        except (TypeError, ValueError):
            raise FrameDecodeError(f"Exit code is not an integer: {code!r}", raw=raw)

    data = payload.get("data")
    if frame_type is FrameType.DATA:
        if payload.get("stream") not in ("stdout", "stderr") or not isinstance(data, str):
            raise FrameDecodeError("Data frame needs a stdout/stderr stream and string data", raw=raw)

    return InboundFrame(
        type=frame_type,
        stream=payload.get("stream"),
        data=data,
        version=payload.get("version"),
        language=payload.get("language"),
        stage=payload.get("stage"),
        code=code,
        signal=payload.get("signal"),
        message=payload.get("message"),
    )
