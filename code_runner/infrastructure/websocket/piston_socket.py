"""
Piston WebSocket transport.

Implements IInteractiveTransportPort on top of aiohttp's WebSocket client.
Each connection is tagged with the session id of the run that owns it.
"""

import asyncio
from typing import Any, AsyncIterator, Dict, Optional

import aiohttp

from code_runner.domain.errors import FrameDecodeError, TransportError
from code_runner.domain.ports import IInteractiveConnection, IInteractiveTransportPort
from code_runner.domain.value_objects import ErrorKind, InboundFrame
from code_runner.infrastructure.logging import get_logger
from code_runner.infrastructure.websocket.frames import decode_frame, encode_frame


logger = get_logger(__name__)


class PistonSocketConnection(IInteractiveConnection):
    """
    One open WebSocket to the Piston connect endpoint.
    """

    def __init__(self, ws: aiohttp.ClientWebSocketResponse, session_id: str):
        self._ws = ws
        self.session_id = session_id
        self._log = logger.bind(session_id=session_id)

    @property
    def closed(self) -> bool:
        return self._ws.closed

    @property
    def close_code(self) -> Optional[int]:
        return self._ws.close_code

    async def send(self, frame: Dict[str, Any]) -> None:
        if self._ws.closed:
            raise TransportError("WebSocket connection is closed")
        try:
            await self._ws.send_str(encode_frame(frame))
        except (aiohttp.ClientError, ConnectionError, RuntimeError) as e:
            raise TransportError(f"Failed to send {frame.get('type')} frame: {e}", original_error=e) from e
        self._log.debug("Frame sent", frame_type=frame.get("type"))

    async def frames(self) -> AsyncIterator[InboundFrame]:
        async for msg in self._ws:
            if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                try:
                    frame = decode_frame(msg.data)
                except FrameDecodeError as e:
                    self._log.warning("Dropping malformed frame", error=e.message)
                    continue
                yield frame
            elif msg.type == aiohttp.WSMsgType.ERROR:
                error = self._ws.exception()
                raise TransportError(f"WebSocket error: {error}", original_error=error)

        self._log.debug("WebSocket closed by peer", close_code=self._ws.close_code)

    async def close(self) -> None:
        if not self._ws.closed:
            await self._ws.close()
            self._log.debug("WebSocket closed")


class PistonSocketTransport(IInteractiveTransportPort):
    """
    Opens WebSocket connections to the interactive sandbox.

    The underlying aiohttp session is created lazily and shared by all
    connections of this transport.
    """

    def __init__(self, connect_timeout: float = 10.0, heartbeat: Optional[float] = None):
        """
        Initialize the transport.

        Args:
            connect_timeout: Seconds allowed for the connect and handshake
            heartbeat: Optional WebSocket ping interval in seconds
        """
        self.connect_timeout = connect_timeout
        self.heartbeat = heartbeat
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=None, connect=self.connect_timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def connect(self, url: str, session_id: str) -> PistonSocketConnection:
        session = self._get_session()
        logger.info("Connecting to interactive sandbox", url=url, session_id=session_id)
        try:
            ws = await session.ws_connect(url, heartbeat=self.heartbeat)
        except aiohttp.WSServerHandshakeError as e:
            raise TransportError(
                f"Sandbox rejected the WebSocket handshake ({e.status})", original_error=e
            ) from e
        except asyncio.TimeoutError as e:
            raise TransportError(
                f"Timed out connecting to {url}", kind=ErrorKind.TIMEOUT, original_error=e
            ) from e
        except (aiohttp.ClientError, OSError) as e:
            raise TransportError(f"Cannot connect to {url}: {e}", original_error=e) from e
        return PistonSocketConnection(ws, session_id)

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None
