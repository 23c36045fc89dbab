"""
Interactive Transport Port Interface

Defines the contract for a bidirectional, frame-based sandbox connection.
This is an output port - implemented by infrastructure layer.
"""

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict

from code_runner.domain.value_objects import InboundFrame


class IInteractiveConnection(ABC):
    """
    One open connection, exclusively owned by a single session.
    """

    session_id: str

    @abstractmethod
    async def send(self, frame: Dict[str, Any]) -> None:
        """
        Send one outbound frame.

        Raises:
            TransportError: If the connection is closed or the write fails
        """
        pass

    @abstractmethod
    def frames(self) -> AsyncIterator[InboundFrame]:
        """
        Iterate decoded inbound frames in arrival order.

        Malformed frames are dropped. Iteration ends when the peer closes
        the connection.

        Raises:
            TransportError: On a connection-level error
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        pass

    @property
    @abstractmethod
    def closed(self) -> bool:
        pass


class IInteractiveTransportPort(ABC):
    """
    Port interface for opening interactive sandbox connections.
    """

    @abstractmethod
    async def connect(self, url: str, session_id: str) -> IInteractiveConnection:
        """
        Open a connection tagged with the owning session's id.

        Raises:
            TransportError: If the connection cannot be established
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release client resources."""
        pass
