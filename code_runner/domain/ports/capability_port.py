"""
Capability Port Interface

Defines the contract for discovering which execution modes the host offers.
This is an output port - implemented by infrastructure layer.
"""

from abc import ABC, abstractmethod

from code_runner.domain.value_objects import Capabilities


class ICapabilityPort(ABC):
    """
    Port interface for the host capability probe.
    """

    @abstractmethod
    async def probe(self) -> Capabilities:
        """
        Ask the host whether an interactive sandbox is available.

        Returns:
            Capabilities carrying the interactive URL, if any

        Raises:
            ProbeError: If the host does not announce an interactive sandbox
            TransportError: If the host cannot be reached
        """
        pass
