"""
Domain Ports

Port interfaces defining contracts between layers.
All dependencies on external systems are abstracted through ports.
"""

from .batch_port import IBatchExecutionPort
from .capability_port import ICapabilityPort
from .transport_port import IInteractiveConnection, IInteractiveTransportPort

__all__ = [
    "IBatchExecutionPort",
    "ICapabilityPort",
    "IInteractiveConnection",
    "IInteractiveTransportPort",
]
