"""
Batch Execution Port Interface

Defines the contract for single-request/single-response execution.
This is an output port - implemented by infrastructure layer.
"""

from abc import ABC, abstractmethod
from typing import Optional

from code_runner.domain.value_objects import BatchResult, RunRequest


class IBatchExecutionPort(ABC):
    """
    Port interface for batch execution.
    """

    @abstractmethod
    async def execute(self, request: RunRequest, timeout: Optional[float] = None) -> BatchResult:
        """
        Execute the full source with the full pre-supplied stdin.

        Args:
            request: Run request
            timeout: Seconds to wait for the response, None for no limit

        Returns:
            BatchResult with accumulated stdout/stderr/error

        Raises:
            TransportError: If the call itself fails (not the program)
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release client resources."""
        pass
