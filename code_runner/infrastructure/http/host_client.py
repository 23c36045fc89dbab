"""
Host HTTP client.

Implements ICapabilityPort and IBatchExecutionPort against the host's
``/api/code/ws`` and ``/api/code/execute`` endpoints.
"""

from typing import Optional

import httpx
from pydantic import ValidationError

from code_runner.domain.errors import ProbeError, TransportError
from code_runner.domain.ports import IBatchExecutionPort, ICapabilityPort
from code_runner.domain.value_objects import BatchResult, Capabilities, ErrorKind, RunRequest
from code_runner.infrastructure.config import Settings, get_settings
from code_runner.infrastructure.http.dto import (
    CapabilityResponseDTO,
    ExecuteRequestDTO,
    ExecuteResponseDTO,
)
from code_runner.infrastructure.logging import get_logger


logger = get_logger(__name__)

RESULT_FIELDS = ("stdout", "stderr", "error")


class HostApiClient(ICapabilityPort, IBatchExecutionPort):
    """
    Async HTTP client for the host's code endpoints.

    The probe uses a short timeout of its own; batch execution takes the
    run timeout from the caller so that a hung request surfaces as a
    timeout instead of leaving the run in flight forever.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the host client.

        Args:
            settings: Application settings, defaults to the cached instance
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.settings = settings or get_settings()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.settings.probe_timeout_seconds),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def probe(self) -> Capabilities:
        url = self.settings.capability_url
        client = self._get_client()

        try:
            response = await client.get(url)
        except httpx.TimeoutException as e:
            raise TransportError(
                f"Capability probe timed out: {url}", kind=ErrorKind.TIMEOUT, original_error=e
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Capability probe failed: {e}", original_error=e) from e

        if response.status_code != 200:
            raise ProbeError(
                f"Interactive execution unavailable (HTTP {response.status_code})",
                details={"status_code": response.status_code, "body": response.text},
            )

        try:
            capability = CapabilityResponseDTO.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise ProbeError(f"Malformed capability response: {e}") from e

        if not capability.piston_ws_url:
            raise ProbeError("Capability response carries no interactive URL")

        logger.info("Interactive sandbox available", url=capability.piston_ws_url)
        return Capabilities(interactive_url=capability.piston_ws_url)

    async def execute(self, request: RunRequest, timeout: Optional[float] = None) -> BatchResult:
        url = self.settings.execute_url
        client = self._get_client()
        payload = ExecuteRequestDTO(
            language=request.language,
            code=request.source_code,
            stdin=request.stdin,
        )

        logger.debug(
            "Submitting batch execution",
            url=url,
            language=request.language,
            code_length=len(request.source_code),
            stdin_length=len(request.stdin),
        )

        try:
            response = await client.post(
                url,
                json=payload.model_dump(),
                timeout=httpx.Timeout(timeout),
            )
        except httpx.TimeoutException as e:
            raise TransportError(
                f"Execution timed out after {timeout:g}s" if timeout else "Execution timed out",
                kind=ErrorKind.TIMEOUT,
                original_error=e,
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Execution request failed: {e}", original_error=e) from e

        try:
            body = response.json()
        except ValueError as e:
            raise TransportError(
                f"Host returned a non-JSON response (HTTP {response.status_code})", original_error=e
            ) from e

        if not isinstance(body, dict):
            raise TransportError(f"Host returned an unexpected body (HTTP {response.status_code})")

        if response.is_error and not any(body.get(name) for name in RESULT_FIELDS):
            raise TransportError(f"Host returned HTTP {response.status_code}")

        try:
            result = ExecuteResponseDTO.model_validate(body)
        except ValidationError as e:
            raise TransportError(f"Malformed execution response: {e}") from e

        logger.debug(
            "Batch execution finished",
            status_code=response.status_code,
            exit_code=result.exit_code,
        )
        return BatchResult(
            stdout=result.stdout,
            stderr=result.stderr,
            error=result.error,
            exit_code=result.exit_code,
        )
