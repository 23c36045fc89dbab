"""
Piston REST client.

Used by the host service to proxy batch executions to Piston's
``/api/v2/piston/execute`` endpoint (public or self-hosted).
"""

from typing import List, Optional

import httpx
from pydantic import ValidationError

from code_runner.domain.errors import PistonError, TransportError
from code_runner.domain.value_objects import ErrorKind
from code_runner.infrastructure.config import Settings, get_settings
from code_runner.infrastructure.http.dto import (
    PistonExecuteRequestDTO,
    PistonExecuteResponseDTO,
    PistonFileDTO,
)
from code_runner.infrastructure.logging import get_logger


logger = get_logger(__name__)


def main_filename(language: str) -> str:
    return "main.py" if language == "python" else "main.js"


class PistonClient:
    """
    Async HTTP client for Piston's REST execute endpoint.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the Piston client.

        Args:
            settings: Application settings, defaults to the cached instance
            timeout: HTTP timeout in seconds; defaults to the sandbox run
                timeout plus a margin for queueing
            transport: Optional httpx transport for tests
        """
        self.settings = settings or get_settings()
        self.api_url = self.settings.piston_api_url
        self.timeout = timeout or self.settings.run_timeout_ms / 1000 + 10.0
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    def build_request(
        self,
        language: str,
        code: str,
        stdin: Optional[str] = None,
        args: Optional[List[str]] = None,
    ) -> PistonExecuteRequestDTO:
        return PistonExecuteRequestDTO(
            language=language,
            version=self.settings.version_for(language),
            files=[PistonFileDTO(name=main_filename(language), content=code)],
            stdin=stdin or "",
            args=args or [],
            run_timeout=self.settings.run_timeout_ms,
        )

    async def execute(
        self,
        language: str,
        code: str,
        stdin: Optional[str] = None,
        args: Optional[List[str]] = None,
    ) -> PistonExecuteResponseDTO:
        """
        Execute code on Piston.

        Raises:
            PistonError: Piston answered with a non-2xx status
            TransportError: Piston could not be reached or answered garbage
        """
        request = self.build_request(language, code, stdin, args)
        client = self._get_client()

        logger.info(
            "Submitting code to Piston",
            url=self.api_url,
            language=request.language,
            version=request.version,
            code_length=len(code),
        )

        try:
            response = await client.post(self.api_url, json=request.model_dump())
        except httpx.TimeoutException as e:
            raise TransportError(
                f"Piston timed out after {self.timeout:g}s", kind=ErrorKind.TIMEOUT, original_error=e
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Cannot reach Piston: {e}", original_error=e) from e

        if response.is_error:
            logger.error("Piston API error", status_code=response.status_code, response=response.text)
            raise PistonError(response.status_code, response.text)

        try:
            return PistonExecuteResponseDTO.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise TransportError(f"Malformed Piston response: {e}", original_error=e) from e

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
