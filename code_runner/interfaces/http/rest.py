"""
REST API Interface

FastAPI application serving the host side of the Code mini-app:
the capability endpoint used for mode selection and the batch
execution endpoint that proxies to Piston.
"""

import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from code_runner import __version__
from code_runner.domain.errors import CodeRunnerError, PistonError
from code_runner.infrastructure.config import Settings, get_settings
from code_runner.infrastructure.http.dto import (
    CapabilityResponseDTO,
    CapabilityUnavailableDTO,
    ExecuteRequestDTO,
    ExecuteResponseDTO,
    HealthResponseDTO,
)
from code_runner.infrastructure.http.piston_client import PistonClient
from code_runner.infrastructure.logging import configure_logging, get_logger


logger = get_logger(__name__)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Log startup and close the Piston client on shutdown.
    """
    settings: Settings = app.state.settings
    logger.info(
        "Code host starting",
        version=__version__,
        piston_api_url=settings.piston_api_url,
        interactive=bool(settings.piston_ws_url),
    )

    yield

    await app.state.piston_client.close()
    logger.info("Code host shutdown complete")


def create_app(
    settings: Optional[Settings] = None,
    piston_client: Optional[PistonClient] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Application settings, defaults to the cached instance
        piston_client: Piston client, built from settings by default

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Aurora Code Host",
        description="Capability and batch execution endpoints for the Code mini-app",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.piston_client = piston_client or PistonClient(settings=settings)
    app.state.started_at = time.time()

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle malformed request bodies."""
        logger.warning("Request validation failed", errors=exc.errors(), path=request.url.path)
        return error_response(status.HTTP_400_BAD_REQUEST, "Invalid request body")

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.error(
            "Unexpected error",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
        )
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc) or "Unknown error")

    @app.get("/health", response_model=HealthResponseDTO, tags=["health"])
    async def health_check() -> HealthResponseDTO:
        return HealthResponseDTO(
            status="healthy",
            version=__version__,
            interactive=bool(settings.piston_ws_url),
            uptime_seconds=time.time() - app.state.started_at,
        )

    @app.get(
        "/api/code/ws",
        summary="Interactive execution capability",
        description="Announces the Piston WebSocket URL when interactive execution is configured",
        tags=["execution"],
    )
    async def capability_endpoint():
        if not settings.piston_ws_url:
            body = CapabilityUnavailableDTO(
                error="Interactive execution unavailable",
                message="AURORA_PISTON_WS_URL is not configured. Use the REST API for execution.",
                hint="Set AURORA_PISTON_WS_URL to enable interactive execution",
            )
            return JSONResponse(status_code=status.HTTP_501_NOT_IMPLEMENTED, content=body.model_dump())

        body = CapabilityResponseDTO(
            piston_ws_url=settings.piston_ws_url,
            message="Connect directly to the Piston WebSocket URL",
        )
        return body.model_dump(by_alias=True)

    @app.post(
        "/api/code/execute",
        summary="Execute code in batch mode",
        description="Runs code on Piston with pre-supplied stdin and returns its output",
        tags=["execution"],
    )
    async def execute_endpoint(request: ExecuteRequestDTO):
        if not request.code or not request.language:
            return error_response(status.HTTP_400_BAD_REQUEST, "Code and language are required")

        logger.info(
            "Execution request received",
            language=request.language,
            code_length=len(request.code),
            stdin_length=len(request.stdin or ""),
        )

        client: PistonClient = app.state.piston_client
        try:
            result = await client.execute(
                language=request.language,
                code=request.code,
                stdin=request.stdin,
                args=request.args,
            )
        except PistonError:
            return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Code execution failed")
        except CodeRunnerError as e:
            logger.error("Execution proxy failed", error=e.message)
            return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, e.message)

        stage = result.run
        if result.compile is not None and result.compile.stderr:
            stage = result.compile

        body = ExecuteResponseDTO(stdout=stage.stdout, stderr=stage.stderr, exit_code=stage.code)
        return body.model_dump(by_alias=True, exclude={"error"})

    return app


def main(host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Run the host service with uvicorn."""
    import uvicorn

    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)

    uvicorn.run(
        create_app(settings),
        host=host or settings.server_host,
        port=port or settings.server_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
