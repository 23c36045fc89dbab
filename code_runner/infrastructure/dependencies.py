"""
Dependency wiring.

Builds the session manager with its infrastructure adapters.
"""

from typing import Optional

from code_runner.application.services.session_manager import ExecutionSessionManager
from code_runner.domain.value_objects import ExecutionMode
from code_runner.infrastructure.config import Settings, get_settings
from code_runner.infrastructure.http.host_client import HostApiClient
from code_runner.infrastructure.websocket.piston_socket import PistonSocketTransport


def create_session_manager(
    settings: Optional[Settings] = None,
    mode: Optional[ExecutionMode] = None,
) -> ExecutionSessionManager:
    """
    Create a session manager talking to the configured host.

    Args:
        settings: Application settings, defaults to the cached instance
        mode: Force a mode. Forcing interactive uses ``piston_ws_url``
            directly instead of probing the host.

    Raises:
        ValueError: If interactive mode is forced without ``piston_ws_url``
    """
    settings = settings or get_settings()
    host_client = HostApiClient(settings=settings)

    interactive_url = None
    if mode is ExecutionMode.INTERACTIVE:
        interactive_url = settings.piston_ws_url
        if not interactive_url:
            raise ValueError("Interactive mode needs AURORA_PISTON_WS_URL to be set")

    return ExecutionSessionManager(
        capability_port=host_client,
        batch_port=host_client,
        transport_port=PistonSocketTransport(connect_timeout=settings.probe_timeout_seconds),
        settings=settings,
        mode=mode,
        interactive_url=interactive_url,
    )
