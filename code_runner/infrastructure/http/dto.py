"""
HTTP wire models.

Request/response shapes of the host endpoints (``/api/code/ws`` and
``/api/code/execute``) and of Piston's REST ``execute`` endpoint.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ExecuteRequestDTO(BaseModel):
    """Batch execution request accepted by the host."""

    language: str = Field(default="", description="Sandbox language identifier", examples=["python"])
    code: str = Field(default="", description="Full source to execute", examples=["print(input())"])
    stdin: Optional[str] = Field(default="", description="Pre-supplied stdin")
    args: List[str] = Field(default_factory=list, description="Command line arguments")


class ExecuteResponseDTO(BaseModel):
    """Batch execution response. Any subset of fields may be present."""

    model_config = ConfigDict(populate_by_name=True)

    stdout: Optional[str] = None
    stderr: Optional[str] = None
    error: Optional[str] = None
    exit_code: Optional[int] = Field(default=None, alias="exitCode")


class CapabilityResponseDTO(BaseModel):
    """Capability probe response announcing the interactive sandbox."""

    model_config = ConfigDict(populate_by_name=True)

    piston_ws_url: Optional[str] = Field(default=None, alias="pistonWsUrl")
    message: Optional[str] = None


class CapabilityUnavailableDTO(BaseModel):
    """Capability probe response when interactive execution is not configured."""

    error: str
    message: str
    hint: Optional[str] = None


class HealthResponseDTO(BaseModel):
    """Health check response."""

    status: str = "healthy"
    version: str
    interactive: bool = False
    uptime_seconds: Optional[float] = None


class PistonFileDTO(BaseModel):
    name: str
    content: str


class PistonExecuteRequestDTO(BaseModel):
    """Request body of Piston's REST execute endpoint."""

    language: str
    version: str
    files: List[PistonFileDTO]
    stdin: str = ""
    args: List[str] = Field(default_factory=list)
    run_timeout: int = 10000


class PistonStageDTO(BaseModel):
    """Output of one Piston stage (compile or run)."""

    stdout: str = ""
    stderr: str = ""
    code: Optional[int] = None
    signal: Optional[str] = None
    output: str = ""


class PistonExecuteResponseDTO(BaseModel):
    """Response body of Piston's REST execute endpoint."""

    language: Optional[str] = None
    version: Optional[str] = None
    run: PistonStageDTO
    compile: Optional[PistonStageDTO] = None
