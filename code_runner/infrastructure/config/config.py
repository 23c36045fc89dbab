"""
Environment configuration for the code runner.

Loads configuration from environment variables (prefix ``AURORA_``) and
an optional ``.env`` file using pydantic-settings.
"""

from functools import lru_cache
from typing import Dict, List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="AURORA_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Host Configuration
    host_url: str = Field(
        default="http://localhost:3000",
        description="Base URL of the host serving the capability and execute endpoints",
    )
    capability_path: str = Field(default="/api/code/ws", description="Capability probe path")
    execute_path: str = Field(default="/api/code/execute", description="Batch execution path")
    probe_timeout_seconds: float = Field(default=5.0, gt=0, le=60, description="Capability probe timeout")

    # Piston Configuration
    piston_api_url: str = Field(
        default="https://emkc.org/api/v2/piston/execute",
        description="Piston REST execute endpoint used by the host service",
    )
    piston_ws_url: Optional[str] = Field(
        default=None,
        description="Piston WebSocket endpoint; enables interactive mode when set",
    )

    # Execution Configuration
    default_language: str = Field(default="python")
    language_versions: Dict[str, str] = Field(
        default_factory=lambda: {
            "python": "3.10.0",
            "javascript": "18.15.0",
            "typescript": "5.0.3",
        }
    )
    run_timeout_ms: int = Field(
        default=10000, ge=100, le=600000, description="Sandbox-side run timeout in milliseconds"
    )
    run_timeout_seconds: float = Field(
        default=30.0, ge=0, le=3600, description="Client-side run timeout in seconds, 0 disables it"
    )
    stderr_noise_patterns: List[str] = Field(
        default_factory=lambda: ["isolate:", "cgroup", "Failed to create control group"],
        description="Substrings marking sandbox infrastructure lines on stderr",
    )

    # Server Configuration
    server_host: str = Field(default="0.0.0.0")
    server_port: int = Field(default=3000, ge=1, le=65535)

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["text", "json"] = Field(
        default="text", description="Logging format - text for human-readable, json for structured logs"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return v.upper()

    def version_for(self, language: str) -> str:
        """Runtime version for a language, falling back to the default language's."""
        return self.language_versions.get(
            language, self.language_versions.get(self.default_language, "3.10.0")
        )

    @property
    def capability_url(self) -> str:
        return f"{self.host_url.rstrip('/')}{self.capability_path}"

    @property
    def execute_url(self) -> str:
        return f"{self.host_url.rstrip('/')}{self.execute_path}"


@lru_cache
def get_settings() -> Settings:
    """Get the cached settings instance."""
    return Settings()
