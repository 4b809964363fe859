"""Pydantic models for jsonsmd configuration validation."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from jsonsmd.rpc.smd import CONTENT_TYPE_PATTERN, ENVELOPE_TYPES, ENV_JSONRPC_1

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class ServerConfig(BaseModel):
    """HTTP server settings.

    Attributes:
        host: Interface to bind. Defaults to localhost only.
        port: TCP port to listen on.
        log_level: Level for the rotating server log.
        log_dir: Directory for server.log. No file logging when unset.
        max_body_size: Largest accepted request body in bytes.
        max_concurrent: Connections handled at the same time.
    """

    model_config = ConfigDict(extra="forbid")

    host: str = "127.0.0.1"
    port: int = Field(default=8765, ge=0, le=65535)
    log_level: LogLevel = "INFO"
    log_dir: Path | None = None
    max_body_size: int = Field(default=1_048_576, gt=0)
    max_concurrent: int = Field(default=32, gt=0)

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v: object) -> object:
        """Accept lowercase level names."""
        return v.upper() if isinstance(v, str) else v


class SmdConfig(BaseModel):
    """Service map metadata applied to the dispatcher."""

    model_config = ConfigDict(extra="forbid")

    target: str | None = None
    id: str | None = None
    description: str | None = None
    envelope: str = ENV_JSONRPC_1
    content_type: str = "application/json"
    dojo_compatible: bool = False

    @field_validator("envelope")
    @classmethod
    def validate_envelope(cls, v: str) -> str:
        if v not in ENVELOPE_TYPES:
            raise ValueError(f"envelope must be one of {', '.join(ENVELOPE_TYPES)}")
        return v

    @field_validator("content_type")
    @classmethod
    def validate_content_type(cls, v: str) -> str:
        if not CONTENT_TYPE_PATTERN.search(v):
            raise ValueError(f"invalid content type: {v!r}")
        return v


class Config(BaseModel):
    """Root configuration model."""

    model_config = ConfigDict(extra="forbid")

    server: ServerConfig = Field(default_factory=ServerConfig)
    smd: SmdConfig = Field(default_factory=SmdConfig)
    smd_cache: Path | None = None
