"""Configuration models for the bore tunnel supervisor."""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common.utils import sanitize_log_data, validate_non_empty_string

DEFAULT_SERVER_HOST = "bore.pub"


class TunnelConfig(BaseModel):
    """What to expose and where to expose it."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )

    local_port: int = Field(ge=1, le=65535, description="Local port to expose")
    server_host: str = Field(
        default=DEFAULT_SERVER_HOST, description="bore server to tunnel through"
    )
    secret: str | None = Field(
        default=None, description="Optional secret for authenticated bore servers"
    )

    @field_validator("server_host")
    @classmethod
    def validate_server_host(cls, v: str) -> str:
        """Validate server host is not empty."""
        return validate_non_empty_string(v, "Server host")

    @field_validator("secret")
    @classmethod
    def validate_secret(cls, v: str | None) -> str | None:
        """Treat an empty secret as no secret."""
        if v is not None and not v:
            return None
        return v

    def to_command_args(self) -> list[str]:
        """Build the ``bore local`` argument list for this tunnel."""
        args = ["local", str(self.local_port), "--to", self.server_host]
        if self.secret:
            args.extend(["--secret", self.secret])
        return args

    def to_log_dict(self) -> dict[str, Any]:
        """Config as a dict safe to log."""
        return sanitize_log_data(self.model_dump())


class SupervisorSettings(BaseModel):
    """Timeouts and binary discovery settings for the supervisor."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        extra="forbid",
    )

    startup_timeout: float = Field(
        default=30.0, gt=0, description="Seconds to wait for the readiness notice"
    )
    stop_timeout: float = Field(
        default=5.0, gt=0, description="Grace window before bore is force killed"
    )
    verify_timeout: float = Field(
        default=2.0, gt=0, description="Seconds allowed for `bore --version`"
    )

    executable_name: str = Field(default="bore", min_length=1)
    binary_prefix: str = Field(default="bore", min_length=1)
    install_root: Path | None = Field(
        default=None,
        description="Directory holding binaries/; defaults to the package directory",
    )
    binary_path: str | None = Field(
        default=None, description="Explicit bore binary, skips platform lookup"
    )

    read_chunk_size: int = Field(default=4096, ge=64, le=1 << 20)

    def resolved_install_root(self) -> Path:
        """Return the directory that contains the bundled ``binaries/`` tree."""
        if self.install_root is not None:
            return self.install_root
        return Path(__file__).resolve().parent
