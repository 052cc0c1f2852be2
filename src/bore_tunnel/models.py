"""Tunnel state and endpoint models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

HTTPS_PORT = 443


class SupervisorState(str, Enum):
    """Lifecycle state of a tunnel supervisor."""

    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


class TunnelInfo(BaseModel):
    """Public endpoint assigned by the bore server."""

    model_config = ConfigDict(frozen=True)

    public_url: str = Field(description="https URL of the public endpoint")
    public_port: int = Field(ge=1, le=65535, description="Remote port assigned by bore")

    @classmethod
    def from_endpoint(cls, host: str, port: int) -> "TunnelInfo":
        """Derive the public URL from the host and port bore reported.

        The port suffix is omitted for 443.
        """
        if port == HTTPS_PORT:
            public_url = f"https://{host}"
        else:
            public_url = f"https://{host}:{port}"
        return cls(public_url=public_url, public_port=port)
