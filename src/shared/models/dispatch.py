"""Remote dispatch models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import Field, model_validator

from .base import AnalyzerBaseModel

DEFAULT_SSH_PORT = 22


class HostStatus(str, Enum):
    """Final state of one host in a dispatch run."""

    SUCCEEDED = "SUCCEEDED"
    CONNECT_FAILED = "CONNECT_FAILED"
    COPY_FAILED = "COPY_FAILED"
    EXEC_FAILED = "EXEC_FAILED"
    TIMEOUT = "TIMEOUT"


class HostTarget(AnalyzerBaseModel):
    """SSH endpoint parsed from a host list entry."""

    host: str
    port: int = Field(default=DEFAULT_SSH_PORT, ge=1, le=65535)

    @classmethod
    def parse(cls, entry: str, default_port: int = DEFAULT_SSH_PORT) -> HostTarget:
        """Parse ``host`` or ``host:port``; ``default_port`` applies to bare hosts.

        Bracketed IPv6 literals (``[::1]:2222``) are accepted; a bare IPv6
        address without brackets is taken as a host without a port.
        """
        entry = entry.strip()
        if entry.startswith("["):
            host, _, rest = entry[1:].partition("]")
            port = rest[1:] if rest.startswith(":") else ""
        elif entry.count(":") == 1:
            host, port = entry.split(":")
        else:
            host, port = entry, ""
        if not host:
            raise ValueError(f"Invalid host entry: {entry!r}")
        return cls(host=host, port=int(port) if port else default_port)

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


class SSHCredentials(AnalyzerBaseModel):
    """Login for remote hosts: a private key file or a password."""

    username: str
    private_key_path: Path | None = None
    passphrase: str | None = Field(default=None, repr=False)
    password: str | None = Field(default=None, repr=False)

    @model_validator(mode="after")
    def check_auth_method(self) -> SSHCredentials:
        if self.private_key_path is None and not self.password:
            raise ValueError("Either a private key path or a password is required")
        return self


class HostResult(AnalyzerBaseModel):
    """Outcome of running the collector on one host."""

    host: str
    status: HostStatus
    raw_output: bytes = b""
    partial: bool = False
    exit_status: int | None = None
    error: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == HostStatus.SUCCEEDED


class DispatchRun(AnalyzerBaseModel):
    """All host results of one dispatch invocation, in host-list order."""

    hosts: list[str] = Field(default_factory=list)
    results: list[HostResult] = Field(default_factory=list)

    @property
    def succeeded(self) -> list[HostResult]:
        return [r for r in self.results if r.succeeded]

    @property
    def failed(self) -> list[HostResult]:
        return [r for r in self.results if not r.succeeded]


class CollectorArgs(AnalyzerBaseModel):
    """Arguments forwarded to the remote collector."""

    pattern: str
    config_path: str | None = Field(
        default=None, description="Kubeconfig path on the remote host"
    )
    extra: list[str] = Field(default_factory=list)
