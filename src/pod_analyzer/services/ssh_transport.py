"""SSH transport for the dispatcher, backed by asyncssh."""

from __future__ import annotations

import asyncio
from pathlib import Path

import asyncssh

from shared.models import HostTarget, SSHCredentials
from shared.observability import get_logger

logger = get_logger(__name__)

EXECUTABLE_MODE = 0o755
CLOSE_TIMEOUT_SECONDS = 5.0


class SSHTransport:
    """Opens connections, copies files and starts remote processes."""

    def __init__(
        self,
        credentials: SSHCredentials,
        connect_timeout: float = 30.0,
        known_hosts: str | None = None,
    ):
        self.credentials = credentials
        self.connect_timeout = connect_timeout
        self.known_hosts = known_hosts
        self._client_keys: list[asyncssh.SSHKey] | None = None

    def load_keys(self) -> None:
        """Read the private key up front so a bad key fails before dispatch.

        Raises:
            asyncssh.KeyImportError: If the key cannot be parsed or decrypted.
            OSError: If the key file cannot be read.
        """
        if self.credentials.private_key_path is None:
            return
        key = asyncssh.read_private_key(
            str(self.credentials.private_key_path.expanduser()),
            passphrase=self.credentials.passphrase,
        )
        self._client_keys = [key]

    async def connect(self, target: HostTarget) -> asyncssh.SSHClientConnection:
        if self.credentials.private_key_path is not None and self._client_keys is None:
            self.load_keys()
        return await asyncssh.connect(
            target.host,
            port=target.port,
            username=self.credentials.username,
            client_keys=self._client_keys,
            password=self.credentials.password,
            known_hosts=self.known_hosts,
            connect_timeout=self.connect_timeout,
        )

    async def copy(
        self,
        conn: asyncssh.SSHClientConnection,
        local_path: Path,
        remote_path: str,
        mode: int = EXECUTABLE_MODE,
    ) -> None:
        async with conn.start_sftp_client() as sftp:
            await sftp.put(str(local_path), remote_path)
            await sftp.chmod(remote_path, mode)

    async def start(
        self,
        conn: asyncssh.SSHClientConnection,
        command: str,
    ) -> asyncssh.SSHClientProcess:
        # encoding=None keeps remote output as raw bytes
        return await conn.create_process(command, encoding=None)

    async def close(self, conn: asyncssh.SSHClientConnection) -> None:
        """Close a connection; failures are logged, never raised."""
        try:
            conn.close()
            await asyncio.wait_for(conn.wait_closed(), timeout=CLOSE_TIMEOUT_SECONDS)
        except (asyncssh.Error, OSError, asyncio.TimeoutError) as e:
            logger.warning("Error closing SSH connection", error=str(e))
