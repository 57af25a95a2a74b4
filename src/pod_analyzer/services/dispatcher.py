"""Fleet dispatcher.

Copies the collector artifact to every host of a host list over SSH, runs
it in collector mode and gathers its output.

Hosts are processed strictly one after another. Each host walks
Connecting -> Copying -> Executing and ends in exactly one HostStatus.
A failed or timed-out host is recorded and the loop moves on; nothing is
retried and no host failure aborts the run.

On timeout the local side stops waiting and closes the channel and the
connection. Whether the remote process terminates is up to the remote
sshd; it is not guaranteed.
"""

from __future__ import annotations

import asyncio
import re
import shlex
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, BinaryIO

import structlog

from shared.config import RunMode
from shared.models import (
    DEFAULT_SSH_PORT,
    CollectorArgs,
    DispatchRun,
    HostResult,
    HostStatus,
    HostTarget,
    SSHCredentials,
)
from shared.observability import get_logger

from .ssh_transport import SSHTransport

logger = get_logger(__name__)

DEFAULT_HOST_TIMEOUT_SECONDS = 300.0
DEFAULT_CHUNK_SIZE = 65536
STDERR_TAIL_BYTES = 512

TransportFactory = Callable[[SSHCredentials], SSHTransport]


class HostListError(Exception):
    """Raised when the host list file cannot be read."""

    pass


def read_hosts(path: str | Path) -> list[str]:
    """Read a newline-delimited host list.

    Each non-blank line is one ``host`` or ``host:port`` entry.

    Raises:
        HostListError: If the file cannot be read.
    """
    try:
        with open(path, encoding="utf-8") as f:
            return [line.strip() for line in f if line.strip()]
    except (OSError, UnicodeDecodeError) as e:
        raise HostListError(f"Cannot read host list {path}: {e}") from e


def build_remote_command(remote_binary_path: str, args: CollectorArgs) -> str:
    """Command line that runs the copied artifact in collector mode."""
    argv = [remote_binary_path, "--mode", RunMode.COLLECTOR.value]
    if args.config_path:
        argv += ["--config-path", args.config_path]
    argv += ["--pattern", args.pattern, *args.extra]
    return shlex.join(argv)


def output_file_stem(entry: str, default_port: int = DEFAULT_SSH_PORT) -> str:
    """File name stem for a host's output, ``<host>_<port>``."""
    try:
        target = HostTarget.parse(entry, default_port)
    except ValueError:
        return re.sub(r"[^A-Za-z0-9._-]", "_", entry) or "unknown"
    return re.sub(r"[^A-Za-z0-9._-]", "_", f"{target.host}_{target.port}")


def _describe(error: BaseException) -> str:
    if isinstance(error, asyncio.TimeoutError):
        return "timed out"
    return str(error) or type(error).__name__


class Dispatcher:
    """Runs the collector on remote hosts, one host at a time."""

    def __init__(
        self,
        transport_factory: TransportFactory = SSHTransport,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        default_port: int = DEFAULT_SSH_PORT,
    ):
        self.transport_factory = transport_factory
        self.chunk_size = chunk_size
        self.default_port = default_port

    async def dispatch(
        self,
        hosts: Sequence[str],
        credentials: SSHCredentials,
        local_binary_path: str | Path,
        remote_binary_path: str,
        collector_args: CollectorArgs,
        per_host_timeout: float = DEFAULT_HOST_TIMEOUT_SECONDS,
        sink: BinaryIO | None = None,
        output_dir: str | Path | None = None,
    ) -> DispatchRun:
        """Dispatch the collector to every host.

        Args:
            hosts: Host list entries, processed in order
            credentials: SSH login
            local_binary_path: Collector artifact to copy
            remote_binary_path: Destination path on each host
            collector_args: Arguments forwarded to the remote collector
            per_host_timeout: Ceiling in seconds for one host's whole sequence
            sink: Stream receiving every host's stdout, in host order
            output_dir: Directory receiving one ``<host>_<port>.out`` per host

        Returns:
            DispatchRun with one HostResult per host

        Raises:
            OSError, asyncssh.KeyImportError: If the private key cannot be
                loaded. This is a setup failure and no host is contacted.
        """
        transport = self.transport_factory(credentials)
        transport.load_keys()

        command = build_remote_command(remote_binary_path, collector_args)
        run = DispatchRun(hosts=list(hosts))
        logger.info("Starting dispatch", hosts=len(run.hosts), command=command)

        for entry in run.hosts:
            with structlog.contextvars.bound_contextvars(host=entry):
                result = await self._run_host(
                    transport,
                    entry,
                    Path(local_binary_path),
                    remote_binary_path,
                    command,
                    per_host_timeout,
                    sink,
                )
                if output_dir is not None:
                    self._write_host_output(result, Path(output_dir))
            run.results.append(result)

        logger.info(
            "Dispatch complete",
            succeeded=len(run.succeeded),
            failed=len(run.failed),
        )
        return run

    async def _run_host(
        self,
        transport: SSHTransport,
        entry: str,
        local_binary_path: Path,
        remote_binary_path: str,
        command: str,
        per_host_timeout: float,
        sink: BinaryIO | None,
    ) -> HostResult:
        started_at = datetime.now(UTC)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + per_host_timeout

        def remaining() -> float:
            return max(0.0, deadline - loop.time())

        def finish(status: HostStatus, **fields: Any) -> HostResult:
            result = HostResult(
                host=entry,
                status=status,
                started_at=started_at,
                finished_at=datetime.now(UTC),
                **fields,
            )
            if status == HostStatus.SUCCEEDED:
                logger.info("Host succeeded", output_bytes=len(result.raw_output))
            else:
                logger.error("Host failed", status=status.value, error=result.error)
            return result

        # Connecting
        try:
            target = HostTarget.parse(entry, self.default_port)
            logger.debug("Connecting", port=target.port)
            conn = await asyncio.wait_for(transport.connect(target), remaining())
        except Exception as e:
            return finish(HostStatus.CONNECT_FAILED, error=_describe(e))

        try:
            # Copying
            try:
                logger.debug(
                    "Copying collector",
                    local=str(local_binary_path),
                    remote=remote_binary_path,
                )
                await asyncio.wait_for(
                    transport.copy(conn, local_binary_path, remote_binary_path),
                    remaining(),
                )
            except Exception as e:
                return finish(HostStatus.COPY_FAILED, error=_describe(e))

            # Executing
            try:
                logger.debug("Executing", command=command)
                process = await asyncio.wait_for(transport.start(conn, command), remaining())
            except asyncio.TimeoutError:
                return finish(HostStatus.TIMEOUT, partial=True, error="timed out starting command")
            except Exception as e:
                return finish(HostStatus.EXEC_FAILED, error=_describe(e))

            stdout = bytearray()
            stderr = bytearray()
            try:
                await asyncio.wait_for(self._drain(process, stdout, stderr, sink), remaining())
            except asyncio.TimeoutError:
                process.close()
                return finish(
                    HostStatus.TIMEOUT,
                    raw_output=bytes(stdout),
                    partial=True,
                    error=f"no exit within {per_host_timeout:g}s",
                )
            except Exception as e:
                process.close()
                return finish(
                    HostStatus.EXEC_FAILED,
                    raw_output=bytes(stdout),
                    partial=True,
                    error=_describe(e),
                )

            exit_status = process.exit_status
            if exit_status != 0:
                tail = bytes(stderr[-STDERR_TAIL_BYTES:]).decode("utf-8", "replace").strip()
                if exit_status is None:
                    reason = "terminated without exit status"
                else:
                    reason = f"exit status {exit_status}"
                return finish(
                    HostStatus.EXEC_FAILED,
                    raw_output=bytes(stdout),
                    exit_status=exit_status,
                    error=f"{reason}: {tail}" if tail else reason,
                )
            return finish(HostStatus.SUCCEEDED, raw_output=bytes(stdout), exit_status=0)
        finally:
            await transport.close(conn)

    async def _drain(
        self,
        process: Any,
        stdout: bytearray,
        stderr: bytearray,
        sink: BinaryIO | None,
    ) -> None:
        """Stream the process output while waiting for its channel to close."""

        async def pump_stdout() -> None:
            while chunk := await process.stdout.read(self.chunk_size):
                stdout.extend(chunk)
                if sink is not None:
                    sink.write(chunk)
                    sink.flush()

        async def pump_stderr() -> None:
            while chunk := await process.stderr.read(self.chunk_size):
                stderr.extend(chunk)

        await asyncio.gather(pump_stdout(), pump_stderr(), process.wait_closed())

    def _write_host_output(self, result: HostResult, output_dir: Path) -> None:
        path = output_dir / f"{output_file_stem(result.host, self.default_port)}.out"
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(result.raw_output)
        except OSError as e:
            logger.error("Cannot write host output", path=str(path), error=str(e))
