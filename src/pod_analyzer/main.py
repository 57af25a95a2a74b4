"""pod-analyzer entry point.

One executable, two explicit modes:
- dispatcher: read a host list, copy this artifact to each host over SSH
  and run it there in collector mode
- collector: scan the cluster reachable from this host and report
"""

from __future__ import annotations

import asyncio
import os
import sys
from contextlib import ExitStack
from functools import partial
from pathlib import Path

import typer
from pydantic import ValidationError

from shared.config import LogFormat, LogLevel, RunMode, Settings, get_settings
from shared.models import CollectorArgs, SSHCredentials
from shared.observability import get_logger, setup_logging

from . import __version__
from .services.collector import ListError, collect
from .services.dispatcher import Dispatcher, HostListError, read_hosts
from .services.kube_client import KubeConfigError, build_api_client
from .services.reporter import (
    OutputDestinationError,
    render_dispatch_summary,
    write_detail,
    write_summary,
)
from .services.ssh_transport import SSHTransport

logger = get_logger(__name__)

app = typer.Typer(
    help="Container resource inventory across a fleet of Kubernetes clusters",
    add_completion=False,
)


def run_collector(
    settings: Settings,
    config_path: str | None,
    pattern: str,
    output: Path | None,
    report: bool,
    report_file: Path,
) -> int:
    """Scan the local cluster and write the reports. Returns an exit code."""
    try:
        api = build_api_client(config_path or None)
        cluster_report = collect(api, pattern, page_size=settings.kubernetes.page_size)
    except (KubeConfigError, ListError) as e:
        logger.error("Collection failed", error=str(e))
        return 1

    exit_code = 0
    try:
        write_summary(cluster_report, output)
    except OutputDestinationError as e:
        logger.error("Summary output failed", error=str(e))
        exit_code = 1

    if report:
        try:
            write_detail(cluster_report, report_file)
        except OutputDestinationError as e:
            logger.error("Detail report failed", error=str(e))
            exit_code = 1

    return exit_code


def run_dispatcher(
    settings: Settings,
    hosts_file: Path,
    credentials: SSHCredentials,
    local_binary: Path,
    remote_binary: str,
    collector_args: CollectorArgs,
    timeout: float,
    output: Path | None,
    output_dir: Path | None,
) -> int:
    """Fan the collector out to every listed host. Returns an exit code.

    Per-host failures are reported but do not change the exit code.
    """
    try:
        hosts = read_hosts(hosts_file)
    except HostListError as e:
        logger.error("Cannot read host list", error=str(e))
        return 1
    if not local_binary.is_file():
        logger.error("Collector artifact not found", path=str(local_binary))
        return 1

    dispatcher = Dispatcher(
        transport_factory=partial(
            SSHTransport,
            connect_timeout=settings.ssh.connect_timeout_seconds,
            known_hosts=settings.ssh.known_hosts,
        ),
        chunk_size=settings.dispatch.chunk_size,
        default_port=settings.ssh.port,
    )

    with ExitStack() as stack:
        try:
            if output is None:
                sink = sys.stdout.buffer
            else:
                sink = stack.enter_context(output.open("wb"))
        except OSError as e:
            logger.error("Cannot open output file", path=str(output), error=str(e))
            return 1

        try:
            run = asyncio.run(
                dispatcher.dispatch(
                    hosts,
                    credentials,
                    local_binary,
                    remote_binary,
                    collector_args,
                    per_host_timeout=timeout,
                    sink=sink,
                    output_dir=output_dir,
                )
            )
        except (OSError, ValueError) as e:
            # Private key loading; asyncssh.KeyImportError is a ValueError
            logger.error("Cannot load SSH credentials", error=str(e))
            return 1

    render_dispatch_summary(run)
    return 0


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"pod-analyzer {__version__}")
        raise typer.Exit()


MODE_OPTION = typer.Option(RunMode.DISPATCHER, "--mode", help="Run as dispatcher or collector.")
CONFIG_PATH_OPTION = typer.Option(None, "--config-path", help="Path to kubeconfig file.")
PATTERN_OPTION = typer.Option(None, "--pattern", help="Image substring of target containers.")
OUTPUT_OPTION = typer.Option(None, "--output", help="Output file (default: stdout).")
REPORT_OPTION = typer.Option(
    False, "--report/--no-report", help="Also write the detail JSON report."
)
REPORT_FILE_OPTION = typer.Option(None, "--report-file", help="Detail report path.")
HOSTS_OPTION = typer.Option(None, "--hosts", help="Newline-delimited host list.")
USERNAME_OPTION = typer.Option(None, "--username", help="SSH login user.")
PRIVATE_KEY_OPTION = typer.Option(None, "--private-key", help="SSH private key file.")
PASSPHRASE_OPTION = typer.Option(
    None, "--passphrase", envvar="POD_ANALYZER_SSH_PASSPHRASE", help="Private key passphrase."
)
PASSWORD_OPTION = typer.Option(
    None, "--password", envvar="POD_ANALYZER_SSH_PASSWORD", help="SSH password."
)
LOCAL_BIN_OPTION = typer.Option(
    None, "--local-bin", help="Collector artifact to copy (default: this executable)."
)
REMOTE_BIN_OPTION = typer.Option(None, "--remote-bin", help="Collector path on remote hosts.")
REMOTE_CONFIG_PATH_OPTION = typer.Option(
    None,
    "--remote-config-path",
    help="Kubeconfig path on remote hosts (default: --config-path).",
)
TIMEOUT_OPTION = typer.Option(None, "--timeout", help="Per-host timeout in seconds.")
OUTPUT_DIR_OPTION = typer.Option(
    None, "--output-dir", help="Also write each host's output to its own file."
)
LOG_LEVEL_OPTION = typer.Option(None, "--log-level", help="Logging level.")
LOG_FORMAT_OPTION = typer.Option(None, "--log-format", help="Logging format.")
VERSION_OPTION = typer.Option(
    False, "--version", callback=_print_version, is_eager=True, help="Show the version and exit."
)


@app.command()
def main_command(
    mode: RunMode = MODE_OPTION,
    config_path: str | None = CONFIG_PATH_OPTION,
    pattern: str | None = PATTERN_OPTION,
    output: Path | None = OUTPUT_OPTION,
    report: bool = REPORT_OPTION,
    report_file: Path | None = REPORT_FILE_OPTION,
    hosts: Path | None = HOSTS_OPTION,
    username: str | None = USERNAME_OPTION,
    private_key: Path | None = PRIVATE_KEY_OPTION,
    passphrase: str | None = PASSPHRASE_OPTION,
    password: str | None = PASSWORD_OPTION,
    local_bin: Path | None = LOCAL_BIN_OPTION,
    remote_bin: str | None = REMOTE_BIN_OPTION,
    remote_config_path: str | None = REMOTE_CONFIG_PATH_OPTION,
    timeout: float | None = TIMEOUT_OPTION,
    output_dir: Path | None = OUTPUT_DIR_OPTION,
    log_level: LogLevel | None = LOG_LEVEL_OPTION,
    log_format: LogFormat | None = LOG_FORMAT_OPTION,
    version: bool = VERSION_OPTION,
) -> None:
    """Inventory container CPU/memory limits and requests."""
    settings = get_settings()
    setup_logging(log_level=log_level, log_format=log_format)

    if timeout is not None and timeout <= 0:
        raise typer.BadParameter("must be positive", param_hint="--timeout")

    config_path = settings.kubernetes.config_path if config_path is None else config_path
    pattern = pattern or settings.kubernetes.image_pattern

    if mode == RunMode.COLLECTOR:
        exit_code = run_collector(
            settings,
            config_path,
            pattern,
            output,
            report,
            report_file or Path(settings.kubernetes.report_file),
        )
        raise typer.Exit(code=exit_code)

    key_path = private_key or settings.ssh.private_key_path
    try:
        credentials = SSHCredentials(
            username=username or settings.ssh.username,
            private_key_path=key_path,
            passphrase=passphrase or settings.ssh.passphrase,
            password=password or settings.ssh.password,
        )
    except ValidationError as e:
        logger.error("Invalid SSH credentials", error=str(e))
        raise typer.Exit(code=1)

    exit_code = run_dispatcher(
        settings,
        hosts or Path(settings.dispatch.hosts_file),
        credentials,
        local_bin or Path(os.path.realpath(sys.argv[0])),
        remote_bin or settings.dispatch.remote_binary_path,
        CollectorArgs(
            pattern=pattern,
            config_path=remote_config_path or config_path or None,
        ),
        settings.dispatch.host_timeout_seconds if timeout is None else timeout,
        output,
        output_dir,
    )
    raise typer.Exit(code=exit_code)


def main() -> None:
    """Entry point for console script."""
    app()


if __name__ == "__main__":
    main()
