"""pod-analyzer services."""

from .collector import ListError, collect
from .dispatcher import Dispatcher, HostListError, build_remote_command, read_hosts
from .kube_client import KubeConfigError, build_api_client
from .reporter import (
    OutputDestinationError,
    render_detail,
    render_dispatch_summary,
    render_summary,
    write_detail,
    write_summary,
)
from .ssh_transport import SSHTransport

__all__ = [
    # Collector
    "collect",
    "ListError",
    "build_api_client",
    "KubeConfigError",
    # Reporter
    "render_summary",
    "render_detail",
    "render_dispatch_summary",
    "write_summary",
    "write_detail",
    "OutputDestinationError",
    # Dispatcher
    "Dispatcher",
    "HostListError",
    "SSHTransport",
    "build_remote_command",
    "read_hosts",
]
