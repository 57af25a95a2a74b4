"""Kubernetes API client construction."""

from __future__ import annotations

from pathlib import Path

from kubernetes import client, config

from shared.observability import get_logger

logger = get_logger(__name__)


class KubeConfigError(Exception):
    """Raised when no usable Kubernetes API client can be built."""

    pass


def build_api_client(kube_config_path: str | Path | None = None) -> client.CoreV1Api:
    """Build a CoreV1 API client.

    With an explicit path the kubeconfig at that path (current context) is
    used and any failure is fatal. Without one, in-cluster configuration is
    tried first, then the default kubeconfig.

    Raises:
        KubeConfigError: If the configuration cannot be read or loaded.
    """
    if kube_config_path is not None:
        path = Path(kube_config_path).expanduser()
        if not path.is_file():
            raise KubeConfigError(f"Kubeconfig file not found: {path}")
        try:
            api_client = config.new_client_from_config(config_file=str(path))
        except (config.ConfigException, OSError, ValueError) as e:
            raise KubeConfigError(f"Cannot load kubeconfig {path}: {e}") from e
        logger.debug("Loaded kubeconfig", path=str(path))
        return client.CoreV1Api(api_client)

    try:
        # Try in-cluster config first
        config.load_incluster_config()
        logger.debug("Using in-cluster configuration")
    except config.ConfigException:
        # Fall back to kubeconfig
        try:
            config.load_kube_config()
        except (config.ConfigException, OSError) as e:
            raise KubeConfigError(f"No usable Kubernetes configuration: {e}") from e
        logger.debug("Using default kubeconfig")

    return client.CoreV1Api()
