"""Pytest configuration and shared fixtures."""

import os
from collections.abc import Callable
from typing import Any
from unittest.mock import MagicMock

import pytest
from kubernetes import client

# Set test environment before importing settings
os.environ["POD_ANALYZER_LOG_LEVEL"] = "DEBUG"
os.environ["POD_ANALYZER_LOG_FORMAT"] = "text"


def make_container(
    image: str,
    limits: dict[str, str] | None = None,
    requests: dict[str, str] | None = None,
    name: str = "main",
) -> client.V1Container:
    return client.V1Container(
        name=name,
        image=image,
        resources=client.V1ResourceRequirements(limits=limits, requests=requests),
    )


def make_pod(name: str, namespace: str, containers: list[client.V1Container]) -> client.V1Pod:
    return client.V1Pod(
        metadata=client.V1ObjectMeta(name=name, namespace=namespace),
        spec=client.V1PodSpec(containers=containers),
    )


def namespace_list(*names: str, continue_token: str | None = None) -> client.V1NamespaceList:
    return client.V1NamespaceList(
        items=[client.V1Namespace(metadata=client.V1ObjectMeta(name=n)) for n in names],
        metadata=client.V1ListMeta(_continue=continue_token),
    )


def pod_list(*pods: client.V1Pod, continue_token: str | None = None) -> client.V1PodList:
    return client.V1PodList(
        items=list(pods),
        metadata=client.V1ListMeta(_continue=continue_token),
    )


@pytest.fixture(name="make_container")
def make_container_fixture() -> Callable[..., client.V1Container]:
    return make_container


@pytest.fixture(name="make_pod")
def make_pod_fixture() -> Callable[..., client.V1Pod]:
    return make_pod


@pytest.fixture(name="namespace_list")
def namespace_list_fixture() -> Callable[..., client.V1NamespaceList]:
    return namespace_list


@pytest.fixture(name="pod_list")
def pod_list_fixture() -> Callable[..., client.V1PodList]:
    return pod_list


@pytest.fixture
def make_api() -> Callable[..., Any]:
    """Build a fake CoreV1Api serving the given namespaces and pods.

    ``pods_by_namespace`` maps namespace name to its pods; namespaces
    without an entry have no pods.
    """

    def _make(pods_by_namespace: dict[str, list[client.V1Pod]]) -> MagicMock:
        api = MagicMock(spec=client.CoreV1Api)
        api.list_namespace.return_value = namespace_list(*pods_by_namespace)
        api.list_namespaced_pod.side_effect = lambda namespace, **kwargs: pod_list(
            *pods_by_namespace.get(namespace, [])
        )
        return api

    return _make


@pytest.fixture
def scenario_api(make_api: Callable[..., Any]) -> Any:
    """ns1 holds one pod with imageA and imageB containers; ns2 is empty."""
    return make_api(
        {
            "ns1": [
                make_pod(
                    "pod-1",
                    "ns1",
                    [
                        make_container(
                            "registry/imageA:1.0",
                            limits={"cpu": "500m", "memory": "256Mi"},
                            requests={"cpu": "250m", "memory": "128Mi"},
                            name="a",
                        ),
                        make_container(
                            "registry/imageB:2.0",
                            limits={"cpu": "200m", "memory": "128Mi"},
                            requests={"cpu": "100m", "memory": "64Mi"},
                            name="b",
                        ),
                    ],
                )
            ],
            "ns2": [],
        }
    )


# =============================================================================
# Markers
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line(
        "markers", "integration: Integration tests (require external services)"
    )
