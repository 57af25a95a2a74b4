"""Cluster resource collector.

Walks every namespace, pod and container of one cluster and aggregates
CPU/memory limits and requests:
- over all containers (grand totals)
- per container image
- over target containers, whose image contains the filter pattern
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator
from typing import Any

from kubernetes import client
from kubernetes.client.rest import ApiException

from shared.models import ClusterReport, ContainerResourceUsage, DetailTree, ResourceAmounts
from shared.observability import get_logger, log_external_call_end, log_external_call_start

logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 500


class ListError(Exception):
    """Raised when listing namespaces or pods fails mid-scan."""

    pass


def matches_pattern(image: str, pattern: str) -> bool:
    """Literal, case-sensitive substring match."""
    return pattern in image


def _list_all(list_fn: Callable[..., Any], page_size: int, **kwargs: Any) -> Iterator[Any]:
    """Yield items of a paged Kubernetes list call."""
    continue_token: str | None = None
    while True:
        if continue_token:
            page = list_fn(limit=page_size, _continue=continue_token, **kwargs)
        else:
            page = list_fn(limit=page_size, **kwargs)
        yield from page.items or []
        continue_token = page.metadata._continue if page.metadata else None
        if not continue_token:
            return


def _list(
    description: str,
    list_fn: Callable[..., Any],
    page_size: int,
    **kwargs: Any,
) -> list[Any]:
    log_external_call_start(logger, "kubernetes", description)
    start = time.monotonic()
    try:
        items = list(_list_all(list_fn, page_size, **kwargs))
    except ApiException as e:
        log_external_call_end(
            logger, "kubernetes", description, False, (time.monotonic() - start) * 1000,
            error=f"{e.status} {e.reason}",
        )
        raise ListError(f"Failed to {description}: {e.status} {e.reason}") from e
    except Exception as e:
        log_external_call_end(
            logger, "kubernetes", description, False, (time.monotonic() - start) * 1000,
            error=str(e),
        )
        raise ListError(f"Failed to {description}: {e}") from e
    log_external_call_end(
        logger, "kubernetes", description, True, (time.monotonic() - start) * 1000
    )
    return items


def _raw_resources(resources: Any) -> dict[str, dict[str, str]]:
    """Limits/requests exactly as declared on the container."""
    limits = getattr(resources, "limits", None) or {}
    requests = getattr(resources, "requests", None) or {}
    return {
        "limits": {name: str(value) for name, value in limits.items()},
        "requests": {name: str(value) for name, value in requests.items()},
    }


def collect(
    api: client.CoreV1Api,
    image_pattern: str,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> ClusterReport:
    """Scan one cluster and aggregate container resources.

    Any listing failure aborts the whole scan; no partial report is
    returned.

    Args:
        api: CoreV1 API client
        image_pattern: Literal image substring selecting target containers
        page_size: Items requested per list call

    Returns:
        ClusterReport for the whole cluster

    Raises:
        ListError: If a namespace or pod listing fails, or a container
            declares a malformed quantity.
    """
    grand_totals = ContainerResourceUsage()
    target_totals = ContainerResourceUsage(image=image_pattern)
    total_by_image: dict[str, ContainerResourceUsage] = {}
    detail: DetailTree = {}
    target_count = 0
    total_count = 0

    namespaces = _list("list namespaces", api.list_namespace, page_size)
    logger.info("Scanning cluster", namespaces=len(namespaces), pattern=image_pattern)

    for ns in namespaces:
        ns_name = ns.metadata.name
        pods = _list(
            f"list pods in namespace {ns_name}",
            api.list_namespaced_pod,
            page_size,
            namespace=ns_name,
        )

        for pod in pods:
            pod_name = pod.metadata.name
            for container in pod.spec.containers or []:
                image = container.image or ""
                raw = _raw_resources(container.resources)
                try:
                    limits = ResourceAmounts.from_k8s(raw["limits"])
                    requests = ResourceAmounts.from_k8s(raw["requests"])
                except ValueError as e:
                    raise ListError(
                        f"Malformed resource quantity in {ns_name}/{pod_name} ({image}): {e}"
                    ) from e

                grand_totals = grand_totals.add(limits, requests)
                usage = total_by_image.get(image) or ContainerResourceUsage(image=image)
                total_by_image[image] = usage.add(limits, requests)

                if matches_pattern(image, image_pattern):
                    target_totals = target_totals.add(limits, requests)
                    target_count += 1
                total_count += 1

                detail.setdefault(ns_name, {}).setdefault(pod_name, {})[image] = raw

    logger.info(
        "Cluster scan complete",
        containers=total_count,
        target_containers=target_count,
        images=len(total_by_image),
    )

    return ClusterReport(
        pattern=image_pattern,
        total_by_image=total_by_image,
        target_totals=target_totals,
        grand_totals=grand_totals,
        target_count=target_count,
        total_count=total_count,
        detail=detail,
    )
