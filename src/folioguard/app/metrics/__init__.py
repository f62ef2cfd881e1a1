"""Prometheus metrics module."""

import os

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    generate_latest,
    multiprocess,
)
from starlette.responses import Response


def get_metrics_response() -> Response:
    """Generate Prometheus metrics in text format.

    Aggregates across worker processes when PROMETHEUS_MULTIPROC_DIR is set,
    otherwise serves the in-process default registry.
    """
    if os.environ.get("PROMETHEUS_MULTIPROC_DIR"):
        registry = CollectorRegistry()
        multiprocess.MultiProcessCollector(registry)
    else:
        registry = REGISTRY
    return Response(
        content=generate_latest(registry),
        media_type=CONTENT_TYPE_LATEST,
    )
