"""Observability layer - logging and metrics."""

from codesearch.observability.logging import log_operation, setup_logging
from codesearch.observability.metrics import VectorStoreMetrics, get_metrics

__all__ = ["log_operation", "setup_logging", "VectorStoreMetrics", "get_metrics"]
