"""Prometheus metrics and log configuration."""

from .logging_config import configure_logging
from .metrics import Metrics, get_metrics

__all__ = ["Metrics", "configure_logging", "get_metrics"]
