"""
Performance Monitoring
Prometheus-based metrics collection for the generation service
"""

from .metrics import MetricsCollector, metrics_collector

__all__ = [
    "MetricsCollector",
    "metrics_collector",
]
