"""
Runtime Monitoring
Prometheus-based metrics for the fetch runtime
"""

from .metrics import MetricsCollector

__all__ = ["MetricsCollector"]
