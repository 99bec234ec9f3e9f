"""Reconciliation core for Redis failover clusters: resource model, health checks, healing, metrics and logging."""

__version__ = "1.0.0"
__all__ = ["api", "cli", "log", "metrics", "operator"]