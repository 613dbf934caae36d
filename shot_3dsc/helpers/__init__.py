from .perf_monitoring import checkpoint

__all__ = ["checkpoint"]
