from src.monitoring.metrics import get_metrics, record_search, reset_metrics

__all__ = ["get_metrics", "record_search", "reset_metrics"]
