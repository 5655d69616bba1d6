"""
Metrics Module (v1.1.0)
Track AI request counts, provider outcomes and refine-cache sessions.
"""
import threading
from typing import Dict, Any


def _empty_metrics() -> Dict[str, Any]:
    return {
        "total_requests": 0,
        "requests_by_operation": {},
        "placeholder_responses": 0,
        "errors": 0,
        "provider_calls": 0,
        "provider_errors": 0,
        "provider_timeouts": 0,
        "refine_fallbacks": 0,
        "cache_sessions_started": 0,
        "cache_sessions_cleared": 0,
        "cache_sessions_expired": 0,
    }


# Thread-safe metrics storage
_lock = threading.Lock()
_metrics = _empty_metrics()


def increment_request(operation: str, placeholder: bool = False, error: bool = False):
    """
    Record an orchestrated AI request.

    Args:
        operation: Operation name (analyze, cutout, ...)
        placeholder: Whether a placeholder was served instead of a provider result
        error: Whether the request failed
    """
    with _lock:
        _metrics["total_requests"] += 1
        by_op = _metrics["requests_by_operation"]
        by_op[operation] = by_op.get(operation, 0) + 1

        if placeholder:
            _metrics["placeholder_responses"] += 1
        if error:
            _metrics["errors"] += 1


def record_provider_call(error: bool = False, timeout: bool = False):
    """Record one call to the generation provider."""
    with _lock:
        _metrics["provider_calls"] += 1
        if error:
            _metrics["provider_errors"] += 1
        if timeout:
            _metrics["provider_timeouts"] += 1


def record_refine_fallback():
    """Record a refine-analysis that fell back to plain analysis."""
    with _lock:
        _metrics["refine_fallbacks"] += 1


def record_cache_event(event: str):
    """
    Record a refine-cache session event.

    Args:
        event: "started", "cleared" or "expired"
    """
    key = f"cache_sessions_{event}"
    with _lock:
        if key not in _metrics:
            raise ValueError(f"Unknown cache event: {event}")
        _metrics[key] += 1


def get_metrics() -> Dict[str, Any]:
    """Get current metrics snapshot."""
    with _lock:
        snapshot = dict(_metrics)
        snapshot["requests_by_operation"] = dict(_metrics["requests_by_operation"])

    total = snapshot["total_requests"]
    snapshot["placeholder_ratio"] = (
        round(snapshot["placeholder_responses"] / total, 3) if total > 0 else 0.0
    )
    return snapshot


def reset_metrics():
    """Reset all metrics (for testing)."""
    global _metrics
    with _lock:
        _metrics = _empty_metrics()
