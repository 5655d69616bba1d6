"""
Request Logger (v1.1.0)
Structured JSON-lines log of AI proxy requests.
"""
import os
import json
import logging
import threading
from pathlib import Path
from datetime import datetime, timezone
from typing import Optional

LOGS_DIR = Path(os.getenv("COTTON_LOGS_DIR", Path(__file__).parent.parent.parent / "logs"))
REQUEST_LOG_FILE = LOGS_DIR / "requests.log"

# Configure request logger
request_logger = logging.getLogger("cotton.requests")
request_logger.setLevel(logging.INFO)

# Prevent propagation to root logger
request_logger.propagate = False

_handler_lock = threading.Lock()


def _ensure_file_handler():
    """Attach the file handler on first use so importing has no side effects."""
    with _handler_lock:
        if request_logger.handlers:
            return
        LOGS_DIR.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(REQUEST_LOG_FILE, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter("%(message)s"))
        request_logger.addHandler(file_handler)


def log_request(
    operation: str,
    status: str,
    latency_ms: int,
    placeholder: bool = False,
    cache_id: Optional[str] = None,
    error: Optional[str] = None
):
    """
    Log a structured request entry.

    Args:
        operation: AI operation name (analyze, cutout, refine_cutout, ...)
        status: success or fail
        latency_ms: Request latency in milliseconds
        placeholder: Whether a placeholder was served
        cache_id: Refine-cache id involved, if any (truncated in the log)
        error: Classified error message if failed
    """
    if not is_logging_enabled():
        return

    entry = {
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "operation": operation,
        "status": status,
        "latency_ms": latency_ms,
        "placeholder": placeholder,
    }

    if cache_id:
        entry["cache_id"] = cache_id[:8]
    if error:
        entry["error"] = error

    _ensure_file_handler()
    request_logger.info(json.dumps(entry))


def is_logging_enabled() -> bool:
    """Check if request logging is enabled."""
    return os.getenv("COTTON_LOGGING_ENABLED", "true").lower() == "true"
