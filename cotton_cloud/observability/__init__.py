# Observability module
from cotton_cloud.observability.logger import log_request, is_logging_enabled
from cotton_cloud.observability.metrics import (
    increment_request,
    record_provider_call,
    record_refine_fallback,
    record_cache_event,
    get_metrics,
    reset_metrics,
)
