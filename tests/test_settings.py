"""
Settings & Observability Tests
Environment loading, metrics counters and the JSON request log.
"""
import json

import pytest

from cotton_cloud.config.settings import OperationTimeouts, Settings
from cotton_cloud.observability import logger as request_log
from cotton_cloud.observability import get_metrics, increment_request, record_cache_event


class TestSettings:
    """Tests for Settings.from_env."""

    def test_defaults(self, monkeypatch):
        for name in ("GEMINI_API_KEY", "COTTON_CACHE_TTL_MINUTES", "COTTON_TIMEOUT_AVATAR_SECONDS"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings.from_env()

        assert settings.has_gemini() is False
        assert settings.cache_ttl_minutes == 30
        assert settings.cache_sweep_minutes == 5
        assert settings.timeouts.avatar == 90
        assert settings.strict_refine_analysis is False

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "secret-key")
        monkeypatch.setenv("COTTON_TIMEOUT_CUTOUT_SECONDS", "45")
        monkeypatch.setenv("COTTON_STRICT_REFINE_ANALYSIS", "true")
        monkeypatch.setenv("COTTON_CORS_ORIGINS", "https://a.example, https://b.example")

        settings = Settings.from_env()

        assert settings.has_gemini()
        assert settings.timeouts.for_operation("cutout") == 45
        assert settings.strict_refine_analysis is True
        assert settings.cors_origins == ["https://a.example", "https://b.example"]

    def test_to_dict_hides_key(self):
        exported = Settings(gemini_api_key="secret-key").to_dict()

        assert "secret-key" not in json.dumps(exported)
        assert exported["gemini_configured"] is True

    def test_unknown_operation_budget(self):
        with pytest.raises(KeyError):
            OperationTimeouts().for_operation("teleport")

    def test_max_image_bytes(self):
        assert Settings(max_image_mb=1).max_image_bytes == 1024 * 1024


class TestObservability:
    """Tests for counters and the request log."""

    def test_counters(self):
        increment_request("analyze", placeholder=True)
        increment_request("cutout", error=True)
        record_cache_event("started")

        metrics = get_metrics()

        assert metrics["total_requests"] == 2
        assert metrics["requests_by_operation"] == {"analyze": 1, "cutout": 1}
        assert metrics["placeholder_ratio"] == 0.5
        assert metrics["cache_sessions_started"] == 1

    def test_request_log_writes_json_lines(self, monkeypatch, tmp_path):
        monkeypatch.setenv("COTTON_LOGGING_ENABLED", "true")
        monkeypatch.setattr(request_log, "LOGS_DIR", tmp_path)
        monkeypatch.setattr(request_log, "REQUEST_LOG_FILE", tmp_path / "requests.log")
        saved_handlers = list(request_log.request_logger.handlers)
        request_log.request_logger.handlers.clear()
        try:
            request_log.log_request("cutout", "success", 120, cache_id="abcdef0123456789")

            for handler in request_log.request_logger.handlers:
                handler.flush()
            entry = json.loads((tmp_path / "requests.log").read_text().strip())
        finally:
            for handler in request_log.request_logger.handlers:
                handler.close()
            request_log.request_logger.handlers[:] = saved_handlers

        assert entry["operation"] == "cutout"
        assert entry["cache_id"] == "abcdef01"
        assert "error" not in entry

    def test_request_log_disabled(self, tmp_path, monkeypatch):
        monkeypatch.setattr(request_log, "LOGS_DIR", tmp_path / "never")

        request_log.log_request("analyze", "success", 5)

        assert not (tmp_path / "never").exists()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
