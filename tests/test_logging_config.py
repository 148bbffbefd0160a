"""Tests for logging helpers and formatters."""
import json
import logging
import pytest

from app.core.logging_config import ConsoleFormatter, JSONFormatter, preview


def make_record(message: str = "Registered SN-1", **attrs) -> logging.LogRecord:
    record = logging.LogRecord("app.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in attrs.items():
        setattr(record, key, value)
    return record


class TestPreview:
    def test_truncates(self):
        assert preview("abcdefghijklmnop") == "abcdefgh..."
        assert preview("abcdefghijklmnop", length=4) == "abcd..."

    @pytest.mark.parametrize("value", [None, ""])
    def test_missing(self, value):
        assert preview(value) == "MISSING"


class TestFormatters:
    def test_json_formatter(self):
        output = JSONFormatter().format(
            make_record(request_id="ab12cd34", extra_fields={"device_id": "SN-1"})
        )
        data = json.loads(output)
        assert data["message"] == "Registered SN-1"
        assert data["level"] == "INFO"
        assert data["request_id"] == "ab12cd34"
        assert data["device_id"] == "SN-1"

    def test_console_formatter(self):
        output = ConsoleFormatter().format(
            make_record(request_id="ab12cd34", extra_fields={"device_id": "SN-1"})
        )
        assert output.startswith("[ab12cd34]")
        assert "Registered SN-1" in output
        assert output.endswith("(device_id=SN-1)")
