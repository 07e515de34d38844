import pytest

from config.settings import mask_sensitive_data

pytestmark = pytest.mark.unit


class TestSensitiveDataMasking:
    def test_email_masked(self):
        event_dict = {"event": "test", "search": "buyer maria@example.com"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "maria@example.com" not in result["search"]
        assert "***MASKED***" in result["search"]

    @pytest.mark.parametrize("phone", ["+1 555 123 4567", "555-123-4567", "5551234567"])
    def test_phone_masked(self, phone):
        event_dict = {"event": "test", "phone": phone}
        result = mask_sensitive_data(None, None, event_dict)
        assert phone not in result["phone"]
        assert "***MASKED***" in result["phone"]

    def test_password_masked(self):
        event_dict = {"event": "test", "data": "password='s3cret123'"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "s3cret123" not in result["data"]
        assert "***MASKED***" in result["data"]

    def test_token_masked(self):
        event_dict = {"event": "test", "header": "token=abc123xyz"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "abc123xyz" not in result["header"]
        assert "***MASKED***" in result["header"]

    @pytest.mark.parametrize(
        "value",
        [
            "ORD-20240115-A1B2C3",
            "2024-06-30T12:00:00.123456Z",
            "0190a3b2-5c4d-7e6f-8a9b-0c1d2e3f4a5b",
            "150.00",
        ],
    )
    def test_identifiers_and_timestamps_unchanged(self, value):
        event_dict = {"event": "order.status_updated", "value": value}
        result = mask_sensitive_data(None, None, event_dict)
        assert result["value"] == value
        assert result["event"] == "order.status_updated"

    def test_non_string_values_untouched(self):
        event_dict = {"event": "test", "count": 5551234567}
        result = mask_sensitive_data(None, None, event_dict)
        assert result["count"] == 5551234567
