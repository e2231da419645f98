"""
Unit tests for error reporting helpers.
"""

from petcare.core.sentry import REDACTED, capture_business_error, filter_sensitive_data


class TestFilterSensitiveData:
    def test_authorization_header_redacted(self):
        event = {"request": {"headers": {"Authorization": "Bearer abc", "Accept": "application/json"}}}

        filtered = filter_sensitive_data(event, None)

        assert filtered["request"]["headers"]["Authorization"] == REDACTED
        assert filtered["request"]["headers"]["Accept"] == "application/json"

    def test_payment_secret_in_extras_redacted(self):
        event = {"extra": {"x_payment_secret": "s3cret", "payment_id": "p-1"}}

        filtered = filter_sensitive_data(event, None)

        assert filtered["extra"]["x_payment_secret"] == REDACTED
        assert filtered["extra"]["payment_id"] == "p-1"


class TestCaptureBusinessError:
    def test_reports_with_safe_context(self, mocker):
        capture = mocker.patch("petcare.core.sentry.sentry_sdk.capture_exception")
        error = RuntimeError("ledger write failed")

        capture_business_error(
            error=error,
            context={"user_id": "u-1", "access_token": "abc"},
            level="warning",
        )

        capture.assert_called_once_with(error, level="warning", extras={"user_id": "u-1"})

    def test_fatal_is_logged_critical(self, mocker, caplog):
        mocker.patch("petcare.core.sentry.sentry_sdk.capture_exception")

        with caplog.at_level("CRITICAL", logger="petcare.core.sentry"):
            capture_business_error(RuntimeError("no default tier"), {"operation": "resolve_tier"}, level="fatal")

        assert any(r.levelname == "CRITICAL" for r in caplog.records)
