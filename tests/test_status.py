"""Tests for status helpers and error classifiers."""

import httpx
import pytest

from fetchwrap import status
from fetchwrap.exceptions import (
    BuildError,
    NetworkError,
    RequestAbortedError,
    RequestSupersededError,
    RequestTimeoutError,
    StatusValidationError,
)
from fetchwrap.models import EffectiveRequestConfig, Response


def make_response(code: int, status_text: str = "") -> Response:
    return Response(
        data=None,
        status=code,
        status_text=status_text,
        headers=httpx.Headers(),
        config=EffectiveRequestConfig(url="https://x.io", method="GET"),
    )


class TestStatusRanges:
    """Tests for status range predicates."""

    @pytest.mark.parametrize(
        ("code", "predicate"),
        [
            (101, status.is_informational),
            (204, status.is_success),
            (304, status.is_redirection),
            (404, status.is_client_error),
            (502, status.is_server_error),
        ],
    )
    def test_ranges(self, code, predicate):
        assert predicate(code) is True

    def test_is_error(self):
        assert status.is_error(400) is True
        assert status.is_error(399) is False

    def test_specific_statuses(self):
        assert status.requires_auth(401) is True
        assert status.is_forbidden(403) is True
        assert status.is_rate_limited(429) is True
        assert status.is_rate_limited(500) is False

    def test_status_message(self):
        assert status.status_message(404) == "Not Found"
        assert status.status_message(799) == "Unknown Status"


class TestCreateStatusValidator:
    """Tests for create_status_validator()."""

    def test_default_accepts_2xx(self):
        validator = status.create_status_validator()
        assert validator(201) is True
        assert validator(304) is False

    def test_explicit_statuses(self):
        validator = status.create_status_validator([200, 404])
        assert validator(404) is True
        assert validator(201) is False


class TestErrorFromResponse:
    """Tests for error_from_response()."""

    def test_known_status(self):
        error = status.error_from_response(make_response(404))
        assert isinstance(error, StatusValidationError)
        assert error.message == "Request failed with status 404: Not Found"
        assert error.code == "ERR_HTTP_404"
        assert error.response.status == 404

    def test_unknown_status_uses_response_text(self):
        error = status.error_from_response(make_response(799, "Custom"))
        assert error.status_text == "Custom"


class TestClassifiers:
    """Tests for error classifiers."""

    def test_network_and_timeout_are_retryable(self):
        assert status.is_retryable_error(NetworkError("down")) is True
        assert status.is_retryable_error(RequestTimeoutError("slow")) is True

    @pytest.mark.parametrize("code", [408, 429, 500, 502, 503, 504])
    def test_retryable_statuses(self, code):
        assert status.is_retryable_error(StatusValidationError("x", status=code)) is True

    def test_client_error_not_retryable(self):
        assert status.is_retryable_error(StatusValidationError("x", status=404)) is False
        assert status.is_retryable_error(BuildError("x")) is False

    def test_cancel_error(self):
        assert status.is_cancel_error(RequestSupersededError("x")) is True
        assert status.is_cancel_error(RequestAbortedError("x")) is True
        assert status.is_cancel_error(NetworkError("x")) is False

    def test_auth_error(self):
        assert status.is_auth_error(StatusValidationError("x", status=401)) is True
        assert status.is_auth_error(StatusValidationError("x", status=403)) is True
        assert status.is_auth_error(ValueError("x")) is False


class TestRetryWithBackoff:
    """Tests for the backoff recovery helpers."""

    @pytest.mark.asyncio
    async def test_exponential_retries_retryable_errors(self):
        """Should retry transient failures until the call succeeds."""
        outcomes = [NetworkError("down"), StatusValidationError("x", status=503), "ok"]
        calls = []

        async def request():
            calls.append(1)
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        assert await status.retry_with_exponential_backoff(request, base_delay_ms=1) == "ok"
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_non_retryable_error_raises_immediately(self):
        calls = []

        async def request():
            calls.append(1)
            raise StatusValidationError("x", status=404)

        with pytest.raises(StatusValidationError):
            await status.retry_with_linear_backoff(request, max_retries=3, delay_ms=1)
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_budget_exhausted_raises_last_error(self):
        calls = []

        async def request():
            calls.append(1)
            raise RequestTimeoutError(f"slow {len(calls)}")

        with pytest.raises(RequestTimeoutError, match="slow 3"):
            await status.retry_with_linear_backoff(request, max_retries=2, delay_ms=1)
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_exponential_delays_double(self, monkeypatch):
        delays = []

        async def fake_sleep(seconds):
            delays.append(seconds)

        monkeypatch.setattr(status.asyncio, "sleep", fake_sleep)

        async def request():
            raise NetworkError("down")

        with pytest.raises(NetworkError):
            await status.retry_with_exponential_backoff(request, max_retries=3, base_delay_ms=100)
        assert delays == [0.1, 0.2, 0.4]


class TestErrorReporter:
    """Tests for ErrorReporter."""

    def test_report_calls_handlers_in_order(self):
        reporter = status.ErrorReporter()
        seen = []
        reporter.add_handler(lambda e: seen.append(("a", e.status)))
        reporter.add_handler(lambda e: seen.append(("b", e.status)))

        reporter.report(StatusValidationError("x", status=500))

        assert seen == [("a", 500), ("b", 500)]

    def test_failing_handler_is_isolated(self):
        """A failing handler should not stop the remaining handlers."""
        reporter = status.ErrorReporter()
        seen = []

        def broken(error):
            raise RuntimeError("handler bug")

        reporter.add_handler(broken)
        reporter.add_handler(seen.append)
        error = NetworkError("down")

        reporter.report(error)

        assert seen == [error]

    def test_remove_handler(self):
        reporter = status.ErrorReporter()
        seen = []
        reporter.add_handler(seen.append)
        reporter.remove_handler(seen.append)
        reporter.remove_handler(print)

        reporter.report(NetworkError("down"))

        assert seen == []
        assert reporter.handlers == []

    def test_debug_report_redacts_url(self, capsys):
        reporter = status.ErrorReporter(debug=True)
        config = EffectiveRequestConfig(url="https://x.io/a?token=abc", method="GET")

        reporter.report(NetworkError("down", config=config))

        err = capsys.readouterr().err
        assert "[fetchwrap] HTTP error: down" in err
        assert "abc" not in err


class TestDefaultErrorHandlers:
    """Tests for the default handler set."""

    def test_install_registers_all(self):
        reporter = status.ErrorReporter()
        status.install_default_error_handlers(reporter)
        assert reporter.handlers == list(status.default_error_handlers.values())

    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (StatusValidationError("x", status=401), "Authentication failed"),
            (NetworkError("down"), "Network connection failed"),
            (StatusValidationError("x", status=502), "Server error"),
            (StatusValidationError("x", status=422), "Invalid request"),
        ],
    )
    def test_handlers_warn_on_matching_errors(self, capsys, error, expected):
        reporter = status.ErrorReporter()
        status.install_default_error_handlers(reporter)

        reporter.report(error)

        assert expected in capsys.readouterr().err

    def test_handlers_silent_on_other_errors(self, capsys):
        reporter = status.ErrorReporter()
        status.install_default_error_handlers(reporter)

        reporter.report(RequestAbortedError("x"))

        assert capsys.readouterr().err == ""
