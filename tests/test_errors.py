"""
ccswitch - Error Classification Tests

Verifies the mapping of HTTP statuses and httpx exceptions onto ErrorKind,
and the messages of the terminal routing errors.
"""

import asyncio

import httpx
import pytest

from ccswitch.core.errors import (
    AllChannelsFailedError,
    CCSwitchError,
    ChannelRequestError,
    ErrorKind,
    NoEligibleChannelError,
    classify_exception,
    classify_status,
    error_from_response,
    summarize_error_body,
)
from ccswitch.core.models import AttemptOutcome, AttemptResult


REQUEST = httpx.Request("POST", "https://a.test/v1/chat/completions")


class TestClassifyStatus:
    """Test HTTP status classification."""

    @pytest.mark.parametrize("code,kind", [
        (401, ErrorKind.AUTH),
        (403, ErrorKind.AUTH),
        (429, ErrorKind.RATE_LIMITED),
        (500, ErrorKind.SERVER_ERROR),
        (503, ErrorKind.SERVER_ERROR),
        (400, ErrorKind.CLIENT_ERROR),
        (404, ErrorKind.CLIENT_ERROR),
    ])
    def test_error_statuses(self, code, kind):
        assert classify_status(code) == kind

    def test_success_is_not_an_error(self):
        assert classify_status(200) is None
        assert classify_status(204) is None

    def test_transient_kinds(self):
        """Timeouts, network, 5xx and 429 are transient; auth is not."""
        assert ErrorKind.TIMEOUT.is_transient
        assert ErrorKind.RATE_LIMITED.is_transient
        assert not ErrorKind.AUTH.is_transient
        assert not ErrorKind.MALFORMED.is_transient


class TestErrorFromResponse:
    """Test error bodies and headers."""

    def test_openai_error_shape(self):
        response = httpx.Response(
            401, json={"error": {"message": "Invalid API key"}}, request=REQUEST
        )
        error = error_from_response(response, "a")

        assert error.kind == ErrorKind.AUTH
        assert error.status_code == 401
        assert error.channel == "a"
        assert "Invalid API key" in error.detail

    def test_retry_after_parsed_on_429(self):
        response = httpx.Response(
            429, json={"error": "slow down"}, headers={"Retry-After": "12"}, request=REQUEST
        )
        error = error_from_response(response)

        assert error.kind == ErrorKind.RATE_LIMITED
        assert error.retry_after == 12

    def test_plain_text_body_truncated(self):
        response = httpx.Response(502, text="x" * 500, request=REQUEST)
        assert len(summarize_error_body(response)) == 200


class TestClassifyException:
    """Test transport exception classification."""

    def test_timeout(self):
        error = classify_exception(httpx.ReadTimeout("slow", request=REQUEST), "a")
        assert error.kind == ErrorKind.TIMEOUT

    def test_asyncio_timeout(self):
        assert classify_exception(asyncio.TimeoutError()).kind == ErrorKind.TIMEOUT

    def test_connect_error_is_network(self):
        error = classify_exception(httpx.ConnectError("refused", request=REQUEST))
        assert error.kind == ErrorKind.NETWORK

    def test_invalid_url_is_network(self):
        assert classify_exception(httpx.InvalidURL("bad url")).kind == ErrorKind.NETWORK

    def test_decoding_error_is_malformed(self):
        error = classify_exception(httpx.DecodingError("bad gzip", request=REQUEST))
        assert error.kind == ErrorKind.MALFORMED

    def test_status_error_uses_response(self):
        response = httpx.Response(503, request=REQUEST)
        error = classify_exception(
            httpx.HTTPStatusError("boom", request=REQUEST, response=response)
        )
        assert error.kind == ErrorKind.SERVER_ERROR

    def test_channel_error_passes_through(self):
        original = ChannelRequestError(ErrorKind.AUTH, "nope")
        assert classify_exception(original) is original

    def test_unrelated_exception_not_classified(self):
        assert classify_exception(KeyError("x")) is None


class TestRoutingErrors:
    """Test terminal error messages."""

    def test_all_channels_failed_lists_each_attempt(self):
        attempts = [
            AttemptResult("A", AttemptOutcome.FAILED, ErrorKind.AUTH),
            AttemptResult("B", AttemptOutcome.UNHEALTHY, ErrorKind.TIMEOUT),
        ]
        error = AllChannelsFailedError(attempts)

        assert str(error) == "All channels failed: auth failed on channel A; timed out on channel B"
        assert isinstance(error, CCSwitchError)

    def test_no_eligible_channel_names_model(self):
        assert "gpt-4" in str(NoEligibleChannelError("gpt-4"))
