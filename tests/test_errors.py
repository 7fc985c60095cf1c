"""Tests for provider error classification."""
from __future__ import annotations

import pytest
from web3.exceptions import Web3RPCError

from wrap_cycler.errors import (
    ProviderError,
    ProviderRateLimited,
    RetryExhausted,
    TransactionReverted,
    http_status,
    rpc_error_code,
    translate_provider_error,
)

RATE_LIMIT_CODES = (-32017,)


def _rpc_error(code: int, message: str = "request failed") -> Web3RPCError:
    return Web3RPCError(
        message,
        rpc_response={"jsonrpc": "2.0", "id": 1, "error": {"code": code, "message": message}},
    )


class _HTTPError(Exception):
    def __init__(self, status: int) -> None:
        super().__init__(f"HTTP {status}")
        self.status = status


class _Response:
    def __init__(self, status_code: int) -> None:
        self.status_code = status_code


class _RequestsError(Exception):
    def __init__(self, status_code: int) -> None:
        super().__init__("bad response")
        self.response = _Response(status_code)


class TestCodeExtraction:
    def test_rpc_response_code(self):
        assert rpc_error_code(_rpc_error(-32017)) == -32017

    def test_legacy_dict_argument(self):
        assert rpc_error_code(ValueError({"code": -32000, "message": "nonce too low"})) == -32000

    def test_no_code(self):
        assert rpc_error_code(ConnectionError("reset by peer")) is None

    def test_http_status_attribute(self):
        assert http_status(_HTTPError(429)) == 429

    def test_http_status_from_response(self):
        assert http_status(_RequestsError(503)) == 503

    def test_no_http_status(self):
        assert http_status(RuntimeError("x")) is None


class TestTranslate:
    def test_rate_limit_code_is_retryable(self):
        err = translate_provider_error(_rpc_error(-32017, "rate limited"), "await_confirmation", RATE_LIMIT_CODES)
        assert isinstance(err, ProviderRateLimited)
        assert err.retryable is True
        assert err.code == -32017
        assert err.operation == "await_confirmation"

    def test_http_429_is_retryable(self):
        err = translate_provider_error(_HTTPError(429), "await_confirmation", RATE_LIMIT_CODES)
        assert isinstance(err, ProviderRateLimited)
        assert err.code == 429

    @pytest.mark.parametrize("code", [-32000, -32603, 3])
    def test_other_rpc_codes_are_not_retryable(self, code):
        err = translate_provider_error(_rpc_error(code), "submit_deposit", RATE_LIMIT_CODES)
        assert type(err) is ProviderError
        assert err.retryable is False
        assert err.code == code

    def test_configured_codes_are_honoured(self):
        err = translate_provider_error(_rpc_error(-32005), "await_confirmation", (-32005,))
        assert isinstance(err, ProviderRateLimited)

    def test_http_status_used_as_code_for_other_failures(self):
        err = translate_provider_error(_HTTPError(502), "get_balance", RATE_LIMIT_CODES)
        assert type(err) is ProviderError
        assert err.code == 502

    def test_codeless_failure(self):
        err = translate_provider_error(TimeoutError(), "await_confirmation", RATE_LIMIT_CODES)
        assert type(err) is ProviderError
        assert err.code is None
        assert err.message == "TimeoutError"

    def test_already_translated_error_passes_through(self):
        original = ProviderRateLimited("slow down", code=-32017)
        assert translate_provider_error(original, "x", RATE_LIMIT_CODES) is original


class TestMessages:
    def test_provider_error_str_includes_code_and_operation(self):
        err = ProviderError("nonce too low", code=-32000, operation="submit_deposit")
        assert str(err) == "nonce too low (code=-32000, operation=submit_deposit)"

    def test_plain_message(self):
        assert str(ProviderError("boom")) == "boom"

    def test_reverted(self):
        err = TransactionReverted("0xabc", operation="withdraw")
        assert err.code == "REVERTED"
        assert err.tx_hash == "0xabc"
        assert "0xabc reverted" in str(err)

    def test_retry_exhausted(self):
        cause = ProviderRateLimited("slow down")
        err = RetryExhausted(10, last_error=cause)
        assert str(err) == "Max retries (10) exceeded for rate limit error"
        assert err.last_error is cause
