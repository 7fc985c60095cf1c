"""Exception hierarchy for wrap-cycler.

Raw web3 / transport failures never leave :mod:`wrap_cycler.wallet.provider`
untranslated: they are mapped onto :class:`ProviderError` (or its
retryable subclass :class:`ProviderRateLimited`) so the engine can decide
retry-vs-propagate without knowing any provider wire format.
"""

from __future__ import annotations

from typing import Iterable, Optional


RATE_LIMIT_HTTP_STATUS = 429


class WrapCyclerError(Exception):
    """Base class for all wrap-cycler errors."""


class CredentialError(WrapCyclerError, ValueError):
    """Wallet credentials are missing, malformed, or inconsistent."""


class ProviderError(WrapCyclerError):
    """A remote node call failed.

    Attributes
    ----------
    code:
        Machine-readable error code (JSON-RPC error code, HTTP status, or a
        symbolic string such as ``"REVERTED"``). ``None`` when the failure
        carried no code at all (e.g. a dropped connection).
    operation:
        The client operation that failed, e.g. ``"await_confirmation"``.
    """

    retryable = False

    def __init__(
        self,
        message: str,
        code: int | str | None = None,
        operation: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.operation = operation

    def __str__(self) -> str:
        parts = [self.message]
        if self.code is not None:
            parts.append(f"code={self.code}")
        if self.operation:
            parts.append(f"operation={self.operation}")
        if len(parts) == 1:
            return self.message
        return f"{parts[0]} ({', '.join(parts[1:])})"


class ProviderRateLimited(ProviderError):
    """The node rejected the request for exceeding its rate limit."""

    retryable = True


class TransactionReverted(ProviderError):
    """The transaction was mined but its receipt reports failure."""

    def __init__(self, tx_hash: str, operation: Optional[str] = None) -> None:
        super().__init__(f"Transaction {tx_hash} reverted", code="REVERTED", operation=operation)
        self.tx_hash = tx_hash


class RetryExhausted(WrapCyclerError):
    """Confirmation was rate-limited on every one of ``max_retries`` attempts."""

    def __init__(self, max_retries: int, last_error: Optional[BaseException] = None) -> None:
        super().__init__(f"Max retries ({max_retries}) exceeded for rate limit error")
        self.max_retries = max_retries
        self.last_error = last_error


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def rpc_error_code(exc: BaseException) -> int | None:
    """Extract the JSON-RPC error code carried by a web3 exception, if any.

    web3.py 7 attaches the decoded response as ``rpc_response``; older
    releases raised ``ValueError({"code": ..., "message": ...})``.
    """
    response = getattr(exc, "rpc_response", None)
    if isinstance(response, dict):
        error = response.get("error")
        if isinstance(error, dict) and "code" in error:
            return error["code"]
    for arg in getattr(exc, "args", ()):
        if isinstance(arg, dict) and "code" in arg:
            return arg["code"]
    return None


def http_status(exc: BaseException) -> int | None:
    """Return the HTTP status of a transport error (aiohttp or requests)."""
    status = getattr(exc, "status", None)
    if isinstance(status, int):
        return status
    response = getattr(exc, "response", None)
    status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return status_code
    return None


def translate_provider_error(
    exc: BaseException,
    operation: str,
    rate_limit_codes: Iterable[int],
) -> ProviderError:
    """Map a raw provider exception onto the typed taxonomy."""
    if isinstance(exc, ProviderError):
        return exc

    code = rpc_error_code(exc)
    status = http_status(exc)
    message = str(exc) or exc.__class__.__name__

    if code is not None and code in set(rate_limit_codes):
        return ProviderRateLimited(message, code=code, operation=operation)
    if status == RATE_LIMIT_HTTP_STATUS:
        return ProviderRateLimited(message, code=status, operation=operation)
    return ProviderError(message, code=code if code is not None else status, operation=operation)
