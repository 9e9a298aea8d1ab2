"""Exception hierarchy for the POLYCAVORA SDK."""

from __future__ import annotations


class PolyCavoraError(Exception):
    """Base exception for all SDK errors.

    Carries an optional machine-readable ``code`` and the underlying
    ``cause`` (also chained as ``__cause__`` where raised with ``from``).
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.cause = cause


class HttpError(PolyCavoraError):
    """An HTTP request failed. ``status`` is 0 for network-level failures."""

    def __init__(
        self,
        status: int,
        message: str,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, code="HTTP_ERROR", cause=cause)
        self.status = status

    @property
    def retryable(self) -> bool:
        """Network errors, rate limiting and server errors are transient."""
        return self.status == 0 or self.status == 429 or self.status >= 500


class ConfigurationError(PolyCavoraError):
    """A feature was used without the configuration it needs."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="CONFIG_ERROR")


class StreamError(PolyCavoraError):
    """WebSocket connection or message error."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message, code="WS_ERROR", cause=cause)


class RelayerTimeoutError(PolyCavoraError):
    """A relayer transaction did not reach a terminal state in time."""

    def __init__(self, transaction_id: str, timeout_secs: float) -> None:
        super().__init__(
            f"Transaction {transaction_id} not final after {timeout_secs:g}s",
            code="RELAYER_TIMEOUT",
        )
        self.transaction_id = transaction_id
        self.timeout_secs = timeout_secs
