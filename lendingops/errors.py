"""Exception hierarchy for configuration, RPC and settlement failures."""
from __future__ import annotations


class LendingOpsError(Exception):
    """Base class for every error raised by this package."""


class MissingConfigurationError(LendingOpsError):
    """A required address or key could not be resolved from the environment."""

    def __init__(self, role: str, expected_variables: tuple[str, ...]) -> None:
        self.role = role
        self.expected_variables = expected_variables
        names = " or ".join(expected_variables)
        super().__init__(f"Missing configuration for {role}: set {names}")


class ConfigurationError(LendingOpsError):
    """A configuration value is present but malformed."""

    def __init__(self, variable: str, value: str, reason: str) -> None:
        self.variable = variable
        self.value = value
        super().__init__(f"Invalid value for {variable}={value!r}: {reason}")


class InvalidResponseError(LendingOpsError):
    """A contract call returned data that does not match the expected shape."""


class RpcError(LendingOpsError):
    """The node answered a JSON-RPC request with an error object.

    ``message`` keeps the node's text verbatim; ``reason`` is the decoded
    ``Error(string)`` revert payload when one was attached.
    """

    def __init__(
        self, method: str, message: str, code: int | None = None, reason: str | None = None
    ) -> None:
        self.method = method
        self.code = code
        self.reason = reason
        text = f"{method} failed: {message}"
        if reason and reason not in message:
            text = f"{text} (reason: {reason})"
        super().__init__(text)


class TransactionRevertedError(LendingOpsError):
    """A mined transaction has status 0."""

    def __init__(self, tx_hash: str, receipt: dict | None = None) -> None:
        self.tx_hash = tx_hash
        self.receipt = receipt or {}
        super().__init__(f"Transaction {tx_hash} reverted")


class SettlementTimeoutError(LendingOpsError):
    """No receipt was observed before the wait deadline.

    The transaction may still be mined later; this is not a rollback.
    """

    def __init__(self, tx_hash: str, timeout: float) -> None:
        self.tx_hash = tx_hash
        self.timeout = timeout
        super().__init__(
            f"Transaction {tx_hash} not confirmed within {timeout:.0f}s; "
            "it may still settle later"
        )


class OperationInProgressError(LendingOpsError):
    """A write operation for this user has not reached a terminal state yet."""

    def __init__(self, user: str) -> None:
        self.user = user
        super().__init__(f"An operation for {user} is still in progress")
