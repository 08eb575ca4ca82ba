"""qarun custom exception hierarchy.

All exceptions inherit from QARunError.
ActionFailure carries the exact text of the FAILED step it was logged as.
"""


class QARunError(Exception):
    """Base exception for all qarun errors."""


class ConfigError(QARunError):
    """Configuration file load/validation error."""


class EngineError(QARunError):
    """Browser engine error (launch failure, primitive failure, etc.)."""


class EngineTimeoutError(EngineError):
    """A browser primitive did not finish within its timeout."""

    def __init__(self, message: str, timeout_ms: int) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(message)


class ElementNotFoundError(EngineError):
    """A query resolved to an empty element set."""


class DeviceProfileError(EngineError):
    """Unknown device emulation profile."""


class ActionFailure(QARunError):
    """A wrapped action failed. str(exc) equals the logged FAILED message."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class AuthorizationError(QARunError):
    """Invocation token does not match the configured secret."""


class ReportError(QARunError):
    """Report collaborator error (upload failure, bad response, etc.)."""


class SuiteError(QARunError):
    """Suite registry error (unknown or duplicate suite)."""


class OTPError(QARunError):
    """One-time password helper error."""
