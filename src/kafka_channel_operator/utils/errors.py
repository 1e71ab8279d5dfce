"""Operator error types and sanitization utilities to prevent information leakage."""

import re

from ..constants import FINALIZATION_FAILED_ERROR, RECONCILIATION_FAILED_ERROR


class OperatorError(Exception):
    """Base class for errors raised by the operator."""


class ConfigurationUnresolvedError(OperatorError):
    """No Kafka secret is bound to the channel's topic."""


class AdminSessionUnavailableError(OperatorError):
    """A stage needed the Kafka admin session but none was opened."""


class TopicError(OperatorError):
    """A Kafka topic could not be created or deleted."""


class ResourceBuildError(OperatorError):
    """A construction option failed while building a child resource."""


class SubResourceConvergenceError(OperatorError):
    """A child Service or Deployment could not be converged or removed."""

    def __init__(self, kind: str, namespace: str, name: str, cause: Exception | str):
        self.kind = kind
        self.namespace = namespace
        self.name = name
        self.cause = cause
        super().__init__(f"{kind} {namespace}/{name}: {cause}")


class ReconciliationFailedError(OperatorError):
    """Coarse, retryable classification for any failed reconciliation attempt."""

    def __init__(self, message: str = RECONCILIATION_FAILED_ERROR):
        super().__init__(message)


class FinalizationFailedError(OperatorError):
    """Coarse, retryable classification for any failed finalization attempt."""

    def __init__(self, message: str = FINALIZATION_FAILED_ERROR):
        super().__init__(message)


# Patterns that might expose sensitive information
SENSITIVE_PATTERNS = [
    r"sasl[_\s]?plain[_\s]?username[:=\s]+([^\s,;\)]+)",
    r"sasl[_\s]?plain[_\s]?password[:=\s]+([^\s,;\)]+)",
    r"bootstrap[_\s]?servers[:=\s]+([^\s;\)]+)",
]

# Fields to redact completely
SENSITIVE_FIELDS = {
    "password",
    "username",
    "secret",
    "credentials",
    "token",
}


def sanitize_error_message(message: str) -> str:
    """Sanitize error message to remove sensitive information.

    Args:
        message: Original error message

    Returns:
        Sanitized error message with sensitive data redacted
    """
    sanitized = message

    for pattern in SENSITIVE_PATTERNS:
        sanitized = re.sub(pattern, lambda m: m.group(0).replace(m.group(1), "[REDACTED]"), sanitized, flags=re.IGNORECASE)

    for field in SENSITIVE_FIELDS:
        sanitized = re.sub(
            rf"\b{field}[:=]\s*([^\s,;\)]+)",
            f"{field}: [REDACTED]",
            sanitized,
            flags=re.IGNORECASE,
        )

    return sanitized


def sanitize_exception(error: Exception) -> str:
    """Sanitize exception message.

    Args:
        error: Exception object

    Returns:
        Sanitized error message
    """
    return sanitize_error_message(str(error))

