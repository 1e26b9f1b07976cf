"""Custom exceptions for TrustWeave.

Provides a hierarchy of exceptions for the scoring and feedback paths.
All TrustWeave exceptions inherit from TrustWeaveException.
"""

from typing import Any, Dict, Optional


class TrustWeaveException(Exception):
    """Base exception for all TrustWeave errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: str = "TRUSTWEAVE_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for caller-facing responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(TrustWeaveException):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONFIG_ERROR", details=details)


class InvalidInputError(TrustWeaveException):
    """Raised when a transaction, biometric sample or feedback record is malformed.

    Always raised before any shared state is mutated.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="INVALID_INPUT", details=details)

    @classmethod
    def from_validation(cls, what: str, exc: Exception) -> "InvalidInputError":
        """Wrap a pydantic ValidationError, keeping the field-level errors."""
        errors = exc.errors() if hasattr(exc, "errors") else []
        fields = [".".join(str(p) for p in err.get("loc", ())) for err in errors]
        return cls(
            f"Invalid {what}: {', '.join(fields) or str(exc)}",
            details={"fields": fields},
        )


class ProcessingFailure(TrustWeaveException):
    """Raised when an internal scoring step fails for a single transaction."""

    def __init__(
        self,
        message: str,
        transaction_id: Optional[str] = None,
        elapsed_ms: float = 0.0,
        details: Optional[Dict[str, Any]] = None
    ):
        details = details or {}
        details["transaction_id"] = transaction_id
        details["elapsed_ms"] = round(elapsed_ms, 3)
        self.transaction_id = transaction_id
        self.elapsed_ms = elapsed_ms
        super().__init__(message, code="PROCESSING_FAILURE", details=details)


class ModelUpdateError(TrustWeaveException):
    """Raised when executing a queued model update fails.

    The update queue catches this and reschedules; it is never dropped.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="MODEL_UPDATE_FAILURE", details=details)
