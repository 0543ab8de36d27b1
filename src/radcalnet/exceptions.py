"""Custom exceptions for RadCalNet.

Provides structured error handling with specific exception types for the
failure modes of database generation and modeling. Per-sample oracle failures
derive from ``SimulationError`` and are the only errors the batch runner
recovers from; everything else propagates.
"""

from typing import Any, Dict, Optional


class RadcalError(Exception):
    """Base exception for all RadCalNet errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigurationError(RadcalError):
    """Raised when there's a configuration-related error."""
    pass


class SimulationError(RadcalError):
    """Raised when a single oracle run fails (reported error, bad exit, bad output)."""
    pass


class OracleTimeoutError(SimulationError):
    """Raised when an oracle run exceeds its wall-clock budget."""
    pass


class OracleNotFoundError(RadcalError):
    """Raised when the oracle executable cannot be found or executed."""
    pass


class DatabaseError(RadcalError, OSError):
    """Raised when intermediate or final database files are missing or malformed."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        RadcalError.__init__(self, message, details)

    def __str__(self) -> str:
        return RadcalError.__str__(self)


class ValidationError(RadcalError):
    """Raised when input validation fails."""
    pass


class ModelError(RadcalError):
    """Raised when model or scaler artifacts are missing or inconsistent."""
    pass


class LoggingError(RadcalError):
    """Raised when there's a logging system error."""
    pass


def validate_positive(value: float, name: str) -> float:
    """Validate that a value is positive."""
    if value <= 0:
        raise ValidationError(f"{name} must be positive", details={"value": value, "parameter": name})
    return value


def validate_range(value: float, min_val: float, max_val: float, name: str) -> float:
    """Validate that a value is within a range."""
    if not (min_val <= value <= max_val):
        raise ValidationError(
            f"{name} must be between {min_val} and {max_val}",
            details={"value": value, "min": min_val, "max": max_val, "parameter": name}
        )
    return value


def validate_shape(array, expected_shape: tuple, name: str) -> None:
    """Validate array shape."""
    if tuple(array.shape) != tuple(expected_shape):
        raise ValidationError(
            f"{name} has incorrect shape",
            details={
                "actual_shape": tuple(array.shape),
                "expected_shape": tuple(expected_shape),
                "parameter": name
            }
        )
