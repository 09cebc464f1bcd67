"""
genstudio.core.exceptions - Custom Exception Hierarchy
========================================================

This module defines the structured exception hierarchy for GenStudio.
Every failure that can end a generation attempt is a distinct, catchable
type, so the AttemptController can classify outcomes without parsing
message strings and the HTTP layer can map them to status codes.

Exception Hierarchy:
    GenStudioError (base)
        ├── ConfigurationError       - Invalid config, missing required values
        ├── ValidationError          - Malformed generation input (HTTP 400)
        ├── AuthError                - Missing or invalid credentials (HTTP 401)
        ├── OverloadedError          - Transient model overload (HTTP 503)
        ├── CancelledError           - Submission cancelled by the caller
        ├── UnknownError             - Anything unclassified (HTTP 500)
        ├── StorageError             - ArtifactStore read/write failures
        ├── InvalidTransitionError   - Illegal attempt state machine move
        └── SubmissionError          - AttemptController misuse
                └── SubmissionInProgressError

Retry Classification:
    Only OverloadedError is recovered locally (by retrying). Every other
    kind ends the submission on its first occurrence:

        OverloadedError  → retry with backoff (until max_retries)
        CancelledError   → terminal ABORTED (never counted as a failure)
        anything else    → terminal FAILED, message surfaced verbatim

Usage:
    >>> from genstudio.core.exceptions import ValidationError
    >>> raise ValidationError(
    ...     message="Prompt too long",
    ...     details={"errors": [{"field": "prompt", "message": "Prompt too long"}]},
    ... )
"""

from __future__ import annotations

from typing import Any, Optional


# =============================================================================
# Base Exception
# =============================================================================
# All GenStudio exceptions inherit from this base class. This allows
# catching every framework-specific error with a single except clause:
#
#   try:
#       artifact = await gateway.create(...)
#   except GenStudioError as e:
#       logger.error(e.message, error_code=e.error_code, details=e.details)
# =============================================================================
class GenStudioError(Exception):
    """Base exception for all GenStudio errors.

    Provides structured error information beyond a simple message string.

    Attributes:
        message: Human-readable error description. For user-facing errors
            (validation, overload) this is the exact text shown to the user.
        error_code: Machine-readable error code for programmatic handling.
            Convention: UPPER_SNAKE_CASE (e.g., "MODEL_OVERLOADED").
        details: Arbitrary dict with additional debugging context.

    Example:
        >>> try:
        ...     do_something()
        ... except GenStudioError as e:
        ...     print(f"[{e.error_code}] {e.message}")
    """

    def __init__(
        self,
        message: str,
        error_code: str = "UNKNOWN_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        # Call Exception.__init__ with the message so that str(exception) works
        super().__init__(message)

        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize this exception to a dictionary.

        Used for structlog context and for HTTP error bodies.

        Returns:
            Dictionary with error_type, message, error_code, and details.
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }

    def __repr__(self) -> str:
        """Detailed string representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


# =============================================================================
# Configuration Error
# =============================================================================
class ConfigurationError(GenStudioError):
    """Raised when GenStudio configuration is invalid or missing.

    Example:
        >>> raise ConfigurationError(
        ...     message="genstudio.yaml must contain a mapping at the top level",
        ...     details={"path": "genstudio.yaml"},
        ... )
    """

    def __init__(
        self,
        message: str,
        error_code: str = "CONFIG_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


# =============================================================================
# Validation Error
# =============================================================================
# Raised by the GenerationGateway BEFORE the overload gate is evaluated.
# Invalid input therefore never consumes retry budget and never produces a
# spurious overload.
# =============================================================================
class ValidationError(GenStudioError):
    """Raised when generation input is malformed.

    Non-retryable. The message is surfaced to the user verbatim, and
    ``details["errors"]`` carries the per-field breakdown.

    Example:
        >>> raise ValidationError(
        ...     message="Invalid style selected",
        ...     details={"errors": [{"field": "style", "message": "Invalid style selected"}]},
        ... )
    """

    def __init__(
        self,
        message: str,
        error_code: str = "VALIDATION_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)

    @property
    def errors(self) -> list[dict[str, Any]]:
        """Per-field validation errors (may be empty)."""
        return list(self.details.get("errors", []))


# =============================================================================
# Auth Error
# =============================================================================
class AuthError(GenStudioError):
    """Raised when a request carries no owner or an unrecognized token.

    Non-retryable: the submission ends on the first occurrence.

    Common error codes:
        - AUTH_REQUIRED: no credentials at all
        - INVALID_TOKEN: credentials present but not recognized
    """

    def __init__(
        self,
        message: str = "Authentication required",
        error_code: str = "AUTH_REQUIRED",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


# =============================================================================
# Overloaded Error
# =============================================================================
# The one retryable error. Raised by the gateway's probabilistic overload
# gate before any write happens, so a rejected attempt leaves no trace in
# the ArtifactStore.
# =============================================================================
class OverloadedError(GenStudioError):
    """Raised when the model-serving endpoint rejects an attempt as overloaded.

    Retryable up to the controller's ``max_retries`` bound.
    """

    def __init__(
        self,
        message: str = "Model overloaded",
        error_code: str = "MODEL_OVERLOADED",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


# =============================================================================
# Cancelled Error
# =============================================================================
# Note: this is NOT asyncio.CancelledError. Modules that need both import
# asyncio and refer to the stdlib one as ``asyncio.CancelledError``.
# =============================================================================
class CancelledError(GenStudioError):
    """Raised when a submission is cancelled by its caller.

    Terminal, and explicitly distinguished from failure: it never counts
    against the retry budget and is never rendered as an error.
    """

    def __init__(
        self,
        message: str = "Generation aborted",
        error_code: str = "CANCELLED",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


# =============================================================================
# Unknown Error
# =============================================================================
class UnknownError(GenStudioError):
    """Non-retryable fallback for anything that could not be classified.

    Transports wrap unexpected HTTP statuses and network failures in this
    type; the AttemptController wraps any non-GenStudio exception in it.
    """

    def __init__(
        self,
        message: str = "An error occurred",
        error_code: str = "UNKNOWN_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


# =============================================================================
# Storage Error
# =============================================================================
class StorageError(GenStudioError):
    """Raised when an ArtifactStore operation fails.

    Example:
        >>> raise StorageError(
        ...     message="Failed to insert generation row",
        ...     details={"database_path": "genstudio.sqlite"},
        ... )
    """

    def __init__(
        self,
        message: str,
        error_code: str = "STORAGE_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


# =============================================================================
# Invalid Transition Error
# =============================================================================
class InvalidTransitionError(GenStudioError):
    """Raised when the attempt state machine is asked for an illegal move.

    This always indicates a programming error in the controller: terminal
    states have no outgoing transitions.

    Attributes:
        phase: The phase the machine was in.
        event: The event that has no transition from that phase.
    """

    def __init__(
        self,
        phase: str,
        event: str,
        error_code: str = "INVALID_TRANSITION",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["phase"] = phase
        enriched_details["event"] = event

        super().__init__(
            message=f"No transition from phase '{phase}' on event '{event}'",
            error_code=error_code,
            details=enriched_details,
        )

        self.phase = phase
        self.event = event


# =============================================================================
# Submission Errors
# =============================================================================
# Raised by the AttemptController when it is used incorrectly. These are
# raised to the caller of submit() and never change the controller's state.
# =============================================================================
class SubmissionError(GenStudioError):
    """Raised when a submission cannot be started.

    Example:
        >>> raise SubmissionError(
        ...     message="max_retries must be at least 1",
        ...     error_code="INVALID_MAX_RETRIES",
        ...     details={"max_retries": 0},
        ... )
    """

    def __init__(
        self,
        message: str,
        error_code: str = "SUBMISSION_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


class SubmissionInProgressError(SubmissionError):
    """Raised when submit() is called while another submission is in flight.

    A controller accepts one submission at a time; the active submission
    is left untouched.
    """

    def __init__(
        self,
        message: str = "A generation is already in progress",
        error_code: str = "SUBMISSION_IN_PROGRESS",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)
