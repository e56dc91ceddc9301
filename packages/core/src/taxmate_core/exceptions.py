"""Custom exceptions for the Taxmate application.

This module provides a hierarchy of exception classes for the boundary
layers around the tax engine. The evaluator, calculator and optimizer never
raise; these exceptions describe failures of the collaborators that feed
them (the assistant, the update merge and configuration). All exceptions
inherit from TaxmateError, making it easy to catch all application errors.

Example:
    try:
        household = apply_state_update(household, reply.new_state)
    except ValidationError as e:
        # Reject the whole update and keep the current state
        logger.warning("update_rejected", error=str(e))
    except TaxmateError as e:
        logger.error("update_failed", error=str(e))
"""

from typing import Any, Optional


class TaxmateError(Exception):
    """Base exception for all Taxmate application errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context.
        recoverable: Whether the error is potentially recoverable.

    Example:
        >>> raise TaxmateError("Something went wrong", details={"code": 500})
        TaxmateError: Something went wrong
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        """Initialize TaxmateError.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional context about the error.
            recoverable: Whether the error is potentially recoverable through
                retry or user correction. Defaults to False.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        """Return string representation of the error."""
        return self.message

    def __repr__(self) -> str:
        """Return detailed representation of the error."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"recoverable={self.recoverable!r})"
        )


class UpdateParseError(TaxmateError):
    """Error raised when an assistant response is not a valid state update.

    Raised when the assistant's text cannot be parsed as the expected
    ``{"newState": ..., "reply": ...}`` JSON shape. The household state must
    stay untouched when this is raised.

    Attributes:
        raw_response: The text that failed to parse (truncated).

    Example:
        >>> raise UpdateParseError(
        ...     "Assistant reply is not valid JSON",
        ...     raw_response="Sure! Here is your answer...",
        ... )
        UpdateParseError: Assistant reply is not valid JSON
    """

    def __init__(
        self,
        message: str,
        *,
        raw_response: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = True,
    ) -> None:
        """Initialize UpdateParseError.

        Args:
            message: Human-readable error description.
            raw_response: The raw assistant output that failed to parse.
            details: Optional dictionary with additional context.
            recoverable: Whether the user can simply retry. Defaults to True
                since the assistant is non-deterministic.
        """
        super().__init__(message, details=details, recoverable=recoverable)
        self.raw_response = raw_response

        if raw_response:
            self.details["raw_response"] = raw_response[:500]


class ValidationError(TaxmateError):
    """Error raised when an incoming household update fails validation.

    Attributes:
        field: The field or key that failed validation.
        value: The invalid value (if safe to include).
        constraint: The validation constraint that was violated.

    Example:
        >>> raise ValidationError(
        ...     "Unknown person role",
        ...     field="newState",
        ...     value="p5",
        ...     constraint="Must be one of: p1, p2, p3, p4",
        ... )
        ValidationError: Unknown person role
    """

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        constraint: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = True,
    ) -> None:
        """Initialize ValidationError.

        Args:
            message: Human-readable error description.
            field: The name of the field that failed validation.
            value: The invalid value.
            constraint: Description of the validation rule violated.
            details: Optional dictionary with additional context.
            recoverable: Whether the error can be fixed by user correction.
        """
        super().__init__(message, details=details, recoverable=recoverable)
        self.field = field
        self.value = value
        self.constraint = constraint

        if field:
            self.details["field"] = field
        if value is not None:
            self.details["value"] = value
        if constraint:
            self.details["constraint"] = constraint


class AgentError(TaxmateError):
    """Error raised when the assistant's LLM call fails.

    Attributes:
        agent_name: Name or identifier of the agent that failed.
        operation: The operation the agent was attempting.
        api_error: The underlying API error message (if applicable).

    Example:
        >>> raise AgentError(
        ...     "Chat completion failed",
        ...     agent_name="tax_assistant",
        ...     operation="chat_completion",
        ...     api_error="Rate limit exceeded",
        ... )
        AgentError: Chat completion failed
    """

    def __init__(
        self,
        message: str,
        *,
        agent_name: Optional[str] = None,
        operation: Optional[str] = None,
        api_error: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = True,
    ) -> None:
        """Initialize AgentError.

        Args:
            message: Human-readable error description.
            agent_name: Identifier for the agent that encountered the error.
            operation: The specific operation being attempted.
            api_error: The underlying API error message from the provider.
            details: Optional dictionary with additional context.
            recoverable: Whether the operation can be retried. Defaults to True
                since most provider errors (rate limits, timeouts) are transient.
        """
        super().__init__(message, details=details, recoverable=recoverable)
        self.agent_name = agent_name
        self.operation = operation
        self.api_error = api_error

        if agent_name:
            self.details["agent_name"] = agent_name
        if operation:
            self.details["operation"] = operation
        if api_error:
            self.details["api_error"] = api_error


class ConfigurationError(TaxmateError):
    """Error raised when configuration is invalid or missing.

    Attributes:
        config_key: The configuration key that is problematic.
        expected: Description of the expected value or format.
        actual: The actual value found (if any).

    Example:
        >>> raise ConfigurationError(
        ...     "Missing required API key",
        ...     config_key="TAXMATE_LLM_API_KEY",
        ...     expected="API key for the configured provider",
        ... )
        ConfigurationError: Missing required API key
    """

    def __init__(
        self,
        message: str,
        *,
        config_key: Optional[str] = None,
        expected: Optional[str] = None,
        actual: Optional[Any] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        """Initialize ConfigurationError.

        Args:
            message: Human-readable error description.
            config_key: The name of the configuration key that is problematic.
            expected: Description of what value was expected.
            actual: The actual value found (avoid including secrets).
            details: Optional dictionary with additional context.
            recoverable: Whether the error can be fixed at runtime.
        """
        super().__init__(message, details=details, recoverable=recoverable)
        self.config_key = config_key
        self.expected = expected
        self.actual = actual

        if config_key:
            self.details["config_key"] = config_key
        if expected:
            self.details["expected"] = expected
        if actual is not None:
            self.details["actual"] = actual


__all__ = [
    "TaxmateError",
    "UpdateParseError",
    "ValidationError",
    "AgentError",
    "ConfigurationError",
]
