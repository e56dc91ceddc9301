"""Framework-agnostic agent interfaces for Taxmate.

This module defines the protocol that any assistant implementation must
satisfy and the result wrapper it returns. The protocol uses structural
subtyping via typing.Protocol, so any class with matching methods is
compatible without inheriting from it.

Example Usage:
    ```python
    from taxmate_agents.interfaces.base import AgentProtocol, AgentResult

    class EchoAssistant:
        async def process(self, request: AssistantRequest) -> AgentResult[AssistantReply]:
            return AgentResult.success(AssistantReply(reply=request.message))

        def validate_input(self, request: AssistantRequest) -> bool:
            return bool(request.message.strip())

    # EchoAssistant is compatible with AgentProtocol
    ```
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Generic, Optional, Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel, Field


# =============================================================================
# TYPE VARIABLES
# =============================================================================

InputT = TypeVar("InputT", contravariant=True)
"""Type variable for agent input types."""

OutputT = TypeVar("OutputT", covariant=True)
"""Type variable for agent output types."""

ResultT = TypeVar("ResultT")
"""Type variable for result data types."""


# =============================================================================
# ENUMERATIONS
# =============================================================================

class AgentStatus(str, Enum):
    """Status codes for agent execution results."""

    SUCCESS = "success"
    """Agent completed successfully."""

    ERROR = "error"
    """Agent encountered an error during execution."""


# =============================================================================
# RESULT MODELS
# =============================================================================

class AgentResult(BaseModel, Generic[ResultT]):
    """Standardized wrapper for agent processing results.

    Attributes:
        status: The execution status
        data: The result data, typed according to the agent's OutputT
        error: User-facing error message if status is ERROR
        error_details: Additional error context
        started_at: When processing began
        completed_at: When processing finished
        duration_ms: Processing time in milliseconds
        metadata: Additional context (model used, tokens, ...)
        agent_name: Name of the agent that produced this result

    Example:
        ```python
        result = AgentResult.success(
            reply,
            agent_name="tax_assistant",
            metadata={"model": "gpt-4o"},
        )
        ```
    """

    status: AgentStatus = Field(
        default=AgentStatus.SUCCESS,
        description="Execution status of the agent"
    )
    data: Optional[Any] = Field(
        default=None,
        description="The result data from agent processing"
    )
    error: Optional[str] = Field(
        default=None,
        description="Error message if status is ERROR"
    )
    error_details: Optional[dict[str, Any]] = Field(
        default=None,
        description="Additional error context and details"
    )
    started_at: Optional[datetime] = Field(
        default=None,
        description="Timestamp when processing started"
    )
    completed_at: Optional[datetime] = Field(
        default=None,
        description="Timestamp when processing completed"
    )
    duration_ms: Optional[float] = Field(
        default=None,
        ge=0,
        description="Processing duration in milliseconds"
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional metadata about the processing"
    )
    agent_name: Optional[str] = Field(
        default=None,
        description="Name of the agent that produced this result"
    )

    @property
    def is_success(self) -> bool:
        """Check if the result indicates successful processing."""
        return self.status == AgentStatus.SUCCESS

    @property
    def is_error(self) -> bool:
        """Check if the result indicates an error occurred."""
        return self.status == AgentStatus.ERROR

    @classmethod
    def success(
        cls,
        data: Any,
        *,
        agent_name: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> AgentResult[Any]:
        """Create a successful result with the given data."""
        return cls(
            status=AgentStatus.SUCCESS,
            data=data,
            agent_name=agent_name,
            metadata=metadata or {},
        )

    @classmethod
    def failure(
        cls,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        agent_name: Optional[str] = None,
    ) -> AgentResult[Any]:
        """Create an error result with the given message."""
        return cls(
            status=AgentStatus.ERROR,
            error=message,
            error_details=details,
            agent_name=agent_name,
        )


# =============================================================================
# AGENT PROTOCOL
# =============================================================================

@runtime_checkable
class AgentProtocol(Protocol[InputT, OutputT]):
    """Protocol defining the contract for assistant implementations.

    - `process()`: performs the agent's work and wraps the outcome
    - `validate_input()`: cheap synchronous check before processing

    Notes:
        - Implementations MUST be async-compatible
        - process() MUST NOT raise; failures are returned as ERROR results
    """

    async def process(self, input_data: InputT) -> AgentResult[OutputT]:
        """Process the input and return a result.

        Raises:
            This method should NOT raise exceptions. All errors should be
            captured and returned as AgentResult with ERROR status.
        """
        ...

    def validate_input(self, input_data: InputT) -> bool:
        """Return True if the input can be processed."""
        ...


__all__ = [
    "InputT",
    "OutputT",
    "ResultT",
    "AgentStatus",
    "AgentResult",
    "AgentProtocol",
]
