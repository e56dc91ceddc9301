"""Framework-agnostic agent interfaces.

Available Interfaces:
    AgentProtocol: The core protocol for assistant implementations
    AgentResult: Standardized result wrapper for agent outputs
    AgentStatus: Enum for execution status codes

Assistant Wire Types:
    AssistantRequest: User message plus current household
    AssistantReply: Parsed ``{"newState", "reply"}`` response
    ChatMessage: One message of the conversation
"""

from taxmate_agents.interfaces.base import (
    # Type variables
    InputT,
    OutputT,
    ResultT,
    # Enumerations
    AgentStatus,
    # Result models
    AgentResult,
    # Protocols
    AgentProtocol,
)

from taxmate_agents.interfaces.types import (
    AssistantReply,
    AssistantRequest,
    ChatMessage,
    ChatRole,
)

__all__ = [
    # Type variables
    "InputT",
    "OutputT",
    "ResultT",
    # Enumerations
    "AgentStatus",
    # Result models
    "AgentResult",
    # Protocols
    "AgentProtocol",
    # Wire types
    "AssistantReply",
    "AssistantRequest",
    "ChatMessage",
    "ChatRole",
]
