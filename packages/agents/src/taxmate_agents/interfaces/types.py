"""Wire types exchanged with the tax assistant.

The assistant answers every chat message with a single JSON object:

    {"newState": {...partial household...}, "reply": "free text"}

``newState`` is kept as a raw mapping here and validated by
``taxmate_core.household.parse_state_update`` when it is merged, so the
strict schema rules live in one place.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from taxmate_core.models import HouseholdState


class ChatRole(str, Enum):
    """Author of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    """A single message in the assistant conversation."""

    role: ChatRole
    content: str
    timestamp: datetime = Field(default_factory=datetime.now)
    is_error: bool = Field(
        default=False,
        description="True for messages reporting a failed assistant turn",
    )


class AssistantRequest(BaseModel):
    """Input to the assistant: the user's message and the current household."""

    message: str
    household: HouseholdState


class AssistantReply(BaseModel):
    """Parsed assistant response."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    new_state: Optional[dict[str, Any]] = Field(
        default=None,
        alias="newState",
        description="Partial household state to merge, if any",
    )
    reply: str = Field(
        default="",
        description="Free-text answer shown to the user",
    )

    @field_validator("reply", mode="before")
    @classmethod
    def coerce_reply(cls, v):
        """Missing replies become empty strings."""
        return "" if v is None else str(v)

    @property
    def has_update(self) -> bool:
        """True if the reply carries a non-empty state update."""
        return bool(self.new_state)


__all__ = [
    "ChatRole",
    "ChatMessage",
    "AssistantRequest",
    "AssistantReply",
]
