"""Household session: state, chat history and the current best strategy.

The session is the single writer of the household. Every successful
mutation, whether from form entry or from the assistant, replaces the state
wholesale and re-runs the optimizer, so ``strategy`` always reflects
``household``.
"""

from typing import Any, Optional, Union

import structlog

from taxmate_core.calculator import optimize
from taxmate_core.exceptions import ValidationError
from taxmate_core.household import (
    apply_state_update,
    default_household,
    reset_household,
    set_living_with_child,
    set_relationship,
    update_person_field,
)
from taxmate_core.models import BestStrategy, HouseholdState, HouseholdUpdate, PersonRole, Relationship

from taxmate_agents.config import AssistantConfig
from taxmate_agents.interfaces.base import AgentResult
from taxmate_agents.interfaces.types import AssistantRequest, ChatMessage, ChatRole
from taxmate_agents.assistant import TaxAssistant

logger = structlog.get_logger()

GREETING = (
    "Hi! I'm your tax planning assistant. I can compare filing options for up "
    "to four people at once.\n\nWhat is your marital status, and which family "
    "members (spouse, brothers or sisters) would you like to compare with?"
)


class HouseholdSession:
    """One user's calculator session."""

    def __init__(
        self,
        assistant: Optional[TaxAssistant] = None,
        config: Optional[AssistantConfig] = None,
        household: Optional[HouseholdState] = None,
    ):
        self.assistant = assistant
        self.config = config or (assistant.assistant_config if assistant else AssistantConfig())
        self._household = household or default_household()
        self._strategy = optimize(self._household)
        self.messages: list[ChatMessage] = [
            ChatMessage(role=ChatRole.ASSISTANT, content=GREETING)
        ]

    @property
    def household(self) -> HouseholdState:
        return self._household

    @property
    def strategy(self) -> BestStrategy:
        return self._strategy

    def _commit(self, household: HouseholdState) -> BestStrategy:
        self._household = household
        self._strategy = optimize(household)
        return self._strategy

    def _append(self, role: ChatRole, content: str, is_error: bool = False) -> None:
        self.messages.append(ChatMessage(role=role, content=content, is_error=is_error))
        overflow = len(self.messages) - self.config.max_history
        if overflow > 0:
            del self.messages[:overflow]

    # -------------------------------------------------------------------------
    # Form entry
    # -------------------------------------------------------------------------

    def update_field(self, role: Union[PersonRole, str], field: str, value: Any) -> BestStrategy:
        """Set one person field and recompute."""
        return self._commit(update_person_field(self._household, role, field, value))

    def set_relationship(self, value: Union[Relationship, str]) -> BestStrategy:
        return self._commit(set_relationship(self._household, value))

    def set_living_with_child(self, flag: Any) -> BestStrategy:
        return self._commit(set_living_with_child(self._household, flag))

    def apply_update(self, update: Union[HouseholdUpdate, dict]) -> BestStrategy:
        """Merge a partial household state and recompute.

        Raises:
            ValidationError: If the update is rejected; the state is unchanged
        """
        return self._commit(apply_state_update(self._household, update))

    def reset(self) -> BestStrategy:
        """Reset the household to defaults. Chat history is kept."""
        return self._commit(reset_household())

    # -------------------------------------------------------------------------
    # Assistant
    # -------------------------------------------------------------------------

    async def send(self, message: str) -> AgentResult:
        """
        Send a chat message to the assistant and apply its update.

        The update is applied only if the whole reply parsed and validated;
        otherwise an error message is added to the chat and the household is
        left as it was.

        Returns:
            The assistant's AgentResult, or an error result if its update
            was rejected
        """
        if not message or not message.strip():
            return AgentResult.failure("Message is empty")

        self._append(ChatRole.USER, message)

        if self.assistant is None:
            result = AgentResult.failure("Error: the assistant is not configured")
            self._append(ChatRole.ASSISTANT, result.error, is_error=True)
            return result

        result = await self.assistant.process(
            AssistantRequest(message=message, household=self._household)
        )

        if result.is_error:
            self._append(ChatRole.ASSISTANT, result.error, is_error=True)
            return result

        reply = result.data
        if reply.has_update:
            try:
                self.apply_update(reply.new_state)
            except ValidationError as e:
                logger.warning("assistant_update_rejected", error=e.message, details=e.details)
                failure = AgentResult.failure(
                    f"Error: {e.message}",
                    details=e.details,
                    agent_name=result.agent_name,
                )
                self._append(ChatRole.ASSISTANT, failure.error, is_error=True)
                return failure

        self._append(ChatRole.ASSISTANT, reply.reply)
        return result
