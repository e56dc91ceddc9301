"""Taxmate Agents - Chat assistant and session for the household tax optimizer."""

from taxmate_agents.assistant import TaxAssistant, create_tax_assistant, parse_reply
from taxmate_agents.config import (
    AssistantConfig,
    LLMConfig,
    LLMProvider,
    TaxmateConfig,
)
from taxmate_agents.log_setup import configure_logging
from taxmate_agents.session import HouseholdSession

__version__ = "0.1.0"

__all__ = [
    "TaxAssistant",
    "create_tax_assistant",
    "parse_reply",
    "AssistantConfig",
    "LLMConfig",
    "LLMProvider",
    "TaxmateConfig",
    "configure_logging",
    "HouseholdSession",
]
