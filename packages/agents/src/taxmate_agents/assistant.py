"""
LLM tax assistant that turns chat messages into household updates.

The assistant sees the current household as JSON together with the tax
rules, and must answer with a single JSON object:

    {"newState": {...partial household...}, "reply": "..."}

Responses are parsed defensively (markdown fences and surrounding prose are
tolerated); anything that still does not parse raises UpdateParseError so
the caller can keep the household unchanged.
"""

import asyncio
import json
import os
import re
import time
from datetime import datetime
from typing import Any, Optional

import anthropic
import openai
import pydantic
import structlog

from taxmate_core.exceptions import AgentError, ConfigurationError, UpdateParseError
from taxmate_core.hk_rates import (
    ALLOWANCE_FLAG_VALUES,
    ALLOWANCE_UNIT_VALUES,
    BASIC_ALLOWANCE,
    DEDUCTION_CAPS,
    DONATION_CAP_RATE,
    MARRIED_ALLOWANCE,
    PROGRESSIVE_BANDS,
    RATES_VERSION,
    RENT_CAP,
    RENT_CAP_LIVING_WITH_CHILD,
    STANDARD_RATE,
    STANDARD_RATE_HIGH,
    STANDARD_RATE_THRESHOLD,
    TAX_REDUCTION_CAP,
)
from taxmate_core.models import HouseholdState, PersonRecord

from taxmate_agents.config import AssistantConfig, LLMConfig, LLMProvider
from taxmate_agents.interfaces.base import AgentResult
from taxmate_agents.interfaces.types import AssistantReply, AssistantRequest

logger = structlog.get_logger()

API_KEY_ENV_VARS = {
    LLMProvider.OPENAI: "OPENAI_API_KEY",
    LLMProvider.ANTHROPIC: "ANTHROPIC_API_KEY",
}


SYSTEM_PROMPT_TEMPLATE = """You are a proactive, professional Hong Kong salaries tax advisor.
Apply the Inland Revenue Department rules for the {rates_version} year of assessment.

CURRENT CALCULATOR STATE (JSON):
{household_json}

TAX RULES:
{rules}

BEHAVIOUR:
1. People: the calculator holds up to four people, p1 to p4. The user is p1.
   If the user mentions a spouse or one relative, put them in p2. Further
   relatives go in p3 and p4.
2. Relationship: set "relationship" to "married" for a married couple in p1
   and p2, otherwise "single". No other values are allowed.
3. Income is annual. If the user gives a monthly salary, multiply it by 12.
4. Allowances follow the person: a dependent may be claimed by ONE person
   only. If p2 claims a live-in parent aged 60+, set p2.parents60LiveIn = 1
   and p1.parents60LiveIn = 0. Never let two people claim the same dependent.
5. Only include the fields that change. Use these person field names:
   {person_fields}
6. Set "livingWithChild" to true if the household lives with a dependent child.

IMPORTANT: reply with ONE plain JSON object and nothing else. No markdown.
Format: {{"newState": {{...}}, "reply": "your answer in {reply_language}"}}
"""


def _money(value) -> str:
    return f"${value:,.0f}"


def _percent(rate) -> str:
    return f"{(rate * 100).normalize():f}%"


def build_tax_rules() -> str:
    """Render the statutory tables as prompt text."""
    bands = []
    for width, rate in PROGRESSIVE_BANDS:
        if width is None:
            bands.append(f"remainder {_percent(rate)}")
        else:
            bands.append(f"{_money(width)} at {_percent(rate)}")

    deduction_caps = [f"{field}: {_money(cap)}" for field, cap in DEDUCTION_CAPS.items()]
    deduction_caps.append(
        f"rent: {_money(RENT_CAP)} ({_money(RENT_CAP_LIVING_WITH_CHILD)} when living with a child)"
    )
    deduction_caps.append(f"donation: {_percent(DONATION_CAP_RATE)} of assessable income")

    allowances = [f"{field}: {_money(value)} each" for field, value in ALLOWANCE_UNIT_VALUES.items()]
    allowances += [f"{field}: {_money(value)}" for field, value in ALLOWANCE_FLAG_VALUES.items()]

    return "\n".join([
        f"1. Progressive rates: {', '.join(bands)}.",
        (
            f"2. Standard rate: {_percent(STANDARD_RATE)} on the first "
            f"{_money(STANDARD_RATE_THRESHOLD)}, {_percent(STANDARD_RATE_HIGH)} on the remainder."
        ),
        f"3. Tax reduction: 100% of tax, capped at {_money(TAX_REDUCTION_CAP)}.",
        (
            f"4. Allowances: basic {_money(BASIC_ALLOWANCE)}, married {_money(MARRIED_ALLOWANCE)}; "
            + "; ".join(allowances)
            + "."
        ),
        f"5. Deduction caps: {'; '.join(deduction_caps)}.",
    ])


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences and surrounding prose from a JSON reply."""
    text = re.sub(r"```(?:json)?", "", text, flags=re.IGNORECASE).strip()
    match = re.search(r"\{.*\}", text, re.DOTALL)
    if match:
        return match.group(0)
    return text


def parse_reply(text: Optional[str]) -> AssistantReply:
    """
    Parse the assistant's raw text into an AssistantReply.

    Raises:
        UpdateParseError: If the text is not a JSON object of the expected shape
    """
    if not text or not text.strip():
        raise UpdateParseError("Assistant returned an empty response", raw_response=text)

    candidate = strip_code_fences(text)
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise UpdateParseError(
            "Assistant response is not valid JSON",
            raw_response=text,
            details={"position": e.pos},
        ) from e

    if not isinstance(data, dict):
        raise UpdateParseError(
            "Assistant response must be a JSON object",
            raw_response=text,
        )

    try:
        return AssistantReply.model_validate(data)
    except pydantic.ValidationError as e:
        raise UpdateParseError(
            "Assistant response has an unexpected shape",
            raw_response=text,
            details={"errors": e.errors(include_url=False, include_input=False)},
        ) from e


class TaxAssistant:
    """
    Chat assistant backed by an OpenAI-compatible or Anthropic model.

    A pre-built client may be injected; otherwise one is created from the
    LLM configuration.
    """

    AGENT_NAME = "tax_assistant"

    def __init__(
        self,
        llm_config: Optional[LLMConfig] = None,
        assistant_config: Optional[AssistantConfig] = None,
        client: Optional[Any] = None,
    ):
        """
        Initialize the assistant.

        Args:
            llm_config: Provider, model and credentials (default: from environment)
            assistant_config: Reply language and other behavior settings
            client: Pre-built provider client, mainly for tests

        Raises:
            ConfigurationError: If no API key is available and no client is given
        """
        self.llm_config = llm_config or LLMConfig()
        self.assistant_config = assistant_config or AssistantConfig()
        self.client = client if client is not None else self._create_client()

    def _create_client(self) -> Any:
        provider = self.llm_config.provider
        env_var = API_KEY_ENV_VARS[provider]
        api_key = self.llm_config.api_key or os.getenv(env_var)
        if not api_key:
            raise ConfigurationError(
                f"No API key configured for {provider.value}",
                config_key="TAXMATE_LLM_API_KEY",
                expected=f"API key, or the {env_var} environment variable",
            )

        if provider == LLMProvider.ANTHROPIC:
            return anthropic.Anthropic(
                api_key=api_key,
                base_url=self.llm_config.base_url,
                timeout=self.llm_config.timeout,
            )
        return openai.OpenAI(
            api_key=api_key,
            base_url=self.llm_config.base_url,
            timeout=self.llm_config.timeout,
        )

    def build_system_prompt(self, household: HouseholdState) -> str:
        """Build the system prompt embedding the current household."""
        household_json = json.dumps(
            household.model_dump(mode="json", by_alias=True),
            ensure_ascii=False,
        )
        person_fields = ", ".join(
            field.alias or name for name, field in PersonRecord.model_fields.items()
        )
        return SYSTEM_PROMPT_TEMPLATE.format(
            rates_version=RATES_VERSION,
            household_json=household_json,
            rules=build_tax_rules(),
            person_fields=person_fields,
            reply_language=self.assistant_config.reply_language,
        )

    def complete(self, system_prompt: str, message: str) -> str:
        """
        Send one chat turn to the provider and return the raw text.

        Raises:
            AgentError: If the provider call fails or returns no text
        """
        provider = self.llm_config.provider
        try:
            if provider == LLMProvider.ANTHROPIC:
                response = self.client.messages.create(
                    model=self.llm_config.model,
                    max_tokens=self.llm_config.max_tokens,
                    temperature=self.llm_config.temperature,
                    system=system_prompt,
                    messages=[{"role": "user", "content": message}],
                )
                return response.content[0].text

            response = self.client.chat.completions.create(
                model=self.llm_config.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": message},
                ],
                temperature=self.llm_config.temperature,
                max_tokens=self.llm_config.max_tokens,
            )
            return response.choices[0].message.content
        except Exception as e:
            raise AgentError(
                "Chat completion failed",
                agent_name=self.AGENT_NAME,
                operation="chat_completion",
                api_error=str(e),
                details={"provider": provider.value, "model": self.llm_config.model},
            ) from e

    def respond(self, message: str, household: HouseholdState) -> AssistantReply:
        """
        Ask the assistant about the household and parse its answer.

        Raises:
            AgentError: If the provider call fails
            UpdateParseError: If the answer cannot be parsed
        """
        raw = self.complete(self.build_system_prompt(household), message)
        if self.assistant_config.debug_mode:
            logger.debug("assistant_raw_response", response=raw)
        return parse_reply(raw)

    def validate_input(self, request: AssistantRequest) -> bool:
        """A request needs a non-blank message."""
        return bool(request.message and request.message.strip())

    async def process(self, request: AssistantRequest) -> AgentResult[AssistantReply]:
        """
        Run one assistant turn without raising.

        Provider and parsing failures are returned as error results whose
        message is suitable for showing to the user.
        """
        started_at = datetime.now()
        start = time.perf_counter()

        if not self.validate_input(request):
            return AgentResult.failure("Message is empty", agent_name=self.AGENT_NAME)

        try:
            reply = await asyncio.to_thread(self.respond, request.message, request.household)
        except (AgentError, UpdateParseError) as e:
            logger.warning(
                "assistant_turn_failed",
                error=e.message,
                error_type=type(e).__name__,
            )
            result = AgentResult.failure(
                f"Error: {e.message}",
                details=e.details,
                agent_name=self.AGENT_NAME,
            )
        else:
            logger.info("assistant_turn_completed", has_update=reply.has_update)
            result = AgentResult.success(
                reply,
                agent_name=self.AGENT_NAME,
                metadata={
                    "provider": self.llm_config.provider.value,
                    "model": self.llm_config.model,
                },
            )

        result.started_at = started_at
        result.completed_at = datetime.now()
        result.duration_ms = (time.perf_counter() - start) * 1000
        return result


def create_tax_assistant(
    llm_config: Optional[LLMConfig] = None,
    assistant_config: Optional[AssistantConfig] = None,
) -> Optional[TaxAssistant]:
    """
    Factory function to create a TaxAssistant if credentials are available.

    Returns None when no API key is configured, so the calculator can run
    without the assistant.
    """
    try:
        return TaxAssistant(llm_config=llm_config, assistant_config=assistant_config)
    except ConfigurationError as e:
        logger.warning("assistant_unavailable", error=e.message)
        return None
