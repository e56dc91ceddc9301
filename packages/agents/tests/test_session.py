"""Tests for the household session: recompute on change, assistant merges."""

import asyncio
from decimal import Decimal

import pytest

from conftest import FakeOpenAIClient, reply_json
from taxmate_agents.config import AssistantConfig
from taxmate_agents.interfaces.types import ChatRole
from taxmate_agents.session import GREETING, HouseholdSession
from taxmate_core.calculator import optimize
from taxmate_core.exceptions import ValidationError
from taxmate_core.models import Relationship, StrategyMode


def run_turn(session: HouseholdSession, message: str):
    return asyncio.run(session.send(message))


class TestFormEntry:
    """Every form change replaces the household and recomputes."""

    def test_initial_state(self):
        session = HouseholdSession()

        assert session.household.relationship == Relationship.SINGLE
        assert session.strategy.total == Decimal("0")
        assert session.messages[0].content == GREETING

    def test_update_field_recomputes(self):
        session = HouseholdSession()

        strategy = session.update_field("p1", "income", 360000)

        assert session.household.p1.income == Decimal("360000")
        assert session.household.p1.mpf == Decimal("18000")
        assert strategy is session.strategy
        assert strategy.total == optimize(session.household).total

    def test_relationship_switch_adds_candidates(self):
        session = HouseholdSession()
        session.update_field("p1", "income", 400000)
        session.update_field("p2", "income", 400000)

        assert len(session.strategy.candidates) == 1

        session.set_relationship("married")

        assert session.household.relationship == Relationship.MARRIED
        assert {c.mode for c in session.strategy.candidates} == {
            StrategyMode.P1_CLAIMS,
            StrategyMode.P2_CLAIMS,
            StrategyMode.JOINT,
        }

    def test_living_with_child_raises_rent_cap(self):
        session = HouseholdSession()
        session.update_field("p1", "income", 800000)
        session.update_field("p1", "rent", 150000)
        before = session.strategy.total

        session.set_living_with_child(True)

        assert session.household.p1.rent == Decimal("120000")
        assert session.strategy.total < before

    def test_invalid_field_leaves_state(self):
        session = HouseholdSession()
        household = session.household

        with pytest.raises(ValidationError):
            session.update_field("p1", "salary", 1)

        assert session.household is household

    def test_reset_keeps_history(self):
        session = HouseholdSession()
        session.update_field("p1", "income", 500000)

        session.reset()

        assert session.household.p1.income == Decimal("0")
        assert len(session.messages) == 1


class TestAssistantTurns:
    """Tests for chat turns that update the household."""

    def test_update_applied_and_recomputed(self, make_assistant):
        client = FakeOpenAIClient(reply_json(
            {
                "relationship": "married",
                "p1": {"name": "Chan Tai Man", "income": 600000},
                "p2": {"income": 300000, "children": 1},
            },
            "Updated your household.",
        ))
        session = HouseholdSession(assistant=make_assistant(client))

        result = run_turn(session, "I'm married, I earn 50k a month, my wife 25k")

        assert result.is_success
        household = session.household
        assert household.relationship == Relationship.MARRIED
        assert household.p1.name == "Chan Tai Man"
        assert household.p1.income == Decimal("600000")
        assert household.p2.children == 1
        assert len(session.strategy.candidates) == 3
        assert [m.role for m in session.messages[-2:]] == [ChatRole.USER, ChatRole.ASSISTANT]
        assert session.messages[-1].content == "Updated your household."

    def test_reply_without_update_keeps_state(self, make_assistant):
        session = HouseholdSession(
            assistant=make_assistant(FakeOpenAIClient(reply_json(reply="Joint looks best.")))
        )
        household = session.household

        result = run_turn(session, "Which option is best?")

        assert result.is_success
        assert session.household is household
        assert session.messages[-1].content == "Joint looks best."

    def test_unknown_role_rejects_whole_update(self, make_assistant):
        client = FakeOpenAIClient(reply_json(
            {"p1": {"income": 900000}, "p5": {"income": 100000}},
            "Added your cousin.",
        ))
        session = HouseholdSession(assistant=make_assistant(client))
        household = session.household

        result = run_turn(session, "Add my cousin too")

        assert result.is_error
        assert session.household is household
        assert session.household.p1.income == Decimal("0")
        assert session.messages[-1].is_error is True
        assert session.messages[-1].content.startswith("Error: ")

    def test_malformed_reply_leaves_state(self, make_assistant):
        session = HouseholdSession(
            assistant=make_assistant(FakeOpenAIClient("Sorry, I can't help with that"))
        )
        household = session.household

        result = run_turn(session, "I earn 40k a month")

        assert result.is_error
        assert session.household is household
        assert session.messages[-1].is_error is True

    def test_no_assistant_configured(self):
        session = HouseholdSession()

        result = run_turn(session, "hello")

        assert result.is_error
        assert [m.role for m in session.messages[-2:]] == [ChatRole.USER, ChatRole.ASSISTANT]
        assert session.messages[-2].content == "hello"
        assert session.messages[-1].content == "Error: the assistant is not configured"
        assert session.messages[-1].is_error is True

    def test_empty_message_ignored(self, make_assistant):
        client = FakeOpenAIClient()
        session = HouseholdSession(assistant=make_assistant(client))

        result = run_turn(session, "   ")

        assert result.is_error
        assert client.calls == []
        assert len(session.messages) == 1

    def test_history_is_bounded(self, make_assistant):
        replies = [reply_json(reply=f"answer {i}") for i in range(5)]
        session = HouseholdSession(
            assistant=make_assistant(FakeOpenAIClient(*replies)),
            config=AssistantConfig(max_history=4),
        )

        for i in range(5):
            run_turn(session, f"question {i}")

        assert len(session.messages) == 4
        assert session.messages[-1].content == "answer 4"
        assert session.messages[0].content == "question 3"
