"""Tests for household state mutations and update merging."""

from decimal import Decimal

import pytest

from taxmate_core.calculator import net_of, optimize
from taxmate_core.exceptions import TaxmateError, ValidationError
from taxmate_core.hk_rates import get_rent_cap
from taxmate_core.household import (
    DEFAULT_NAMES,
    apply_state_update,
    default_household,
    parse_state_update,
    reset_household,
    set_living_with_child,
    set_relationship,
    update_person_field,
)
from taxmate_core.models import HouseholdState, HouseholdUpdate, PersonRole, Relationship


@pytest.fixture
def state() -> HouseholdState:
    """A fresh default household."""
    return default_household()


class TestDefaults:
    """Tests for default and reset households."""

    def test_default_household(self, state: HouseholdState):
        """Defaults: single, not living with child, all-zero persons."""
        assert state.relationship == Relationship.SINGLE
        assert state.living_with_child is False
        for role, person in state.persons().items():
            assert person.name == DEFAULT_NAMES[role]
            assert person.income == Decimal("0")
            assert person.children == 0

    def test_reset_returns_defaults(self, state: HouseholdState):
        """Reset discards every change."""
        changed = update_person_field(state, "p1", "income", 500000)
        assert reset_household() == default_household()
        assert changed != reset_household()


class TestUpdatePersonField:
    """Tests for single-field form entry."""

    def test_income_sets_mpf(self, state: HouseholdState):
        """Changing income derives MPF at 5%."""
        updated = update_person_field(state, PersonRole.P1, "income", 200000)

        assert updated.p1.income == Decimal("200000")
        assert updated.p1.mpf == Decimal("10000")

    def test_mpf_capped_for_high_income(self, state: HouseholdState):
        """Derived MPF never exceeds 18,000."""
        updated = update_person_field(state, "p2", "income", 660000)
        assert updated.p2.mpf == Decimal("18000")

    def test_does_not_mutate_input(self, state: HouseholdState):
        """The previous state is left unchanged."""
        update_person_field(state, "p1", "income", 200000)
        assert state.p1.income == Decimal("0")

    @pytest.mark.parametrize(
        "field,value,expected",
        [
            ("vhis", 20000, "8000"),
            ("tvc", 90000, "60000"),
            ("self_education", 150000, "100000"),
            ("elderly_care", 150000, "100000"),
            ("rent", 150000, "120000"),
            ("donation", 900000, "900000"),
        ],
    )
    def test_entry_capped(self, state: HouseholdState, field, value, expected):
        """Entered deductions are clamped to their caps; donations are not."""
        updated = update_person_field(state, "p1", field, value)
        assert getattr(updated.p1, field) == Decimal(expected)

    def test_rent_survives_living_with_child_toggle(self, state: HouseholdState):
        """Rent entered before the flag is set still counts in full afterwards."""
        updated = update_person_field(state, "p1", "income", 600000)
        updated = update_person_field(updated, "p1", "rent", 150000)

        assert net_of(updated.p1, get_rent_cap(updated.living_with_child)).deductions == (
            Decimal("118000")
        )

        with_child = set_living_with_child(updated, True)

        assert with_child.p1.rent == Decimal("120000")
        assert net_of(with_child.p1, get_rent_cap(with_child.living_with_child)).deductions == (
            Decimal("138000")
        )

    def test_negative_clamped_to_zero(self, state: HouseholdState):
        """Negative entries become zero."""
        updated = update_person_field(state, "p1", "income", -5000)

        assert updated.p1.income == Decimal("0")
        assert updated.p1.mpf == Decimal("0")

    def test_camel_case_field_name(self, state: HouseholdState):
        """Wire field names are accepted."""
        updated = update_person_field(state, "p3", "parents60LiveIn", 2)
        assert updated.p3.parents60_live_in == 2

    def test_flag_field(self, state: HouseholdState):
        """Boolean fields are set from booleans or strings."""
        updated = update_person_field(state, "p1", "singleParent", "true")
        assert updated.p1.single_parent is True

    def test_name_field(self, state: HouseholdState):
        """Display names can be changed."""
        updated = update_person_field(state, "p2", "name", "Sam")
        assert updated.p2.name == "Sam"

    def test_unknown_field_raises(self, state: HouseholdState):
        """Unknown field names are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            update_person_field(state, "p1", "salary", 1000)
        assert exc_info.value.field == "field"

    def test_unknown_role_raises(self, state: HouseholdState):
        """Only p1..p4 exist."""
        with pytest.raises(ValidationError):
            update_person_field(state, "p5", "income", 1000)


class TestFlags:
    """Tests for the household-level flags."""

    def test_set_relationship(self, state: HouseholdState):
        assert set_relationship(state, "married").relationship == Relationship.MARRIED
        assert set_relationship(state, Relationship.MARRIED).relationship == Relationship.MARRIED

    def test_set_relationship_case_insensitive(self, state: HouseholdState):
        assert set_relationship(state, " Married ").relationship == Relationship.MARRIED

    def test_unknown_relationship_ignored(self, state: HouseholdState):
        """Unrecognized values leave the state as is."""
        assert set_relationship(state, "divorced") is state

    def test_set_living_with_child(self, state: HouseholdState):
        assert set_living_with_child(state, True).living_with_child is True
        assert set_living_with_child(state, "no").living_with_child is False


class TestApplyStateUpdate:
    """Tests for merging assistant updates."""

    def test_merge_partial_update(self, state: HouseholdState):
        """Supplied fields change; everything else is kept."""
        updated = apply_state_update(state, {
            "relationship": "married",
            "livingWithChild": True,
            "p1": {"name": "Alex", "income": 660000, "parents60LiveIn": 1},
        })

        assert updated.relationship == Relationship.MARRIED
        assert updated.living_with_child is True
        assert updated.p1.name == "Alex"
        assert updated.p1.income == Decimal("660000")
        assert updated.p1.mpf == Decimal("18000")
        assert updated.p1.parents60_live_in == 1
        assert updated.p2 == state.p2

    def test_snake_case_keys(self, state: HouseholdState):
        """Python field names are accepted too."""
        updated = apply_state_update(state, {
            "living_with_child": True,
            "p2": {"self_education": 5000},
        })

        assert updated.living_with_child is True
        assert updated.p2.self_education == Decimal("5000")

    def test_explicit_mpf_kept(self, state: HouseholdState):
        """An MPF supplied alongside income is not overwritten."""
        updated = apply_state_update(state, {"p1": {"income": 100000, "mpf": 3000}})
        assert updated.p1.mpf == Decimal("3000")

    def test_rent_kept_across_later_flag_update(self, state: HouseholdState):
        """A later livingWithChild update lifts the cap on rent merged earlier."""
        first = apply_state_update(state, {"p1": {"income": 600000, "rent": 120000}})
        second = apply_state_update(first, {"livingWithChild": True})

        assert second.p1.rent == Decimal("120000")
        assert net_of(second.p1, get_rent_cap(second.living_with_child)).deductions == (
            Decimal("138000")
        )
        assert optimize(second).p1_tax < optimize(first).p1_tax

    def test_merge_keeps_untouched_fields(self, state: HouseholdState):
        """Fields absent from the update survive a merge."""
        first = apply_state_update(state, {"p1": {"income": 300000, "children": 2}})
        second = apply_state_update(first, {"p1": {"rent": 50000}})

        assert second.p1.income == Decimal("300000")
        assert second.p1.children == 2
        assert second.p1.rent == Decimal("50000")

    def test_null_fields_ignored(self, state: HouseholdState):
        """Explicit nulls do not wipe existing values."""
        first = apply_state_update(state, {"p1": {"income": 300000}})
        second = apply_state_update(first, {"p1": {"income": None}, "relationship": None})

        assert second.p1.income == Decimal("300000")
        assert second.relationship == Relationship.SINGLE

    def test_numeric_values_clamped(self, state: HouseholdState):
        """Out-of-range numerics are clamped rather than rejected."""
        updated = apply_state_update(state, {
            "p1": {"income": "55,000", "children": -2, "vhis": 99999, "newborns": 1.7},
        })

        assert updated.p1.income == Decimal("55000")
        assert updated.p1.children == 0
        assert updated.p1.vhis == Decimal("8000")
        assert updated.p1.newborns == 1

    def test_malformed_amount_becomes_zero(self, state: HouseholdState):
        updated = apply_state_update(state, {"p4": {"income": "a lot"}})
        assert updated.p4.income == Decimal("0")

    def test_unknown_relationship_ignored(self, state: HouseholdState):
        """An unrecognized relationship is ignored; the rest applies."""
        updated = apply_state_update(state, {
            "relationship": "complicated",
            "p1": {"income": 100000},
        })

        assert updated.relationship == Relationship.SINGLE
        assert updated.p1.income == Decimal("100000")

    def test_unknown_role_rejected(self, state: HouseholdState):
        """A fifth person rejects the whole update."""
        with pytest.raises(ValidationError) as exc_info:
            apply_state_update(state, {"p1": {"income": 100000}, "p5": {"income": 1}})

        assert "p5" in str(exc_info.value)
        assert exc_info.value.recoverable is True

    def test_unknown_person_fields_dropped(self, state: HouseholdState):
        """Unknown person fields are ignored."""
        updated = apply_state_update(state, {"p1": {"income": 100000, "bonus": 5000}})

        assert updated.p1.income == Decimal("100000")
        assert not hasattr(updated.p1, "bonus")

    def test_non_object_rejected(self, state: HouseholdState):
        with pytest.raises(ValidationError):
            apply_state_update(state, ["p1"])

    def test_person_must_be_object(self, state: HouseholdState):
        """A person given as a scalar fails validation."""
        with pytest.raises(ValidationError):
            apply_state_update(state, {"p1": "rich"})

    def test_validation_error_is_taxmate_error(self, state: HouseholdState):
        with pytest.raises(TaxmateError):
            apply_state_update(state, {"p9": {}})

    def test_rejected_update_leaves_state_unchanged(self, state: HouseholdState):
        """Nothing from a rejected update is applied."""
        before = state.model_dump()
        with pytest.raises(ValidationError):
            apply_state_update(state, {"relationship": "married", "p7": {}})
        assert state.model_dump() == before

    def test_accepts_parsed_update(self, state: HouseholdState):
        """A pre-validated HouseholdUpdate can be merged directly."""
        update = parse_state_update({"p2": {"disabledPersonal": True}})
        assert isinstance(update, HouseholdUpdate)

        updated = apply_state_update(state, update)
        assert updated.p2.disabled_personal is True
