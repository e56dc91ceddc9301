"""Household state mutations.

Every function here returns a new HouseholdState and leaves its input
untouched, so a caller can apply an update atomically by swapping the
reference only after the call succeeds.

Two entry paths share the same normalization:
- form entry, one field at a time (update_person_field)
- partial updates from the assistant (apply_state_update)

Entered amounts are clamped to zero and to the field's statutory cap, and a
change of income re-derives the MPF contribution. Rent is held to the
living-with-child cap, so toggling that flag later never loses an entered
amount; net_of applies the cap the household currently qualifies for.
"""

from collections.abc import Mapping
from typing import Any, Union

import pydantic
import structlog

from .exceptions import ValidationError
from .hk_rates import get_deduction_cap, mpf_contribution
from .models import (
    AMOUNT_FIELDS,
    PERSON_FIELDS,
    HouseholdState,
    HouseholdUpdate,
    PersonRecord,
    PersonRole,
    PersonUpdate,
    Relationship,
    to_flag,
)

logger = structlog.get_logger()

DEFAULT_NAMES = {
    PersonRole.P1: "Self (P1)",
    PersonRole.P2: "Spouse/Relative (P2)",
    PersonRole.P3: "Relative (P3)",
    PersonRole.P4: "Relative (P4)",
}

UPDATE_KEYS = {"relationship", "livingWithChild", "living_with_child"} | {
    role.value for role in PersonRole
}


def default_household() -> HouseholdState:
    """Return an all-zero household with default display names."""
    return HouseholdState(
        **{role.value: PersonRecord(name=name) for role, name in DEFAULT_NAMES.items()}
    )


def reset_household() -> HouseholdState:
    """Return a household reset to defaults."""
    logger.info("household_reset")
    return default_household()


def _field_name(field: str) -> str:
    """Resolve a snake_case or camelCase person field name."""
    if field in PERSON_FIELDS:
        return field
    for name in PERSON_FIELDS:
        if PersonRecord.model_fields[name].alias == field:
            return name
    raise ValidationError(
        f"Unknown person field: {field}",
        field="field",
        value=field,
        constraint=f"Must be one of: {', '.join(PERSON_FIELDS)}",
    )


def _role(role: Union[PersonRole, str]) -> PersonRole:
    try:
        return PersonRole(role)
    except ValueError:
        raise ValidationError(
            f"Unknown person role: {role}",
            field="role",
            value=str(role),
            constraint="Must be one of: p1, p2, p3, p4",
        ) from None


def _apply_changes(person: PersonRecord, changes: dict[str, Any]) -> PersonRecord:
    """Merge field changes into a person, clamping entered amounts to caps."""
    data = person.model_dump()
    data.update(changes)
    updated = PersonRecord.model_validate(data)

    capped = {}
    for field in AMOUNT_FIELDS:
        if field not in changes:
            continue
        # rent: the larger of its two caps
        cap = get_deduction_cap(field, living_with_child=True)
        value = getattr(updated, field)
        if cap is not None and value > cap:
            capped[field] = cap

    if "income" in changes and "mpf" not in changes:
        capped["mpf"] = mpf_contribution(updated.income)

    if capped:
        updated = updated.model_copy(update=capped)
    return updated


def update_person_field(
    state: HouseholdState,
    role: Union[PersonRole, str],
    field: str,
    value: Any,
) -> HouseholdState:
    """
    Set one field of one person.

    Args:
        state: Current household
        role: Person role (p1..p4)
        field: Field name, snake_case or camelCase
        value: Raw entered value; clamped to the field's valid range

    Returns:
        New HouseholdState

    Raises:
        ValidationError: If the role or field name is unknown
    """
    role = _role(role)
    name = _field_name(field)
    person = _apply_changes(state.person(role), {name: value})
    return state.model_copy(update={role.value: person})


def set_relationship(state: HouseholdState, value: Union[Relationship, str]) -> HouseholdState:
    """Set the relationship flag. Unrecognized values leave the state as is."""
    try:
        relationship = Relationship(str(getattr(value, "value", value)).strip().lower())
    except ValueError:
        logger.warning("relationship_ignored", value=str(value))
        return state
    return state.model_copy(update={"relationship": relationship})


def set_living_with_child(state: HouseholdState, flag: Any) -> HouseholdState:
    """Set the shared living-with-child flag."""
    return state.model_copy(update={"living_with_child": to_flag(flag)})


def parse_state_update(data: Any) -> HouseholdUpdate:
    """
    Validate a raw partial household state.

    Unknown top-level keys (including unknown roles such as ``p5``) reject
    the whole update. Unknown person fields are dropped and logged.

    Raises:
        ValidationError: If the update does not have the expected shape
    """
    if isinstance(data, HouseholdUpdate):
        return data
    if not isinstance(data, Mapping):
        raise ValidationError(
            "Household update must be an object",
            field="newState",
            value=type(data).__name__,
        )

    unknown = sorted(str(key) for key in data if key not in UPDATE_KEYS)
    if unknown:
        raise ValidationError(
            f"Unknown keys in household update: {', '.join(unknown)}",
            field="newState",
            value=unknown,
            constraint="Allowed keys: relationship, livingWithChild, p1, p2, p3, p4",
        )

    for role in PersonRole:
        person_data = data.get(role.value)
        if isinstance(person_data, Mapping):
            allowed = set(PERSON_FIELDS) | {
                PersonUpdate.model_fields[name].alias for name in PERSON_FIELDS
            }
            dropped = sorted(str(key) for key in person_data if key not in allowed)
            if dropped:
                logger.warning("person_fields_dropped", role=role.value, fields=dropped)

    try:
        return HouseholdUpdate.model_validate(dict(data))
    except pydantic.ValidationError as e:
        raise ValidationError(
            "Household update has an invalid shape",
            field="newState",
            details={"errors": e.errors(include_url=False, include_input=False)},
        ) from e


def apply_state_update(
    state: HouseholdState,
    update: Union[HouseholdUpdate, Mapping[str, Any]],
) -> HouseholdState:
    """
    Merge a partial household state into the current one.

    The merge is all-or-nothing: the update is fully validated before any
    field is applied, and a new state is returned.

    Args:
        state: Current household
        update: HouseholdUpdate or its raw wire form

    Returns:
        New HouseholdState

    Raises:
        ValidationError: If the update does not have the expected shape
    """
    update = parse_state_update(update)
    changes: dict[str, Any] = {}

    if update.relationship is not None:
        relationship = set_relationship(state, update.relationship).relationship
        if relationship != state.relationship:
            changes["relationship"] = relationship

    if update.living_with_child is not None:
        changes["living_with_child"] = update.living_with_child

    for role, person_update in update.person_updates().items():
        fields = person_update.changes()
        if fields:
            changes[role.value] = _apply_changes(state.person(role), fields)

    logger.info(
        "household_update_applied",
        keys=sorted(changes),
    )
    return state.model_copy(update=changes)


__all__ = [
    "DEFAULT_NAMES",
    "default_household",
    "reset_household",
    "update_person_field",
    "set_relationship",
    "set_living_with_child",
    "parse_state_update",
    "apply_state_update",
]
