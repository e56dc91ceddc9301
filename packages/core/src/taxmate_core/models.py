"""Data models for household salaries-tax calculations.

Raw inputs (PersonRecord, HouseholdState), the partial updates produced by
the assistant (PersonUpdate, HouseholdUpdate) and the derived, ephemeral
results of a calculation (NormalizedPersonNet, TaxResult, StrategyCandidate,
BestStrategy).

Field names are snake_case in Python and camelCase on the wire
(``selfEducation``, ``parents60LiveIn``, ``livingWithChild``); both spellings
are accepted on input.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMERATIONS
# =============================================================================


class Relationship(str, Enum):
    """Relationship between persons 1 and 2."""

    SINGLE = "single"  # Independent filing only
    MARRIED = "married"  # Eligible for joint assessment


class PersonRole(str, Enum):
    """Fixed roles of the four persons in a household."""

    P1 = "p1"  # Primary
    P2 = "p2"  # Secondary (spouse or relative)
    P3 = "p3"  # Additional independent relative
    P4 = "p4"  # Additional independent relative


class StrategyMode(str, Enum):
    """Filing elections for persons 1 and 2."""

    INDEPENDENT = "independent"
    P1_CLAIMS = "p1_claims"
    P2_CLAIMS = "p2_claims"
    JOINT = "joint"


# =============================================================================
# FIELD GROUPS
# =============================================================================

AMOUNT_FIELDS = (
    "income",
    "mpf",
    "vhis",
    "tvc",
    "rent",
    "self_education",
    "donation",
    "elderly_care",
)

COUNT_FIELDS = (
    "children",
    "newborns",
    "parents60",
    "parents60_live_in",
    "parents55",
    "parents55_live_in",
    "dependent_siblings",
    "disabled_dependents",
)

FLAG_FIELDS = ("disabled_personal", "single_parent")

PERSON_FIELDS = ("name",) + AMOUNT_FIELDS + COUNT_FIELDS + FLAG_FIELDS

ZERO = Decimal("0")


def to_amount(value: Any) -> Decimal:
    """Coerce a raw value to a non-negative Decimal.

    Missing, malformed, non-finite and negative values become zero.
    Thousands separators in strings are tolerated.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    try:
        amount = Decimal(str(value).replace(",", "").strip())
    except (InvalidOperation, ValueError):
        return ZERO
    if not amount.is_finite() or amount < 0:
        return ZERO
    return amount


def to_count(value: Any) -> int:
    """Coerce a raw value to a non-negative integer count."""
    return int(to_amount(value))


def to_flag(value: Any) -> bool:
    """Coerce a raw value to a boolean flag."""
    if isinstance(value, str):
        return value.strip().lower() in {"true", "yes", "y", "1", "on"}
    return bool(value)


_WIRE_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    extra="ignore",
)


# =============================================================================
# RAW INPUTS
# =============================================================================


class PersonRecord(BaseModel):
    """One taxpayer's raw inputs.

    Numeric fields are clamped to their valid domain on construction; a
    PersonRecord can never hold a negative amount or a fractional count.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        json_schema_extra={
            "examples": [
                {
                    "name": "Self (P1)",
                    "income": "660000",
                    "mpf": "18000",
                    "rent": "100000",
                    "children": 1,
                }
            ]
        },
    )

    name: str = Field(default="", description="Display name")

    # Income
    income: Decimal = Field(default=ZERO, description="Annual income")

    # Capped deductions
    mpf: Decimal = Field(default=ZERO, description="Retirement-fund (MPF) contribution")
    vhis: Decimal = Field(default=ZERO, description="Qualifying health-insurance premium")
    tvc: Decimal = Field(default=ZERO, description="Deferred annuity / voluntary contribution")
    rent: Decimal = Field(default=ZERO, description="Domestic rent or home-loan interest")
    self_education: Decimal = Field(default=ZERO, description="Self-education expense")
    elderly_care: Decimal = Field(default=ZERO, description="Elderly residential care expense")

    # Income-relative deduction
    donation: Decimal = Field(default=ZERO, description="Approved charitable donations")

    # Allowance counts
    children: int = Field(default=0, description="Dependent children")
    newborns: int = Field(default=0, description="Children born in the year")
    parents60: int = Field(default=0, description="Dependent parents aged 60+, not living in")
    parents60_live_in: int = Field(default=0, description="Dependent parents aged 60+, living in")
    parents55: int = Field(default=0, description="Dependent parents aged 55-59, not living in")
    parents55_live_in: int = Field(default=0, description="Dependent parents aged 55-59, living in")
    dependent_siblings: int = Field(default=0, description="Dependent brothers or sisters")
    disabled_dependents: int = Field(default=0, description="Disabled dependants")

    # Allowance flags
    disabled_personal: bool = Field(default=False, description="Taxpayer is a disabled person")
    single_parent: bool = Field(default=False, description="Taxpayer is a single parent")

    @field_validator("name", mode="before")
    @classmethod
    def coerce_name(cls, v):
        """Missing names become empty strings."""
        return "" if v is None else str(v)

    @field_validator(*AMOUNT_FIELDS, mode="before")
    @classmethod
    def clamp_amount(cls, v):
        """Clamp amounts to non-negative Decimals."""
        return to_amount(v)

    @field_validator(*COUNT_FIELDS, mode="before")
    @classmethod
    def clamp_count(cls, v):
        """Clamp counts to non-negative integers."""
        return to_count(v)

    @field_validator(*FLAG_FIELDS, mode="before")
    @classmethod
    def coerce_flag(cls, v):
        return to_flag(v)


class HouseholdState(BaseModel):
    """The complete household: two flags and four persons under fixed roles."""

    model_config = _WIRE_CONFIG

    relationship: Relationship = Field(
        default=Relationship.SINGLE,
        description="Whether persons 1 and 2 may be jointly assessed",
    )
    living_with_child: bool = Field(
        default=False,
        description="Household lives with a dependent child (raises the rent cap)",
    )
    p1: PersonRecord = Field(default_factory=PersonRecord)
    p2: PersonRecord = Field(default_factory=PersonRecord)
    p3: PersonRecord = Field(default_factory=PersonRecord)
    p4: PersonRecord = Field(default_factory=PersonRecord)

    @field_validator("living_with_child", mode="before")
    @classmethod
    def coerce_living_with_child(cls, v):
        return to_flag(v)

    def person(self, role: PersonRole) -> PersonRecord:
        """Return the person in the given role."""
        return getattr(self, PersonRole(role).value)

    def persons(self) -> dict[PersonRole, PersonRecord]:
        """Return all four persons keyed by role, in role order."""
        return {role: self.person(role) for role in PersonRole}


# =============================================================================
# PARTIAL UPDATES
# =============================================================================


class PersonUpdate(BaseModel):
    """A partial PersonRecord. Only the fields that were supplied are set."""

    model_config = _WIRE_CONFIG

    name: Optional[str] = None
    income: Optional[Decimal] = None
    mpf: Optional[Decimal] = None
    vhis: Optional[Decimal] = None
    tvc: Optional[Decimal] = None
    rent: Optional[Decimal] = None
    self_education: Optional[Decimal] = None
    elderly_care: Optional[Decimal] = None
    donation: Optional[Decimal] = None
    children: Optional[int] = None
    newborns: Optional[int] = None
    parents60: Optional[int] = None
    parents60_live_in: Optional[int] = None
    parents55: Optional[int] = None
    parents55_live_in: Optional[int] = None
    dependent_siblings: Optional[int] = None
    disabled_dependents: Optional[int] = None
    disabled_personal: Optional[bool] = None
    single_parent: Optional[bool] = None

    @field_validator("name", mode="before")
    @classmethod
    def coerce_name(cls, v):
        return None if v is None else str(v)

    @field_validator(*AMOUNT_FIELDS, mode="before")
    @classmethod
    def clamp_amount(cls, v):
        return None if v is None else to_amount(v)

    @field_validator(*COUNT_FIELDS, mode="before")
    @classmethod
    def clamp_count(cls, v):
        return None if v is None else to_count(v)

    @field_validator(*FLAG_FIELDS, mode="before")
    @classmethod
    def coerce_flag(cls, v):
        return None if v is None else to_flag(v)

    def changes(self) -> dict[str, Any]:
        """Return the supplied fields, excluding explicit nulls."""
        return {
            key: value
            for key, value in self.model_dump(exclude_unset=True).items()
            if value is not None
        }


class HouseholdUpdate(BaseModel):
    """A validated partial household state.

    ``relationship`` is kept as the raw string so that unrecognized values
    can be ignored at merge time instead of failing the whole update.
    """

    model_config = _WIRE_CONFIG

    relationship: Optional[str] = None
    living_with_child: Optional[bool] = None
    p1: Optional[PersonUpdate] = None
    p2: Optional[PersonUpdate] = None
    p3: Optional[PersonUpdate] = None
    p4: Optional[PersonUpdate] = None

    @field_validator("relationship", mode="before")
    @classmethod
    def coerce_relationship(cls, v):
        return None if v is None else str(v)

    @field_validator("living_with_child", mode="before")
    @classmethod
    def coerce_living_with_child(cls, v):
        return None if v is None else to_flag(v)

    def person_updates(self) -> dict[PersonRole, PersonUpdate]:
        """Return the supplied person updates keyed by role."""
        updates = {}
        for role in PersonRole:
            update = getattr(self, role.value)
            if update is not None:
                updates[role] = update
        return updates


# =============================================================================
# DERIVED RESULTS
# =============================================================================


class NormalizedPersonNet(BaseModel):
    """One person's income, capped deductions and person-specific allowances."""

    income: Decimal
    deductions: Decimal
    allowances: Decimal


class TaxResult(BaseModel):
    """Tax computed for one (income, deductions, allowances) triple."""

    net_income: Decimal = Field(description="Income less deductions")
    net_chargeable: Decimal = Field(description="Net income less allowances")
    standard_tax: Decimal = Field(description="Tax at standard rate")
    progressive_tax: Decimal = Field(description="Tax at progressive rates")
    base_tax: Decimal = Field(description="Lesser of standard and progressive tax")
    reduction: Decimal = Field(description="One-off reduction applied")
    final_tax: Decimal = Field(description="Tax payable after reduction")


class CalculationStep(BaseModel):
    """Audit entry for a single calculation step."""

    timestamp: datetime = Field(default_factory=datetime.now)
    step: str
    input_value: str
    output_value: str
    source: str
    notes: Optional[str] = None


class StrategyCandidate(BaseModel):
    """Outcome of one filing election for persons 1 and 2.

    Totals include the tax of persons 3 and 4.
    """

    mode: StrategyMode
    label: str
    p1_tax: Decimal
    p2_tax: Decimal
    total: Decimal
    total_reduction: Decimal
    note: str


class BestStrategy(BaseModel):
    """The winning filing election for a household."""

    mode: StrategyMode
    label: str = Field(description="Human-readable election name")
    p1_tax: Decimal
    p2_tax: Decimal
    p3_tax: Decimal
    p4_tax: Decimal
    total: Decimal
    total_reduction: Decimal
    note: str = Field(description="Why this election won")

    candidates: list[StrategyCandidate] = Field(default_factory=list)
    audit_log: list[CalculationStep] = Field(default_factory=list)
    rates_version: str = ""
    calculated_at: datetime = Field(default_factory=datetime.now)

    @computed_field
    @property
    def per_person_tax(self) -> list[Decimal]:
        """Tax attributed to p1..p4, in role order."""
        return [self.p1_tax, self.p2_tax, self.p3_tax, self.p4_tax]
