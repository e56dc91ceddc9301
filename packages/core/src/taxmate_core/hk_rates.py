"""Hong Kong salaries tax rates, deduction caps and allowances.

This module contains the statutory figures used by the calculator: the
progressive bands, the two-tier standard rate, the one-off tax reduction,
the basic and married allowances, the caps on each deductible item and the
per-unit value of each dependent allowance.

Sources:
- Inland Revenue Department, "Tax Rates of Salaries Tax & Personal Assessment"
- Inland Revenue Department, PAM 61(C) guide to salaries tax allowances
  and deductions

Updated: 2025/26 year of assessment
"""

from decimal import Decimal
from typing import Optional


# =============================================================================
# VERSION TRACKING
# =============================================================================

RATES_VERSION = "2025/26"


def get_rates_version() -> str:
    """Return current rates version (year of assessment)."""
    return RATES_VERSION


# =============================================================================
# STANDARD RATE
# =============================================================================
# Two-tier: 15% on the first 5,000,000 of net income, 16% on the remainder.

STANDARD_RATE = Decimal("0.15")
STANDARD_RATE_HIGH = Decimal("0.16")
STANDARD_RATE_THRESHOLD = Decimal("5000000")


# =============================================================================
# PROGRESSIVE RATES
# =============================================================================
# (band width, rate). A width of None means "all remaining net chargeable".

PROGRESSIVE_BANDS: list[tuple[Optional[Decimal], Decimal]] = [
    (Decimal("50000"), Decimal("0.02")),
    (Decimal("50000"), Decimal("0.06")),
    (Decimal("50000"), Decimal("0.10")),
    (Decimal("50000"), Decimal("0.14")),
    (None, Decimal("0.17")),
]


# =============================================================================
# TAX REDUCTION
# =============================================================================
# 100% of final tax, capped per case.

TAX_REDUCTION_CAP = Decimal("3000")


# =============================================================================
# BASIC AND MARRIED ALLOWANCES
# =============================================================================
# Added by the optimizer according to the filing election, never by the
# per-person calculation.

BASIC_ALLOWANCE = Decimal("132000")
MARRIED_ALLOWANCE = Decimal("264000")


# =============================================================================
# DEDUCTIONS
# =============================================================================

MPF_CONTRIBUTION_RATE = Decimal("0.05")
MPF_CAP = Decimal("18000")

RENT_CAP = Decimal("100000")
RENT_CAP_LIVING_WITH_CHILD = Decimal("120000")

DONATION_CAP_RATE = Decimal("0.35")

# Field name -> statutory cap. Rent is handled by get_rent_cap().
DEDUCTION_CAPS: dict[str, Decimal] = {
    "mpf": MPF_CAP,
    "vhis": Decimal("8000"),
    "tvc": Decimal("60000"),
    "self_education": Decimal("100000"),
    "elderly_care": Decimal("100000"),
}


def get_rent_cap(living_with_child: bool) -> Decimal:
    """Get the rent / home-loan-interest deduction cap.

    Args:
        living_with_child: Whether the household lives with a dependent child

    Returns:
        120,000 when living with a child, otherwise 100,000
    """
    return RENT_CAP_LIVING_WITH_CHILD if living_with_child else RENT_CAP


def get_deduction_cap(field: str, living_with_child: bool = False) -> Optional[Decimal]:
    """Get the cap for a deductible field, or None if the field is uncapped."""
    if field == "rent":
        return get_rent_cap(living_with_child)
    return DEDUCTION_CAPS.get(field)


def mpf_contribution(income: Decimal) -> Decimal:
    """Mandatory contribution implied by an annual income."""
    return min(income * MPF_CONTRIBUTION_RATE, MPF_CAP)


# =============================================================================
# ALLOWANCES
# =============================================================================

CHILD_ALLOWANCE = Decimal("130000")
NEWBORN_EXTRA_ALLOWANCE = Decimal("130000")

# Field name -> value per unit counted.
ALLOWANCE_UNIT_VALUES: dict[str, Decimal] = {
    "children": CHILD_ALLOWANCE,
    "newborns": CHILD_ALLOWANCE + NEWBORN_EXTRA_ALLOWANCE,
    "parents60": Decimal("50000"),
    "parents60_live_in": Decimal("100000"),
    "parents55": Decimal("25000"),
    "parents55_live_in": Decimal("50000"),
    "dependent_siblings": Decimal("37500"),
    "disabled_dependents": Decimal("75000"),
}

# Flag field name -> flat value when the flag is set.
ALLOWANCE_FLAG_VALUES: dict[str, Decimal] = {
    "disabled_personal": Decimal("75000"),
    "single_parent": Decimal("132000"),
}
