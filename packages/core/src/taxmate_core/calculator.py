"""Salaries tax calculation and filing-strategy optimization.

This module provides three layers, leaf first:
1. evaluate() - tax for one (income, deductions, allowances) triple, the
   lesser of standard-rate and progressive-rate tax, less the reduction
2. net_of() - one person's capped deductions and dependent allowances
3. HouseholdTaxOptimizer / optimize() - the filing election for persons 1
   and 2 that minimizes the household's total tax

All functions are pure and total over non-negative inputs: they never raise.
"""

from decimal import Decimal
from typing import Optional, Union

import structlog

from .hk_rates import (
    ALLOWANCE_FLAG_VALUES,
    ALLOWANCE_UNIT_VALUES,
    BASIC_ALLOWANCE,
    DEDUCTION_CAPS,
    DONATION_CAP_RATE,
    MARRIED_ALLOWANCE,
    PROGRESSIVE_BANDS,
    RATES_VERSION,
    STANDARD_RATE,
    STANDARD_RATE_HIGH,
    STANDARD_RATE_THRESHOLD,
    TAX_REDUCTION_CAP,
    get_rent_cap,
)
from .models import (
    BestStrategy,
    CalculationStep,
    HouseholdState,
    NormalizedPersonNet,
    PersonRecord,
    Relationship,
    StrategyCandidate,
    StrategyMode,
    TaxResult,
)

logger = structlog.get_logger()

Amount = Union[Decimal, int, str]

ZERO = Decimal("0")


def _as_decimal(value: Amount) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


# =============================================================================
# BRACKET EVALUATOR
# =============================================================================


def standard_tax(net_income: Decimal) -> Decimal:
    """Two-tier standard-rate tax on net income."""
    if net_income <= STANDARD_RATE_THRESHOLD:
        return net_income * STANDARD_RATE
    return (
        STANDARD_RATE_THRESHOLD * STANDARD_RATE
        + (net_income - STANDARD_RATE_THRESHOLD) * STANDARD_RATE_HIGH
    )


def progressive_tax(net_chargeable: Decimal) -> Decimal:
    """Marginal-band tax on net chargeable income."""
    tax = ZERO
    remaining = net_chargeable
    for width, rate in PROGRESSIVE_BANDS:
        if remaining <= 0:
            break
        step = remaining if width is None else min(remaining, width)
        tax += step * rate
        remaining -= step
    return tax


def evaluate(income: Amount, deductions: Amount, allowances: Amount) -> TaxResult:
    """
    Compute salaries tax for one assessment.

    Args:
        income: Gross income (non-negative)
        deductions: Total allowable deductions (non-negative)
        allowances: Total allowances, including the basic or married
            allowance where one applies (non-negative)

    Returns:
        TaxResult with the lesser of standard and progressive tax as base
        tax, and the capped reduction subtracted from it
    """
    income = _as_decimal(income)
    deductions = _as_decimal(deductions)
    allowances = _as_decimal(allowances)

    net_income = max(ZERO, income - deductions)
    net_chargeable = max(ZERO, net_income - allowances)

    std_tax = standard_tax(net_income)
    prog_tax = progressive_tax(net_chargeable)

    base_tax = min(std_tax, prog_tax)
    reduction = min(base_tax, TAX_REDUCTION_CAP)

    return TaxResult(
        net_income=net_income,
        net_chargeable=net_chargeable,
        standard_tax=std_tax,
        progressive_tax=prog_tax,
        base_tax=base_tax,
        reduction=reduction,
        final_tax=base_tax - reduction,
    )


# =============================================================================
# PERSON NET CALCULATOR
# =============================================================================


def capped_deductions(person: PersonRecord, rent_cap: Decimal) -> Decimal:
    """Sum of the six capped deductions (donations excluded)."""
    total = min(person.rent, rent_cap)
    for field, cap in DEDUCTION_CAPS.items():
        total += min(getattr(person, field), cap)
    return total


def person_allowances(person: PersonRecord) -> Decimal:
    """Person-specific allowances, excluding the basic or married allowance."""
    total = ZERO
    for field, unit_value in ALLOWANCE_UNIT_VALUES.items():
        total += getattr(person, field) * unit_value
    for field, value in ALLOWANCE_FLAG_VALUES.items():
        if getattr(person, field):
            total += value
    return total


def net_of(person: PersonRecord, rent_cap: Amount) -> NormalizedPersonNet:
    """
    Reduce one person's raw inputs to income, deductions and allowances.

    Donations are capped at 35% of assessable income, which is income less
    the other capped deductions.

    Args:
        person: Raw inputs for one taxpayer
        rent_cap: Household-level cap on rent / home-loan interest

    Returns:
        NormalizedPersonNet for the person
    """
    other_deductions = capped_deductions(person, _as_decimal(rent_cap))
    assessable_income = max(ZERO, person.income - other_deductions)
    donation_cap = assessable_income * DONATION_CAP_RATE

    return NormalizedPersonNet(
        income=person.income,
        deductions=other_deductions + min(person.donation, donation_cap),
        allowances=person_allowances(person),
    )


# =============================================================================
# STRATEGY OPTIMIZER
# =============================================================================


class HouseholdTaxOptimizer:
    """
    Find the filing election that minimizes a household's total tax.

    Persons 3 and 4 are always assessed on their own with the basic
    allowance. For persons 1 and 2 the candidates depend on the relationship:

    - single: each files independently with the basic allowance
    - married: p1 claims the married allowance, p2 claims it, or the two
      are jointly assessed; the lowest total wins, earlier candidates win ties

    Every step is logged for the audit trail.
    """

    def __init__(self) -> None:
        self._audit_log: list[CalculationStep] = []

    def _log_step(
        self,
        step: str,
        input_value: str,
        output_value: str,
        source: str,
        notes: Optional[str] = None,
    ) -> None:
        """Add an entry to the audit log."""
        entry = CalculationStep(
            step=step,
            input_value=input_value,
            output_value=output_value,
            source=source,
            notes=notes,
        )
        self._audit_log.append(entry)
        logger.debug(
            "calculation_step",
            step=step,
            input=input_value,
            output=output_value,
            source=source,
        )

    def _assess(self, step: str, net: NormalizedPersonNet, extra_allowance: Decimal) -> TaxResult:
        result = evaluate(net.income, net.deductions, net.allowances + extra_allowance)
        self._log_step(
            step=step,
            input_value=(
                f"income={net.income}, deductions={net.deductions}, "
                f"allowances={net.allowances}+{extra_allowance}"
            ),
            output_value=(
                f"standard={result.standard_tax}, progressive={result.progressive_tax}, "
                f"reduction={result.reduction}, final={result.final_tax}"
            ),
            source=f"Salaries tax {RATES_VERSION}",
        )
        return result

    def _assess_joint(self, n1: NormalizedPersonNet, n2: NormalizedPersonNet) -> TaxResult:
        combined = NormalizedPersonNet(
            income=n1.income + n2.income,
            deductions=n1.deductions + n2.deductions,
            allowances=n1.allowances + n2.allowances,
        )
        return self._assess("tax_joint_p1_p2", combined, MARRIED_ALLOWANCE)

    def optimize(self, household: HouseholdState) -> BestStrategy:
        """
        Evaluate the available filing elections and return the cheapest.

        Args:
            household: Complete household state

        Returns:
            BestStrategy with the winning election, every evaluated
            candidate and the audit log

        The result depends only on the household, apart from the
        ``calculated_at`` and audit-log timestamps.
        """
        self._audit_log = []

        rent_cap = get_rent_cap(household.living_with_child)
        self._log_step(
            step="rent_cap",
            input_value=f"living_with_child={household.living_with_child}",
            output_value=str(rent_cap),
            source=f"Rent deduction cap {RATES_VERSION}",
        )

        nets = {}
        for role, person in household.persons().items():
            net = net_of(person, rent_cap)
            nets[role] = net
            self._log_step(
                step=f"net_{role.value}",
                input_value=f"income={person.income}",
                output_value=f"deductions={net.deductions}, allowances={net.allowances}",
                source="Capped deductions and allowances",
                notes=person.name or None,
            )
        n1, n2, n3, n4 = nets.values()

        # Persons 3 and 4 never join an election
        t3 = self._assess("tax_p3", n3, BASIC_ALLOWANCE)
        t4 = self._assess("tax_p4", n4, BASIC_ALLOWANCE)
        others_tax = t3.final_tax + t4.final_tax
        others_reduction = t3.reduction + t4.reduction

        name1 = household.p1.name or "P1"
        name2 = household.p2.name or "P2"

        candidates: list[StrategyCandidate] = []

        def add_candidate(
            mode: StrategyMode,
            label: str,
            r1: TaxResult,
            r2: Optional[TaxResult],
            note: str,
        ) -> None:
            p2_tax = r2.final_tax if r2 is not None else ZERO
            p2_reduction = r2.reduction if r2 is not None else ZERO
            candidates.append(StrategyCandidate(
                mode=mode,
                label=label,
                p1_tax=r1.final_tax,
                p2_tax=p2_tax,
                total=r1.final_tax + p2_tax + others_tax,
                total_reduction=r1.reduction + p2_reduction + others_reduction,
                note=note,
            ))

        if household.relationship == Relationship.SINGLE:
            add_candidate(
                StrategyMode.INDEPENDENT,
                "Independent filing",
                self._assess("tax_p1_independent", n1, BASIC_ALLOWANCE),
                self._assess("tax_p2_independent", n2, BASIC_ALLOWANCE),
                "Each person files separately and claims the allowances in their own name",
            )
        else:
            add_candidate(
                StrategyMode.P1_CLAIMS,
                "Separate assessment",
                self._assess("tax_p1_claims_p1", n1, MARRIED_ALLOWANCE),
                self._assess("tax_p1_claims_p2", n2, ZERO),
                f"{name1} claims the married person's allowance",
            )
            add_candidate(
                StrategyMode.P2_CLAIMS,
                "Separate assessment",
                self._assess("tax_p2_claims_p1", n1, ZERO),
                self._assess("tax_p2_claims_p2", n2, MARRIED_ALLOWANCE),
                f"{name2} claims the married person's allowance",
            )
            add_candidate(
                StrategyMode.JOINT,
                "Joint assessment (P1+P2)",
                self._assess_joint(n1, n2),
                None,
                f"Joint assessment of {name1} and {name2} gives the lowest total tax",
            )

        best = candidates[0]
        for candidate in candidates[1:]:
            if candidate.total < best.total:
                best = candidate

        self._log_step(
            step="strategy_selected",
            input_value=", ".join(f"{c.mode.value}={c.total}" for c in candidates),
            output_value=f"{best.mode.value}={best.total}",
            source="Minimum total tax",
            notes=best.note,
        )
        logger.info(
            "strategy_selected",
            relationship=household.relationship.value,
            mode=best.mode.value,
            total=str(best.total),
            candidates=len(candidates),
        )

        return BestStrategy(
            mode=best.mode,
            label=best.label,
            p1_tax=best.p1_tax,
            p2_tax=best.p2_tax,
            p3_tax=t3.final_tax,
            p4_tax=t4.final_tax,
            total=best.total,
            total_reduction=best.total_reduction,
            note=best.note,
            candidates=candidates,
            audit_log=list(self._audit_log),
            rates_version=RATES_VERSION,
        )


def optimize(household: HouseholdState) -> BestStrategy:
    """Return the best filing strategy for a household."""
    return HouseholdTaxOptimizer().optimize(household)
