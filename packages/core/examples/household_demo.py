#!/usr/bin/env python3
"""
Household Tax Strategy Demonstration

This script builds a sample household, runs the strategy optimizer and
prints every filing option it compared:
1. Create the household from command-line figures
2. Compare independent, separate and joint assessment
3. Print the cheapest strategy (or dump it as JSON)

Run: python examples/household_demo.py --p1-income 720000 --p2-income 360000
"""

import argparse
import json

import structlog

from taxmate_core import default_household, optimize, update_person_field
from taxmate_core.hk_rates import get_rates_version
from taxmate_core.household import set_living_with_child, set_relationship
from taxmate_core.models import BestStrategy, HouseholdState

logger = structlog.get_logger()


def create_sample_household(args: argparse.Namespace) -> HouseholdState:
    """Create a household from the parsed arguments."""
    state = default_household()
    state = set_relationship(state, "single" if args.single else "married")
    state = set_living_with_child(state, args.living_with_child)

    state = update_person_field(state, "p1", "name", args.p1_name)
    state = update_person_field(state, "p1", "income", args.p1_income)
    state = update_person_field(state, "p1", "rent", args.rent)

    state = update_person_field(state, "p2", "name", args.p2_name)
    state = update_person_field(state, "p2", "income", args.p2_income)
    state = update_person_field(state, "p2", "children", args.children)

    if args.parent_live_in:
        state = update_person_field(state, "p1", "parents60_live_in", 1)
    return state


def print_strategy(state: HouseholdState, best: BestStrategy) -> None:
    """Print the comparison as a plain-text table."""
    print("=" * 70)
    print(f"TAXMATE - Household Strategy ({best.rates_version})")
    print("=" * 70)
    print()

    print("Household:")
    print(f"  - Relationship: {state.relationship.value}")
    print(f"  - Living with child: {state.living_with_child}")
    for role, person in state.persons().items():
        if person.income > 0:
            print(f"  - {role.value}: {person.name}, income ${person.income:,.0f}")
    print()

    print("Options compared:")
    for candidate in best.candidates:
        marker = "*" if candidate.mode == best.mode else " "
        print(
            f"  {marker} {candidate.label:<28} "
            f"P1 ${candidate.p1_tax:>10,.0f}  P2 ${candidate.p2_tax:>10,.0f}  "
            f"Total ${candidate.total:>10,.0f}"
        )
    print()

    print(f"Best strategy: {best.label}")
    print(f"  {best.note}")
    print(f"  Household total: ${best.total:,.0f} (reduction ${best.total_reduction:,.0f})")
    print("=" * 70)


def main():
    """Run the household strategy demonstration."""
    parser = argparse.ArgumentParser(
        description="Compare Hong Kong salaries tax filing options for a household",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Married couple, one breadwinner
  python household_demo.py --p1-income 1000000 --children 2

  # Two single earners
  python household_demo.py --single --p1-income 400000 --p2-income 300000
        """,
    )
    parser.add_argument("--p1-name", default="Chan Tai Man", help="Name of person 1")
    parser.add_argument("--p2-name", default="Wong Siu Ling", help="Name of person 2")
    parser.add_argument("--p1-income", default="720000", help="Annual income of person 1")
    parser.add_argument("--p2-income", default="360000", help="Annual income of person 2")
    parser.add_argument("--rent", default="0", help="Rent paid by person 1")
    parser.add_argument("--children", type=int, default=0, help="Children claimed by person 2")
    parser.add_argument(
        "--single",
        action="store_true",
        help="Treat P1 and P2 as unrelated single filers",
    )
    parser.add_argument(
        "--living-with-child",
        action="store_true",
        help="Household lives with a dependent child (raises the rent cap)",
    )
    parser.add_argument(
        "--parent-live-in",
        action="store_true",
        help="Person 1 claims a live-in parent aged 60 or over",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full result as JSON instead of a table",
    )
    args = parser.parse_args()

    state = create_sample_household(args)
    best = optimize(state)
    logger.info("demo_completed", rates_version=get_rates_version(), mode=best.mode.value)

    if args.json:
        print(json.dumps(best.model_dump(mode="json", exclude={"audit_log"}), indent=2))
    else:
        print_strategy(state, best)


if __name__ == "__main__":
    main()
