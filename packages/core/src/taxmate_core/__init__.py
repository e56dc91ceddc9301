"""Taxmate Core - Household salaries tax calculation and optimization."""

__version__ = "0.1.0"

from .calculator import HouseholdTaxOptimizer, evaluate, net_of, optimize
from .household import apply_state_update, default_household, update_person_field
from .models import (
    BestStrategy,
    HouseholdState,
    HouseholdUpdate,
    NormalizedPersonNet,
    PersonRecord,
    PersonRole,
    Relationship,
    StrategyMode,
    TaxResult,
)

__all__ = [
    "HouseholdTaxOptimizer",
    "evaluate",
    "net_of",
    "optimize",
    "apply_state_update",
    "default_household",
    "update_person_field",
    "BestStrategy",
    "HouseholdState",
    "HouseholdUpdate",
    "NormalizedPersonNet",
    "PersonRecord",
    "PersonRole",
    "Relationship",
    "StrategyMode",
    "TaxResult",
]
