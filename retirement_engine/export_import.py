from typing import Dict, Any, List, Optional, Type
from sqlmodel import SQLModel

from .models import (
    InvestmentRecord,
    InsuranceRecord,
    GoalRecord,
    ExpenseRecord,
    IncomeRecord,
    LoanRecord,
    ScenarioAssumptions,
)
from .planner import PlannerSnapshot

EXPORT_VERSION = "1.0"

# Snapshot list field -> record type
RECORD_TYPES: Dict[str, Type[SQLModel]] = {
    "investments": InvestmentRecord,
    "insurance": InsuranceRecord,
    "goals": GoalRecord,
    "expenses": ExpenseRecord,
    "incomes": IncomeRecord,
    "loans": LoanRecord,
}


def export_snapshot(snapshot: PlannerSnapshot) -> Dict[str, Any]:
    """
    Export a snapshot to a JSON-friendly dictionary.
    """
    data = {
        "version": EXPORT_VERSION,
        "assumptions": snapshot.assumptions.model_dump(mode="json", exclude_none=True),
    }
    for field in RECORD_TYPES:
        records = getattr(snapshot, field)
        data[field] = [record.model_dump(mode="json", exclude_none=True) for record in records]
    return data

def _filter_fields(model: Type[SQLModel], raw: Dict[str, Any]) -> Dict[str, Any]:
    # Filter out unknown fields for forward compatibility
    valid_fields = model.model_fields.keys()
    return {k: v for k, v in raw.items() if k in valid_fields}

def import_snapshot(data: Dict[str, Any], new_name: Optional[str] = None) -> PlannerSnapshot:
    """
    Import a snapshot from a dictionary produced by export_snapshot().
    Keys this version does not know about are dropped.

    Raises:
        ValueError: if data is not a dictionary
        pydantic.ValidationError: if a known field has an invalid value
    """
    if not isinstance(data, dict):
        raise ValueError("Snapshot data must be a dictionary")

    assumptions_data = _filter_fields(ScenarioAssumptions, data.get("assumptions") or {})
    if new_name:
        assumptions_data["name"] = new_name
    assumptions = ScenarioAssumptions.model_validate(assumptions_data)

    records: Dict[str, List[SQLModel]] = {}
    for field, model in RECORD_TYPES.items():
        records[field] = [
            model.model_validate(_filter_fields(model, raw))
            for raw in data.get(field) or []
        ]

    return PlannerSnapshot(assumptions=assumptions, **records)
