"""
Validation Agent — LangGraph node.
Rule-based checks over an extracted MedicalBillData record.

Every rule runs; nothing short-circuits. Errors reject the record, warnings
only flag it for human review (status 'needs_review' downstream).
"""

from __future__ import annotations

import logging
import math
import re
from datetime import date, datetime

from orchestrator.schemas import CodeKind, MedicalBillData, ProcedureCode, ValidationResult
from orchestrator.state import BillState

logger = logging.getLogger(__name__)

_CODE_SHAPES: dict[CodeKind, re.Pattern] = {
    CodeKind.CPT:   re.compile(r"\d{5}", re.ASCII),
    CodeKind.ICD:   re.compile(r"[A-Z]\d{2}(?:\.\d{1,2})?", re.ASCII),
    CodeKind.HCPCS: re.compile(r"[A-Z]\d{4}", re.ASCII),
}

MAX_COST = 1_000_000
MIN_SERVICE_DATE = date(2000, 1, 1)
_MIN_DESCRIPTION_LENGTH = 5
_MIN_HOSPITAL_NAME_LENGTH = 3


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def validate_procedure_code(code: ProcedureCode) -> bool:
    """True when the code string has the shape of its kind; OTHER only needs to be non-empty."""
    shape = _CODE_SHAPES.get(code.kind)
    if shape is None:
        return len(code.code) > 0
    return shape.fullmatch(code.code) is not None


def is_valid_cost(value: float) -> bool:
    return not math.isnan(value) and 0 <= value < MAX_COST


def is_valid_service_date(value: str, today: date | None = None) -> bool:
    try:
        parsed = datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        return False
    return MIN_SERVICE_DATE <= parsed <= (today or date.today())


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


def check_descriptions(data: MedicalBillData) -> tuple[list[str], list[str]]:
    if not data.procedure_descriptions:
        return ["No procedure descriptions found"], []
    if any(len(d) < _MIN_DESCRIPTION_LENGTH for d in data.procedure_descriptions):
        return [], ["Some procedure descriptions are unusually short"]
    return [], []


def check_procedure_codes(data: MedicalBillData) -> tuple[list[str], list[str]]:
    if not data.procedure_codes:
        return [], ["No procedure codes found"]
    errors = [
        f"Invalid procedure code at index {index}: {code.code}"
        for index, code in enumerate(data.procedure_codes)
        if not validate_procedure_code(code)
    ]
    return errors, []


def check_costs(data: MedicalBillData) -> list[str]:
    costs = data.costs
    errors: list[str] = []
    # total of 0 means the extractor found no amount at all
    no_amounts = costs.total == 0
    if no_amounts or not is_valid_cost(costs.total):
        errors.append("Invalid total cost")
    if no_amounts or not is_valid_cost(costs.subtotal):
        errors.append("Invalid subtotal cost")
    if costs.insurance_portion is not None and not is_valid_cost(costs.insurance_portion):
        errors.append("Invalid insurance portion")
    if costs.patient_portion is not None and not is_valid_cost(costs.patient_portion):
        errors.append("Invalid patient portion")
    return errors


def check_hospital_name(data: MedicalBillData) -> list[str]:
    if len(data.hospital_name) < _MIN_HOSPITAL_NAME_LENGTH:
        return ["Invalid or missing hospital name"]
    return []


def check_service_date(data: MedicalBillData, today: date | None = None) -> list[str]:
    if not is_valid_service_date(data.date_of_service, today):
        return ["Invalid date of service"]
    return []


def validate_bill_data(data: MedicalBillData, today: date | None = None) -> ValidationResult:
    """
    Run every rule against the record and collect errors and warnings.
    data is attached to the result only when there are no errors.
    """
    errors: list[str] = []
    warnings: list[str] = []

    description_errors, description_warnings = check_descriptions(data)
    errors.extend(description_errors)
    warnings.extend(description_warnings)

    code_errors, code_warnings = check_procedure_codes(data)
    errors.extend(code_errors)
    warnings.extend(code_warnings)

    errors.extend(check_costs(data))
    errors.extend(check_hospital_name(data))
    errors.extend(check_service_date(data, today))

    is_valid = not errors
    return ValidationResult(
        is_valid=is_valid,
        errors=errors,
        warnings=warnings,
        data=data if is_valid else None,
    )


# ---------------------------------------------------------------------------
# LangGraph node
# ---------------------------------------------------------------------------


def validation_agent(state: BillState) -> BillState:
    """
    LangGraph node: rule-based validation of state['bill_data'].

    Writes: state['validation']         — ValidationResult
            state['processing_status']  — 'invalid' when any error was found
    """
    bill_data = state.get("bill_data") or MedicalBillData()
    result = validate_bill_data(bill_data)

    logger.info(
        "validation_agent complete: %d error(s), %d warning(s), valid=%s",
        len(result.errors),
        len(result.warnings),
        result.is_valid,
    )

    updates: BillState = {"validation": result}
    if not result.is_valid:
        updates["processing_status"] = "invalid"
    return {**state, **updates}
