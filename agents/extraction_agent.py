"""
Extraction Agent — LangGraph node.
Turns raw OCR text into a MedicalBillData record with regex / line heuristics.

Every field is found by its own pass over the same text; no pass looks at the
output of another. A miss leaves the field empty (or zero) instead of raising.
"""

from __future__ import annotations

import logging
import re
from datetime import date

from orchestrator.schemas import CodeKind, Cost, MedicalBillData, ProcedureCode
from orchestrator.state import BillState

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

# Applied in this order; the same substring may be emitted once per pass.
_CODE_PATTERNS: list[tuple[CodeKind, re.Pattern]] = [
    (CodeKind.CPT,   re.compile(r"\b\d{5}\b", re.ASCII)),
    (CodeKind.ICD,   re.compile(r"\b[A-Z]\d{2}(?:\.\d{1,2})?\b", re.ASCII)),
    (CodeKind.HCPCS, re.compile(r"\b[A-Z]\d{4}\b", re.ASCII)),
]

_AMOUNT = r"\$\s*(\d+(?:,\d{3})*(?:\.\d{2})?)"
_CURRENCY_RE = re.compile(_AMOUNT, re.ASCII)
_INSURANCE_RE = re.compile(r"insurance(?:.+?)" + _AMOUNT, re.ASCII | re.IGNORECASE)
_PATIENT_RE = re.compile(r"patient(?:.+?)" + _AMOUNT, re.ASCII | re.IGNORECASE)

_DATE_RE = re.compile(r"\b(\d{1,2})[-/](\d{1,2})[-/](\d{2,4})\b", re.ASCII)

_HOSPITAL_MARKERS = ("HOSPITAL", "MEDICAL CENTER", "HEALTH", "CLINIC")

_NUMERIC_LINE_RE = re.compile(r"[0-9]+[\s0-9]*")
_MIN_DESCRIPTION_LENGTH = 10


# ---------------------------------------------------------------------------
# Field extractors
# ---------------------------------------------------------------------------


def extract_procedure_codes(text: str) -> list[ProcedureCode]:
    codes: list[ProcedureCode] = []
    for kind, pattern in _CODE_PATTERNS:
        codes.extend(ProcedureCode(code=m.group(0), kind=kind) for m in pattern.finditer(text))
    return codes


def _parse_amount(raw: str) -> float:
    return float(raw.replace(",", ""))


def extract_costs(text: str) -> Cost:
    """
    Highest currency amount is taken as the total, lowest as the subtotal.
    Insurance / patient portions are the first amount following the label
    on the same line.
    """
    amounts = sorted((_parse_amount(m.group(1)) for m in _CURRENCY_RE.finditer(text)), reverse=True)
    if not amounts:
        return Cost()

    insurance = _INSURANCE_RE.search(text)
    patient = _PATIENT_RE.search(text)
    return Cost(
        total=amounts[0],
        subtotal=amounts[-1],
        insurance_portion=_parse_amount(insurance.group(1)) if insurance else None,
        patient_portion=_parse_amount(patient.group(1)) if patient else None,
    )


def _expand_year(raw: str) -> int:
    year = int(raw)
    if len(raw) == 2:
        year += 2000 if year < 50 else 1900
    return year


def extract_date(text: str) -> str:
    """First M/D/Y (or M-D-Y) date in the text as YYYY-MM-DD, or '' if it is not a real date."""
    match = _DATE_RE.search(text)
    if match is None:
        return ""
    month, day, year = match.groups()
    try:
        parsed = date(_expand_year(year), int(month), int(day))
    except ValueError:
        return ""
    return f"{parsed.year:04d}-{parsed.month:02d}-{parsed.day:02d}"


def extract_hospital_name(text: str) -> str:
    for line in text.split("\n"):
        upper = line.upper()
        if any(marker in upper for marker in _HOSPITAL_MARKERS):
            return line.strip()
    return ""


def _is_description(line: str) -> bool:
    return (
        len(line) > _MIN_DESCRIPTION_LENGTH
        and "$" not in line
        and "TOTAL" not in line
        and "DATE" not in line
        and _NUMERIC_LINE_RE.fullmatch(line) is None
    )


def extract_procedure_descriptions(text: str) -> list[str]:
    stripped = (line.strip() for line in text.split("\n"))
    return [line for line in stripped if _is_description(line)]


def extract_bill_data(text: str, confidence: float) -> MedicalBillData:
    """Build a MedicalBillData record from OCR text. confidence is stored unchanged."""
    return MedicalBillData(
        procedure_descriptions=extract_procedure_descriptions(text),
        procedure_codes=extract_procedure_codes(text),
        costs=extract_costs(text),
        hospital_name=extract_hospital_name(text),
        date_of_service=extract_date(text),
        raw_text=text,
        confidence=confidence,
    )


# ---------------------------------------------------------------------------
# LangGraph node
# ---------------------------------------------------------------------------


def extraction_agent(state: BillState) -> BillState:
    """
    LangGraph node: raw text → MedicalBillData.

    Reads:  state['raw_text'], state['confidence']
    Writes: state['bill_data']
    """
    raw_text = state.get("raw_text") or ""
    confidence = state.get("confidence")
    if confidence is None:
        confidence = 0.0

    bill_data = extract_bill_data(raw_text, confidence)
    logger.info(
        "extraction_agent: %d description(s), %d code(s), total=%.2f, hospital=%r, date=%r",
        len(bill_data.procedure_descriptions),
        len(bill_data.procedure_codes),
        bill_data.costs.total,
        bill_data.hospital_name,
        bill_data.date_of_service,
    )
    return {**state, "bill_data": bill_data}
