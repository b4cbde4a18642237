"""
Storage Agent — LangGraph node.
Persists a validated bill to the medical_bills table with an audit log entry.

Status is decided here from the validation warnings: any warning means
'needs_review', none means 'validated'. No LLM calls are made here.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from db.models import AuditLog, MedicalBill
from orchestrator.schemas import MedicalBillData, ValidationResult
from orchestrator.state import BillState

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def record_status(validation: ValidationResult) -> str:
    return "needs_review" if validation.warnings else "validated"


def save_bill(session: Session, bill_id: str, data: MedicalBillData, validation: ValidationResult) -> MedicalBill:
    """Upsert the MedicalBill row for bill_id and append an AuditLog entry."""
    status = record_status(validation)

    bill = session.get(MedicalBill, bill_id)
    if bill is None:
        bill = MedicalBill(bill_id=bill_id)
        session.add(bill)

    bill.raw_text = data.raw_text
    bill.procedure_descriptions = list(data.procedure_descriptions)
    bill.procedure_codes = [c.model_dump(mode="json") for c in data.procedure_codes]
    bill.costs = data.costs.model_dump(mode="json")
    bill.hospital_name = data.hospital_name
    bill.date_of_service = data.date_of_service or None
    bill.confidence_score = data.confidence
    bill.status = status
    bill.warnings = list(validation.warnings)

    session.add(
        AuditLog(
            bill_id=bill_id,
            event="bill_stored",
            detail=f"status={status}; warnings={len(validation.warnings)}",
        )
    )
    session.commit()
    return bill


def search_bills(session: Session, term: Optional[str] = None) -> list[MedicalBill]:
    """Newest first; term matches hospital_name or raw_text, case-insensitively."""
    query = select(MedicalBill).order_by(MedicalBill.created_at.desc())
    if term:
        pattern = f"%{term}%"
        query = query.where(
            or_(MedicalBill.hospital_name.ilike(pattern), MedicalBill.raw_text.ilike(pattern))
        )
    return list(session.scalars(query))


# ---------------------------------------------------------------------------
# LangGraph node
# ---------------------------------------------------------------------------


def storage_agent(state: BillState) -> BillState:
    """
    LangGraph node: persist state['bill_data'] once validation passed.

    Writes: state['bill_id']           — generated when not supplied
            state['record_status']     — 'validated' | 'needs_review'
            state['processing_status'] — 'stored' | 'storage_failed'
    """
    bill_id = state.get("bill_id") or str(uuid.uuid4())
    validation = state.get("validation")
    bill_data = state.get("bill_data")

    if validation is None or bill_data is None or not validation.is_valid:
        logger.warning("storage_agent: refusing to store unvalidated bill %s", bill_id)
        return {**state, "bill_id": bill_id, "processing_status": "invalid"}

    try:
        from db.database import SessionLocal

        with SessionLocal() as session:
            bill = save_bill(session, bill_id, bill_data, validation)
            status = bill.status

        logger.info("storage_agent: stored %s as %s", bill_id, status)
        return {
            **state,
            "bill_id": bill_id,
            "record_status": status,
            "processing_status": "stored",
        }
    except Exception as e:
        logger.exception("DB write failed for bill %s: %s", bill_id, e)
        return {
            **state,
            "bill_id": bill_id,
            "processing_status": "storage_failed",
            "error": f"Failed to store bill: {e}",
        }
