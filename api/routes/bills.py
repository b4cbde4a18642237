"""
Bill API routes.
POST /bills/process   — submit a bill (file or raw text) for OCR, extraction, validation and storage
POST /bills/verify    — yes/no check that an upload is a medical bill
GET  /bills           — list stored bills, optionally filtered by a search term
GET  /bills/{bill_id} — retrieve a stored bill
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from agents.storage_agent import search_bills
from agents.verification_agent import classify_document, load_document_image
from db.database import get_db
from db.models import MedicalBill
from orchestrator.graph import graph
from orchestrator.schemas import MedicalBillData

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/bills", tags=["bills"])

ALLOWED_CONTENT_TYPES = {
    "application/pdf": ".pdf",
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "text/plain": ".txt",
}


# ---------------------------------------------------------------------------
# Request / response schemas
# ---------------------------------------------------------------------------


class ProcessBillResponse(BaseModel):
    bill_id: str
    processing_status: str
    record_status: Optional[str] = None
    document_verified: Optional[bool] = None
    is_valid: Optional[bool] = None
    errors: list[str] = []
    warnings: list[str] = []
    data: Optional[MedicalBillData] = None


class VerifyDocumentResponse(BaseModel):
    result: str
    is_legitimate: bool


class BillRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    bill_id: str
    raw_text: str
    procedure_descriptions: list[str]
    procedure_codes: list[dict]
    costs: dict
    hospital_name: str
    date_of_service: Optional[str]
    confidence_score: float
    status: str
    warnings: Optional[list[str]]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _save_upload(file: UploadFile) -> str:
    """Write an upload to a temp file (suffix from its content type) and return the path."""
    suffix = ALLOWED_CONTENT_TYPES.get(file.content_type or "")
    if suffix is None:
        raise HTTPException(
            status_code=400,
            detail="Invalid file type. Only PDF, image and plain-text files are allowed.",
        )
    with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp:
        shutil.copyfileobj(file.file, tmp)
        return tmp.name


def _remove(path: Optional[str]) -> None:
    if path:
        try:
            os.unlink(path)
        except OSError as e:
            logger.warning("Could not remove temp upload %s: %s", path, e)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/process", response_model=ProcessBillResponse)
def process_bill(
    file: Optional[UploadFile] = File(None),
    raw_text: Optional[str] = Form(None),
    confidence: Optional[float] = Form(None),
    bill_id: Optional[str] = Form(None),
):
    """
    Run a bill through verification → OCR → extraction → validation → storage.
    Provide either a document file (PDF / image / TXT) or raw_text.
    """
    if file is None and not raw_text:
        raise HTTPException(status_code=422, detail="Provide either a file upload or raw_text.")

    generated_bill_id = bill_id or str(uuid.uuid4())
    file_path = _save_upload(file) if file is not None else None

    initial_state = {
        "bill_id": generated_bill_id,
        "raw_text": raw_text or "",
    }
    if file_path:
        initial_state["file_path"] = file_path
    if confidence is not None:
        initial_state["confidence"] = confidence

    try:
        final_state = graph.invoke(initial_state)
    except Exception as e:
        logger.exception("Graph execution failed for bill %s: %s", generated_bill_id, e)
        raise HTTPException(status_code=500, detail=f"Pipeline error: {e}")
    finally:
        _remove(file_path)

    if final_state.get("processing_status") == "storage_failed":
        raise HTTPException(status_code=500, detail="Failed to store data")

    validation = final_state.get("validation")
    return ProcessBillResponse(
        bill_id=final_state.get("bill_id", generated_bill_id),
        processing_status=final_state.get("processing_status", "unknown"),
        record_status=final_state.get("record_status"),
        document_verified=final_state.get("document_verified"),
        is_valid=validation.is_valid if validation is not None else None,
        errors=list(validation.errors) if validation is not None else [],
        warnings=list(validation.warnings) if validation is not None else [],
        data=validation.data if validation is not None else None,
    )


@router.post("/verify", response_model=VerifyDocumentResponse)
def verify_document(file: UploadFile = File(...)):
    """Ask the vision model whether the upload is a medical bill or related financial document."""
    file_path = _save_upload(file)
    try:
        image = load_document_image(file_path)
        if image is None:
            raise HTTPException(status_code=400, detail="Image data is required")
        is_legitimate = classify_document(*image)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Document verification failed: %s", e)
        raise HTTPException(status_code=500, detail=f"Failed to verify document: {e}")
    finally:
        _remove(file_path)

    return VerifyDocumentResponse(result="yes" if is_legitimate else "no", is_legitimate=is_legitimate)


@router.get("", response_model=list[BillRecord])
def list_bills(search: Optional[str] = None, db: Session = Depends(get_db)):
    """Stored bills, newest first; search matches hospital name or raw text."""
    return search_bills(db, search)


@router.get("/{bill_id}", response_model=BillRecord)
def get_bill(bill_id: str, db: Session = Depends(get_db)):
    """Retrieve a stored bill by ID."""
    bill = db.get(MedicalBill, bill_id)
    if bill is None:
        raise HTTPException(status_code=404, detail=f"Bill {bill_id!r} not found.")
    return bill
