"""Bill state for the medical bill processing LangGraph workflow."""

from typing import Optional, TypedDict

from orchestrator.schemas import MedicalBillData, ValidationResult


class BillState(TypedDict, total=False):
    """State passed between agents in the bill processing graph."""

    bill_id: str
    file_path: str  # optional; used by ocr_agent / verification_agent
    raw_text: str   # supplied text skips OCR
    confidence: float

    # verification_agent output
    document_verified: Optional[bool]  # None when not checked or the LLM call failed

    # extraction_agent output
    bill_data: MedicalBillData

    # validation_agent output
    validation: ValidationResult

    # storage_agent output / terminal status
    record_status: str      # 'validated' | 'needs_review'
    processing_status: str  # 'stored' | 'invalid' | 'rejected_document' | 'ocr_failed' | 'storage_failed'
    error: str
