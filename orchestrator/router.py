"""
Conditional edge functions for the bill processing LangGraph workflow.
"""

from __future__ import annotations

from orchestrator.state import BillState


def route_after_verification(state: BillState) -> str:
    """
    - document judged not to be a medical bill → '__end__'
    - otherwise (yes, skipped, or classifier unavailable) → 'ocr_agent'
    """
    if state.get("document_verified") is False:
        return "__end__"
    return "ocr_agent"


def route_after_ocr(state: BillState) -> str:
    if state.get("processing_status") == "ocr_failed":
        return "__end__"
    return "extraction_agent"


def route_after_validation(state: BillState) -> str:
    """
    - no errors (warnings allowed) → 'storage_agent'
    - any error                    → '__end__'
    """
    validation = state.get("validation")
    if validation is not None and validation.is_valid:
        return "storage_agent"
    return "__end__"
