"""
Verification Agent — LangGraph node.
Asks a vision LLM whether an upload is a medical bill before any OCR is spent on it.

The verdict is a plain yes/no. A document can pass here and still fail the
structured validation later on.
"""

from __future__ import annotations

import base64
import logging
import os
from pathlib import Path

from langchain_core.messages import HumanMessage
from langchain_openai import ChatOpenAI
from langsmith import traceable

from orchestrator.state import BillState

logger = logging.getLogger(__name__)

VERIFICATION_MODEL = os.getenv("VERIFICATION_MODEL", "gpt-4o-mini")
VERIFY_DOCUMENTS = os.getenv("VERIFY_DOCUMENTS", "true").lower() == "true"

VERIFICATION_PROMPT = (
    "Is this a medical bill or healthcare-related financial document? "
    "Answer with only 'yes' or 'no'."
)

_MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
}


def load_document_image(file_path: str) -> tuple[bytes, str] | None:
    """Image bytes + MIME type for a file; PDFs are rendered from their first page."""
    path = Path(file_path)
    suffix = path.suffix.lower()
    if suffix == ".pdf":
        import fitz  # PyMuPDF

        with fitz.open(str(path)) as doc:
            if doc.page_count == 0:
                return None
            pixmap = doc[0].get_pixmap(matrix=fitz.Matrix(1.5, 1.5))
            return pixmap.tobytes("png"), "image/png"
    if suffix in _MIME_TYPES:
        return path.read_bytes(), _MIME_TYPES[suffix]
    return None


@traceable(name="verification_agent_classify_document")
def classify_document(image_bytes: bytes, mime_type: str = "image/png") -> bool:
    """Return True when the vision model answers 'yes' for the image."""
    data_url = f"data:{mime_type};base64,{base64.b64encode(image_bytes).decode('ascii')}"
    llm = ChatOpenAI(model=VERIFICATION_MODEL, temperature=0, max_tokens=10)
    response = llm.invoke(
        [
            HumanMessage(
                content=[
                    {"type": "text", "text": VERIFICATION_PROMPT},
                    {"type": "image_url", "image_url": {"url": data_url, "detail": "low"}},
                ]
            )
        ]
    )
    content = response.content if hasattr(response, "content") else str(response)
    if not isinstance(content, str) or not content.strip():
        raise ValueError("No response from document classifier")
    return "yes" in content.lower()


# --- LangGraph node ---


def verification_agent(state: BillState) -> BillState:
    """
    LangGraph node: yes/no medical-document check on the uploaded file.

    Writes: state['document_verified']  — True/False, or None when skipped or the call failed
            state['processing_status']  — 'rejected_document' when the verdict is no
    """
    file_path = state.get("file_path")
    if not VERIFY_DOCUMENTS or not file_path:
        return {**state, "document_verified": None}

    try:
        image = load_document_image(file_path)
        if image is None:
            return {**state, "document_verified": None}

        verified = classify_document(*image)
        logger.info("verification_agent: %s → %s", file_path, "yes" if verified else "no")
        if not verified:
            return {
                **state,
                "document_verified": False,
                "processing_status": "rejected_document",
                "error": "Document does not appear to be a medical bill",
            }
        return {**state, "document_verified": True}
    except Exception as e:
        logger.exception("verification_agent failed, continuing unverified: %s", e)
        return {**state, "document_verified": None}
