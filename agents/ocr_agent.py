"""
OCR Agent — LangGraph node.
Reads text and an OCR confidence score out of an uploaded bill.

PDF text layers are read with PyMuPDF; scanned PDFs and images go through
pytesseract. Text supplied directly in state skips this step.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

import fitz  # PyMuPDF

from orchestrator.state import BillState

logger = logging.getLogger(__name__)

TESSERACT_CMD = os.getenv("TESSERACT_CMD", "")
PDF_DPI = int(os.getenv("PDF_DPI", "300"))

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".gif", ".webp", ".tif", ".tiff", ".bmp"}
_MIN_TEXT_LAYER_CHARS = 50

# --- Text extraction ---


def extract_text_with_confidence(file_path: str) -> tuple[str, float]:
    """
    Return (text, confidence in [0, 1]) for a bill document.
    Supports .pdf (text layer or scanned), common image formats and .txt.
    """
    path = Path(file_path)
    if not path.exists():
        logger.warning("File not found: %s", file_path)
        return "", 0.0

    suffix = path.suffix.lower()

    if suffix == ".pdf":
        return _extract_pdf(str(path))
    if suffix in IMAGE_SUFFIXES:
        from PIL import Image

        with Image.open(path) as img:
            return _ocr_images([img])
    if suffix == ".txt":
        return _extract_plain(str(path)), 1.0

    logger.warning("Unsupported file type: %s", suffix)
    return "", 0.0


def _extract_pdf(file_path: str) -> tuple[str, float]:
    """Embedded text counts as exact; fall back to OCR when the text layer is (nearly) empty."""
    with fitz.open(file_path) as doc:
        text = "\n".join(page.get_text() for page in doc).strip()
    if len(text) >= _MIN_TEXT_LAYER_CHARS:
        return _normalize_text(text), 1.0

    import pdf2image

    logger.info("PDF text layer too short (%d chars), running OCR: %s", len(text), file_path)
    return _ocr_images(pdf2image.convert_from_path(file_path, dpi=PDF_DPI))


def _ocr_images(images) -> tuple[str, float]:
    """
    OCR each image with pytesseract, rebuilding lines from word boxes.
    Confidence is the mean word confidence, scaled from 0-100 to 0-1.
    """
    import pytesseract

    if TESSERACT_CMD:
        pytesseract.pytesseract.tesseract_cmd = TESSERACT_CMD

    lines: list[str] = []
    confidences: list[float] = []
    for img in images:
        data = pytesseract.image_to_data(img, output_type=pytesseract.Output.DICT)
        page_lines: dict[tuple[int, int, int], list[str]] = {}
        for i, word in enumerate(data["text"]):
            conf = float(data["conf"][i])
            if conf < 0 or not word.strip():
                continue
            key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
            page_lines.setdefault(key, []).append(word)
            confidences.append(conf)
        lines.extend(" ".join(words) for words in page_lines.values())

    text = _normalize_text("\n".join(lines))
    confidence = sum(confidences) / len(confidences) / 100 if confidences else 0.0
    return text, confidence


def _extract_plain(file_path: str) -> str:
    """Read .txt file with utf-8, fallback to latin-1."""
    try:
        with open(file_path, encoding="utf-8") as f:
            return _normalize_text(f.read())
    except UnicodeDecodeError:
        with open(file_path, encoding="latin-1") as f:
            return _normalize_text(f.read())


def _normalize_text(text: str) -> str:
    if not text:
        return ""
    text = re.sub(r"\r\n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


# --- LangGraph node ---


def ocr_agent(state: BillState) -> BillState:
    """
    LangGraph node: uploaded file → raw text + confidence.
    Reads state["raw_text"] or state["file_path"]; supplied text is kept with its
    confidence (default 1.0).
    """
    raw_text = state.get("raw_text") or ""
    if raw_text.strip():
        confidence = state.get("confidence")
        return {**state, "confidence": 1.0 if confidence is None else confidence}

    file_path = state.get("file_path")
    if not file_path:
        confidence = state.get("confidence")
        return {**state, "raw_text": raw_text, "confidence": 0.0 if confidence is None else confidence}

    try:
        text, confidence = extract_text_with_confidence(file_path)
        logger.info("ocr_agent: %d chars, confidence=%.2f", len(text), confidence)
        return {**state, "raw_text": text, "confidence": confidence}
    except Exception as e:
        logger.exception("ocr_agent failed: %s", e)
        return {
            **state,
            "raw_text": "",
            "confidence": 0.0,
            "processing_status": "ocr_failed",
            "error": f"OCR failed: {e}",
        }
