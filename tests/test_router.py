from agents.extraction_agent import extract_bill_data
from agents.validation_agent import validate_bill_data
from orchestrator.router import route_after_ocr, route_after_validation, route_after_verification


def test_route_after_verification():
    assert route_after_verification({"document_verified": False}) == "__end__"
    assert route_after_verification({"document_verified": True}) == "ocr_agent"
    assert route_after_verification({"document_verified": None}) == "ocr_agent"
    assert route_after_verification({}) == "ocr_agent"


def test_route_after_ocr():
    assert route_after_ocr({"processing_status": "ocr_failed"}) == "__end__"
    assert route_after_ocr({"raw_text": "x"}) == "extraction_agent"


def test_route_after_validation(sample_bill_text):
    valid = validate_bill_data(extract_bill_data(sample_bill_text, 1.0))
    invalid = validate_bill_data(extract_bill_data("", 1.0))
    assert route_after_validation({"validation": valid}) == "storage_agent"
    assert route_after_validation({"validation": invalid}) == "__end__"
    assert route_after_validation({}) == "__end__"
