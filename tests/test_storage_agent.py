from unittest.mock import patch

from agents.extraction_agent import extract_bill_data
from agents.storage_agent import record_status, save_bill, search_bills, storage_agent
from agents.validation_agent import validate_bill_data
from db.models import AuditLog, MedicalBill


def _validated(text):
    data = extract_bill_data(text, 0.9)
    return data, validate_bill_data(data)


class TestSaveBill:
    def test_save_and_audit(self, db_session, sample_bill_text):
        data, validation = _validated(sample_bill_text)
        save_bill(db_session, "bill-1", data, validation)

        bill = db_session.get(MedicalBill, "bill-1")
        assert bill.status == "validated"
        assert bill.hospital_name == "ST. MARY'S HOSPITAL"
        assert bill.date_of_service == "2024-12-15"
        assert bill.procedure_codes[0] == {"code": "99213", "kind": "CPT"}
        assert bill.costs["total"] == 2800.0
        assert bill.costs["insurance_portion"] == 2240.0
        assert bill.confidence_score == 0.9

        audit = db_session.query(AuditLog).filter_by(bill_id="bill-1").one()
        assert audit.event == "bill_stored"

    def test_warnings_need_review(self, db_session):
        data, validation = _validated("Mayo Clinic outpatient\n01/05/2024\nFee: $10.00")
        assert validation.is_valid and validation.warnings == ["No procedure codes found"]
        assert record_status(validation) == "needs_review"

        bill = save_bill(db_session, "bill-2", data, validation)
        assert bill.status == "needs_review"
        assert bill.warnings == ["No procedure codes found"]


class TestSearchBills:
    def test_search(self, db_session, sample_bill_text):
        data, validation = _validated(sample_bill_text)
        save_bill(db_session, "a", data, validation)
        data, validation = _validated("Mayo Clinic outpatient\n01/05/2024\nFee: $10.00")
        save_bill(db_session, "b", data, validation)

        assert {b.bill_id for b in search_bills(db_session)} == {"a", "b"}
        assert [b.bill_id for b in search_bills(db_session, "mayo")] == ["b"]
        assert [b.bill_id for b in search_bills(db_session, "metabolic")] == ["a"]
        assert search_bills(db_session, "nowhere") == []


class TestStorageNode:
    def test_refuses_invalid(self):
        data, validation = _validated("")
        state = storage_agent({"bill_data": data, "validation": validation})
        assert state["processing_status"] == "invalid"

    def test_stores(self, db_session, sample_bill_text):
        data, validation = _validated(sample_bill_text)
        state = storage_agent({"bill_id": "node-1", "bill_data": data, "validation": validation})
        assert state["processing_status"] == "stored"
        assert state["record_status"] == "validated"
        assert db_session.get(MedicalBill, "node-1") is not None

    def test_db_failure(self, sample_bill_text):
        data, validation = _validated(sample_bill_text)
        with patch("agents.storage_agent.save_bill", side_effect=RuntimeError("db down")):
            state = storage_agent({"bill_data": data, "validation": validation})
        assert state["processing_status"] == "storage_failed"
        assert state["bill_id"]
