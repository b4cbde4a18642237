from datetime import date, timedelta

import pytest

from agents.extraction_agent import extract_bill_data
from agents.validation_agent import validate_bill_data, validate_procedure_code, validation_agent
from orchestrator.schemas import CodeKind, Cost, MedicalBillData, ProcedureCode


def make_bill(**overrides):
    fields = {
        "procedure_descriptions": ["Office visit, established patient"],
        "procedure_codes": [ProcedureCode(code="99213", kind=CodeKind.CPT)],
        "costs": Cost(subtotal=150.0, total=200.0),
        "hospital_name": "General Hospital",
        "date_of_service": "2024-03-01",
        "raw_text": "",
        "confidence": 0.9,
    }
    fields.update(overrides)
    return MedicalBillData(**fields)


class TestValidateProcedureCode:
    @pytest.mark.parametrize(
        "code,kind,expected",
        [
            ("99213", CodeKind.CPT, True),
            ("9921", CodeKind.CPT, False),
            ("E11.9", CodeKind.ICD, True),
            ("E11", CodeKind.ICD, True),
            ("E11.123", CodeKind.ICD, False),
            ("A1234", CodeKind.HCPCS, True),
            ("Z", CodeKind.HCPCS, False),
            ("anything", CodeKind.OTHER, True),
            ("", CodeKind.OTHER, False),
        ],
    )
    def test_shapes(self, code, kind, expected):
        assert validate_procedure_code(ProcedureCode(code=code, kind=kind)) is expected


class TestValidateBillData:
    def test_clean_bill(self):
        result = validate_bill_data(make_bill())
        assert result.is_valid
        assert result.errors == []
        assert result.warnings == []
        assert result.data == make_bill()

    def test_warnings_do_not_block(self):
        result = validate_bill_data(make_bill(procedure_descriptions=["MRI"], procedure_codes=[]))
        assert result.is_valid
        assert result.warnings == [
            "Some procedure descriptions are unusually short",
            "No procedure codes found",
        ]
        assert result.data is not None

    def test_invalid_code_named_by_index(self):
        codes = [
            ProcedureCode(code="99213", kind=CodeKind.CPT),
            ProcedureCode(code="9921", kind=CodeKind.CPT),
        ]
        result = validate_bill_data(make_bill(procedure_codes=codes))
        assert not result.is_valid
        assert result.errors == ["Invalid procedure code at index 1: 9921"]
        assert result.data is None

    def test_empty_extraction_rejected(self):
        result = validate_bill_data(extract_bill_data("", 0.5))
        assert not result.is_valid
        for message in (
            "No procedure descriptions found",
            "Invalid total cost",
            "Invalid subtotal cost",
            "Invalid or missing hospital name",
            "Invalid date of service",
        ):
            assert message in result.errors
        assert result.warnings == ["No procedure codes found"]
        assert result.data is None

    def test_all_rules_collected(self):
        result = validate_bill_data(
            make_bill(
                procedure_descriptions=[],
                costs=Cost(subtotal=-1, total=2_000_000, insurance_portion=-5, patient_portion=1_000_000),
                hospital_name="GH",
                date_of_service="not a date",
            )
        )
        assert result.errors == [
            "No procedure descriptions found",
            "Invalid total cost",
            "Invalid subtotal cost",
            "Invalid insurance portion",
            "Invalid patient portion",
            "Invalid or missing hospital name",
            "Invalid date of service",
        ]

    @pytest.mark.parametrize(
        "amount,ok",
        [(999999.99, True), (1_000_000, False), (-0.01, False), (float("nan"), False)],
    )
    def test_cost_bounds(self, amount, ok):
        result = validate_bill_data(make_bill(costs=Cost(subtotal=amount, total=amount)))
        assert result.is_valid is ok

    def test_zero_subtotal_with_positive_total(self):
        result = validate_bill_data(make_bill(costs=Cost(subtotal=0, total=200.0)))
        assert result.is_valid
        assert result.errors == []

    def test_zero_balance_line_on_bill(self, sample_bill_text):
        data = extract_bill_data(sample_bill_text + "\nPatient balance: $0.00", 0.9)
        assert data.costs.subtotal == 0
        assert data.costs.total == 2800.00

        result = validate_bill_data(data)
        assert result.is_valid
        assert "Invalid subtotal cost" not in result.errors

    def test_only_zero_amounts_count_as_missing(self):
        result = validate_bill_data(make_bill(costs=Cost(subtotal=0, total=0)))
        assert result.errors == ["Invalid total cost", "Invalid subtotal cost"]

    def test_zero_portion_is_allowed(self):
        result = validate_bill_data(make_bill(costs=Cost(subtotal=10, total=10, patient_portion=0)))
        assert result.is_valid

    @pytest.mark.parametrize(
        "dos,ok",
        [
            ("2000-01-01", True),
            ("1999-12-31", False),
            (date.today().isoformat(), True),
            ((date.today() + timedelta(days=1)).isoformat(), False),
            ("2023-02-30", False),
            ("", False),
        ],
    )
    def test_date_bounds(self, dos, ok):
        assert validate_bill_data(make_bill(date_of_service=dos)).is_valid is ok

    def test_today_can_be_pinned(self):
        bill = make_bill(date_of_service="2024-06-02")
        assert not validate_bill_data(bill, today=date(2024, 6, 1)).is_valid
        assert validate_bill_data(bill, today=date(2024, 6, 2)).is_valid

    def test_validity_matches_errors(self, sample_bill_text):
        for text in ("", sample_bill_text, "Mayo Clinic\n$10.00"):
            result = validate_bill_data(extract_bill_data(text, 1.0))
            assert result.is_valid == (len(result.errors) == 0)


class TestValidationNode:
    def test_invalid_sets_status(self):
        state = validation_agent({"bill_data": extract_bill_data("", 0.5)})
        assert state["validation"].is_valid is False
        assert state["processing_status"] == "invalid"

    def test_valid_leaves_status(self):
        state = validation_agent({"bill_data": make_bill()})
        assert state["validation"].is_valid
        assert "processing_status" not in state
