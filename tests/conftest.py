import os
import tempfile
from pathlib import Path

import pytest

# Point the app at a throwaway database and keep the vision model out of the loop
_TEST_DB = Path(tempfile.gettempdir()) / f"medbills_test_{os.getpid()}.db"
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TEST_DB}")
os.environ.setdefault("VERIFY_DOCUMENTS", "false")

from db.database import SessionLocal, drop_db, init_db  # noqa: E402


SAMPLE_BILL = """ST. MARY'S HOSPITAL
123 Main Street, Springfield
Date: 12/15/2024
Office visit established patient 99213
Comprehensive metabolic panel 80053
Diagnosis: E11.9 Type 2 diabetes
Insurance Paid: $2,240.00
Patient Responsibility: $560.00
Total: $2,800.00"""


@pytest.fixture
def sample_bill_text():
    """OCR text of a small, well-formed hospital bill"""
    return SAMPLE_BILL


@pytest.fixture
def db_session():
    """Fresh tables for every test that touches the database"""
    init_db()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        drop_db()
