"""SQLAlchemy ORM models: MedicalBill and AuditLog."""

from __future__ import annotations
from typing import Optional

from datetime import datetime

from sqlalchemy import JSON, DateTime, Float, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from db.database import Base


class MedicalBill(Base):
    __tablename__ = "medical_bills"

    bill_id: Mapped[str] = mapped_column(String(64), primary_key=True, index=True)
    raw_text: Mapped[str] = mapped_column(Text, default="")
    procedure_descriptions: Mapped[list] = mapped_column(JSON, default=list)
    procedure_codes: Mapped[list] = mapped_column(JSON, default=list)   # [{code, kind}]
    costs: Mapped[dict] = mapped_column(JSON, default=dict)
    hospital_name: Mapped[str] = mapped_column(String(512), default="", index=True)
    date_of_service: Mapped[Optional[str]] = mapped_column(String(10))
    confidence_score: Mapped[float] = mapped_column(Float, default=0.0)
    status: Mapped[str] = mapped_column(String(32), default="validated")  # validated | needs_review
    warnings: Mapped[Optional[list]] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())


class AuditLog(Base):
    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    bill_id: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    event: Mapped[str] = mapped_column(String(128))
    detail: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
