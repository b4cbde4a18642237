"""Value types passed between the extraction, validation and storage agents."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CodeKind(str, Enum):
    CPT = "CPT"
    ICD = "ICD"
    HCPCS = "HCPCS"
    OTHER = "OTHER"


class ProcedureCode(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    kind: CodeKind


class Cost(BaseModel):
    """
    Currency amounts found on a bill.

    total/subtotal are the largest/smallest amounts in the text, not an
    accounting identity; the portions stay None when no labelled amount exists.
    """

    model_config = ConfigDict(frozen=True)

    subtotal: float = 0
    total: float = 0
    insurance_portion: Optional[float] = None
    patient_portion: Optional[float] = None


class MedicalBillData(BaseModel):
    model_config = ConfigDict(frozen=True)

    procedure_descriptions: list[str] = Field(default_factory=list)
    procedure_codes: list[ProcedureCode] = Field(default_factory=list)
    costs: Cost = Field(default_factory=Cost)
    hospital_name: str = ""
    date_of_service: str = ""  # YYYY-MM-DD or ""
    raw_text: str = ""
    confidence: float = 0.0  # OCR score, stored as given


class ValidationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    data: Optional[MedicalBillData] = None  # only set when is_valid
