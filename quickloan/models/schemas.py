from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any

from quickloan.models.loan_schemas import (
    LoanStage, ProofDescriptor, DocumentRequirement, CreditAssessment
)


# Session / stage
class SessionCreated(BaseModel):
    session_id: str
    stage: LoanStage

class StageResponse(BaseModel):
    session_id: str
    stage: LoanStage
    furthest_stage: LoanStage
    progress: float
    is_terminal: bool

class BackRequest(BaseModel):
    stage: LoanStage


# Intake
class ApplicationRequest(BaseModel):
    """Raw intake form. Everything is optional here; the validator reports each bad field."""
    name: Optional[str] = None
    age: Optional[Any] = None
    mobile: Optional[Any] = None
    address: Optional[str] = None
    pan: Optional[str] = None
    aadhaar: Optional[Any] = None
    employment: Optional[str] = None
    salary: Optional[Any] = None
    requested_amount: Optional[Any] = None
    purpose: Optional[str] = None

class ApplicationResponse(BaseModel):
    conversation_id: str
    stage: LoanStage
    required_documents: List[DocumentRequirement]


# KYC
class KycResponse(BaseModel):
    stage: LoanStage
    assessment: CreditAssessment


# Plans
class PlanSelectionRequest(BaseModel):
    months: int = Field(..., gt=0)


# Documents
class DocumentUploadRequest(BaseModel):
    """Document key -> uploaded file name. Missing keys are reported as no_file."""
    files: Dict[str, str] = Field(default_factory=dict)

class DocumentUploadResponse(BaseModel):
    stage: LoanStage
    statuses: Dict[str, str]
    complete: bool


# Agreement
class AgreementRequest(BaseModel):
    acknowledged: bool = False
    collateral_name: Optional[str] = None
    collateral_proof: Optional[ProofDescriptor] = None
