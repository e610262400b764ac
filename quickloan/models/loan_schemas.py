from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List, Optional, Any
from enum import Enum
from datetime import datetime


PLACEHOLDER = "—"


class EmploymentTier(str, Enum):
    """Applicant employment classification"""
    STUDENT = "Student"
    SELF_EMPLOYED = "Self-employed"
    SALARIED = "Salaried"
    UNEMPLOYED = "Unemployed"
    UNKNOWN = "Unknown"

    @classmethod
    def from_value(cls, value: Any) -> "EmploymentTier":
        """
        Resolve free-form employment text to a tier.
        Case, spaces and hyphens are ignored; anything unrecognised is UNKNOWN.
        """
        if isinstance(value, EmploymentTier):
            return value
        if not isinstance(value, str):
            return cls.UNKNOWN

        key = value.strip().lower().replace("-", "").replace(" ", "")
        return _TIER_SYNONYMS.get(key, cls.UNKNOWN)


_TIER_SYNONYMS = {
    "student": EmploymentTier.STUDENT,
    "selfemployed": EmploymentTier.SELF_EMPLOYED,
    "salaried": EmploymentTier.SALARIED,
    "salariedemployee": EmploymentTier.SALARIED,
    "unemployed": EmploymentTier.UNEMPLOYED,
    "unemployeed": EmploymentTier.UNEMPLOYED,
    "unknown": EmploymentTier.UNKNOWN,
}


class LoanStage(str, Enum):
    """Funnel stages, in forward order"""
    ENTRY = "entry"
    NEEDS = "needs"
    PREQUALIFICATION = "prequalification"
    ELIGIBILITY = "eligibility"
    OFFER = "offer"
    DOCUMENTS = "documents"
    APPROVAL = "approval"
    SANCTION = "sanction"


class StageEvent(str, Enum):
    """Completion events that move the funnel forward"""
    APPLICATION_STARTED = "application_started"
    INTAKE_SUBMITTED = "intake_submitted"
    IDENTITY_VERIFIED = "identity_verified"
    ELIGIBILITY_ASSESSED = "eligibility_assessed"
    PLAN_SELECTED = "plan_selected"
    DOCUMENTS_UPLOADED = "documents_uploaded"
    TERMS_ACKNOWLEDGED = "terms_acknowledged"


class ApplicantProfile(BaseModel):
    """Validated intake facts. Frozen once submitted."""
    name: str
    age: int = Field(..., ge=1, le=120)
    mobile: str = Field(..., pattern=r"^\d{10}$")
    address: str
    pan: str = Field(..., pattern=r"^[A-Z]{5}[0-9]{4}[A-Z]$")
    aadhaar: str = Field(..., pattern=r"^\d{12}$")
    employment: EmploymentTier
    salary: float = Field(..., ge=0, description="Monthly or annual salary in INR")
    requested_amount: float = Field(..., gt=0, description="Requested loan amount in INR")
    purpose: str = Field(..., min_length=1)

    model_config = {"frozen": True}


class ApplicantSnapshot(BaseModel):
    """
    Loose copy of the applicant as read back from the session store.
    Every field has a placeholder so downstream pages never fail on a missing record.
    """
    name: str = PLACEHOLDER
    mobile: str = PLACEHOLDER
    age: Optional[int] = None
    address: str = PLACEHOLDER
    employment: EmploymentTier = EmploymentTier.UNKNOWN
    salary: float = 0.0
    requested_amount: float = 0.0
    purpose: str = PLACEHOLDER

    model_config = {"extra": "ignore"}

    @field_validator("employment", mode="before")
    @classmethod
    def coerce_employment(cls, v):
        return EmploymentTier.from_value(v)

    @classmethod
    def from_profile(cls, profile: ApplicantProfile) -> "ApplicantSnapshot":
        return cls(
            name=profile.name,
            mobile=profile.mobile,
            age=profile.age,
            address=profile.address,
            employment=profile.employment,
            salary=profile.salary,
            requested_amount=profile.requested_amount,
            purpose=profile.purpose,
        )


class ApplicationRecord(BaseModel):
    """What intake writes to the session store"""
    conversation_id: str
    profile: ApplicantProfile
    submitted_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat() + "Z")


class DocumentRequirement(BaseModel):
    key: str
    label: str
    accept: str = "image/*,application/pdf"

    model_config = {"frozen": True}


class DocumentStatus(str, Enum):
    PENDING = "pending"
    UPLOADED = "uploaded"
    NO_FILE = "no_file"


class CreditAssessment(BaseModel):
    """Simulated bureau score for one session"""
    score: int = Field(..., ge=300, le=900)
    category: str
    recommendation: str
    tier: EmploymentTier


class EligibilityLimit(BaseModel):
    ceiling: float
    requested_amount: float
    sanctioned_amount: float
    limit_exceeded: bool = False


class RepaymentPlan(BaseModel):
    """A single tenor quote"""
    months: int = Field(..., gt=0)
    label: str
    emi: float
    total_payable: float
    total_interest: float


class PlanQuote(BaseModel):
    """All tenor quotes for one sanctioned principal"""
    eligibility: EligibilityLimit
    annual_rate: float = Field(..., description="Nominal annual rate as a fraction, e.g. 0.14")
    monthly_rate: float
    plans: List[RepaymentPlan] = Field(default_factory=list)
    recommended_months: int

    def plan_for(self, months: int) -> Optional[RepaymentPlan]:
        for plan in self.plans:
            if plan.months == months:
                return plan
        return None


class SelectedPlanRecord(BaseModel):
    """Chosen plan, as persisted for the agreement"""
    loan_amount: float
    months: int
    annual_rate: float = Field(..., description="Percent p.a., e.g. 14.0")
    emi: float
    total_payable: float
    total_interest: float = 0.0


class ScheduleRow(BaseModel):
    month: int
    opening_balance: float
    emi: float
    interest: float
    principal: float
    closing_balance: float


class ProofDescriptor(BaseModel):
    """Metadata of an uploaded collateral proof; the file itself is never stored"""
    file_name: str = Field(..., min_length=1)
    content_type: Optional[str] = None
    size: Optional[int] = Field(None, ge=0)


class Collateral(BaseModel):
    name: str
    proof: ProofDescriptor


class LoanAgreement(BaseModel):
    """Issued agreement. Immutable; re-acknowledging issues a new token."""
    token: str
    acknowledged_at: str
    applicant: ApplicantSnapshot
    plan: Optional[SelectedPlanRecord] = None
    sanctioned_amount: float = 0.0
    collateral: Optional[Collateral] = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_amount(self):
        if self.sanctioned_amount < 0:
            raise ValueError("sanctioned_amount cannot be negative")
        return self
