# quickloan/services/document_resolver.py
"""
Required documents by employment tier.
The identity document always comes first; unknown tiers get only that.
"""

from typing import Any, Dict, List, Mapping, Optional

from quickloan.models.loan_schemas import DocumentRequirement, DocumentStatus, EmploymentTier

IMAGE_OR_PDF = "image/*,application/pdf"
PDF_OR_IMAGE = "application/pdf,image/*"

ID_PROOF = DocumentRequirement(key="ID_PROOF", label="Government ID (PAN / Aadhaar)", accept=IMAGE_OR_PDF)

TIER_DOCUMENTS: Dict[EmploymentTier, List[DocumentRequirement]] = {
    EmploymentTier.STUDENT: [
        DocumentRequirement(key="STUDENT_ID_CARD", label="Student ID Card", accept="image/*"),
        DocumentRequirement(key="ADDRESS_PROOF", label="Address Proof (Utility Bill)", accept=IMAGE_OR_PDF),
    ],
    EmploymentTier.SELF_EMPLOYED: [
        DocumentRequirement(key="BUSINESS_REGISTRATION", label="Business Registration / GST / Invoice", accept=IMAGE_OR_PDF),
        DocumentRequirement(key="BANK_STATEMENT_6M", label="Bank Statement (6 months)", accept=PDF_OR_IMAGE),
        DocumentRequirement(key="PROFIT_LOSS", label="Profit & Loss / Income Proof", accept=PDF_OR_IMAGE),
    ],
    EmploymentTier.SALARIED: [
        DocumentRequirement(key="EMPLOYMENT_PROOF", label="Employment Proof (Offer Letter / Employer ID)", accept=IMAGE_OR_PDF),
        DocumentRequirement(key="SALARY_SLIP_3M", label="Salary Slips (Last 3 months)", accept=PDF_OR_IMAGE),
        DocumentRequirement(key="BANK_STATEMENT_3M", label="Bank Statement (Last 3 months)", accept=PDF_OR_IMAGE),
    ],
    EmploymentTier.UNEMPLOYED: [
        DocumentRequirement(key="CO_APPLICANT_DOC", label="Co-applicant / Guarantor ID & Consent", accept=IMAGE_OR_PDF),
        DocumentRequirement(key="ASSET_PROOF", label="Asset Proof (Property / Vehicle documents)", accept=IMAGE_OR_PDF),
    ],
}


def required_documents(tier: Any) -> List[DocumentRequirement]:
    """Ordered requirements for a tier (enum or free text). Never raises."""
    resolved = EmploymentTier.from_value(tier)
    return [ID_PROOF] + list(TIER_DOCUMENTS.get(resolved, []))


def document_checklist(
    required: List[DocumentRequirement],
    uploads: Optional[Mapping[str, Optional[str]]] = None,
) -> Dict[str, str]:
    """
    Status per required key: uploaded if a file name was supplied, otherwise no_file.
    With no uploads at all every key is pending.
    """
    if uploads is None:
        return {doc.key: DocumentStatus.PENDING.value for doc in required}

    statuses = {}
    for doc in required:
        file_name = uploads.get(doc.key)
        if file_name and str(file_name).strip():
            statuses[doc.key] = DocumentStatus.UPLOADED.value
        else:
            statuses[doc.key] = DocumentStatus.NO_FILE.value
    return statuses
