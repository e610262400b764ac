# quickloan/services/profile_validator.py
"""
Intake validation.
Pure function over the whole form: every failing field is reported, never fail-fast.
"""

import re
import secrets
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from quickloan.models.loan_schemas import ApplicantProfile, EmploymentTier
from quickloan.services.errors import FieldValidationError

MOBILE_RE = re.compile(r"^\d{10}$")
PAN_RE = re.compile(r"^[A-Z]{5}[0-9]{4}[A-Z]$")
AADHAAR_RE = re.compile(r"^\d{12}$")

MIN_AGE = 1
MAX_AGE = 120


def _text(raw: Mapping, key: str) -> str:
    value = raw.get(key)
    if value is None:
        return ""
    return str(value).strip()


def _number(raw: Mapping, key: str) -> Optional[float]:
    """Parse a numeric field; None when blank or not a finite number"""
    value = raw.get(key)
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    if num != num or num in (float("inf"), float("-inf")):
        return None
    return num


def collect_profile_errors(raw: Mapping[str, Any]) -> Dict[str, str]:
    """Return field -> message for every rule the form breaks (empty dict if valid)"""
    errors: Dict[str, str] = {}

    if not _text(raw, "name"):
        errors["name"] = "Name is required."

    age = _number(raw, "age")
    if age is None or age != int(age) or not (MIN_AGE <= age <= MAX_AGE):
        errors["age"] = "Enter a valid age."

    if not MOBILE_RE.match(_text(raw, "mobile")):
        errors["mobile"] = "Enter a 10-digit mobile number."

    if not _text(raw, "address"):
        errors["address"] = "Address is required."

    if not PAN_RE.match(_text(raw, "pan").upper()):
        errors["pan"] = "PAN must be 10 characters: e.g. ABCDE1234F"

    if not AADHAAR_RE.match(_text(raw, "aadhaar")):
        errors["aadhaar"] = "Aadhaar must be 12 digits."

    if not _text(raw, "employment"):
        errors["employment"] = "Select employment status."

    salary = _number(raw, "salary")
    if salary is None or salary < 0:
        errors["salary"] = "Enter a valid salary."

    amount = _number(raw, "requested_amount")
    if amount is None or amount <= 0:
        errors["requested_amount"] = "Enter valid loan amount."

    if not _text(raw, "purpose"):
        errors["purpose"] = "Loan purpose is required."

    return errors


def validate_profile(raw: Mapping[str, Any]) -> ApplicantProfile:
    """
    Validate the full intake form and build an immutable profile.
    Raises FieldValidationError carrying all field messages.
    """
    errors = collect_profile_errors(raw)
    if errors:
        raise FieldValidationError(errors)

    return ApplicantProfile(
        name=_text(raw, "name"),
        age=int(_number(raw, "age")),
        mobile=_text(raw, "mobile"),
        address=_text(raw, "address"),
        pan=_text(raw, "pan").upper(),
        aadhaar=_text(raw, "aadhaar"),
        employment=EmploymentTier.from_value(_text(raw, "employment")),
        salary=_number(raw, "salary"),
        requested_amount=_number(raw, "requested_amount"),
        purpose=_text(raw, "purpose"),
    )


def generate_conversation_id(now: Optional[datetime] = None) -> str:
    """conv_<ISO timestamp>_<4 hex>"""
    now = now or datetime.utcnow()
    return f"conv_{now.isoformat()}_{secrets.token_hex(2)}"
