# quickloan/services/credit_score.py
"""
Simulated Credit Score.
No bureau call: the score is a deterministic hash of the applicant's identity,
placed inside a band chosen by employment tier. Same seed + tier, same score.
"""

from typing import Dict, Tuple, NamedTuple

from quickloan.models.loan_schemas import (
    ApplicantProfile, ApplicantSnapshot, CreditAssessment, EmploymentTier, PLACEHOLDER
)

MIN_SCORE = 300
MAX_SCORE = 900

# Closed score bands per tier
TIER_SCORE_RANGES: Dict[EmploymentTier, Tuple[int, int]] = {
    EmploymentTier.STUDENT: (670, 710),
    EmploymentTier.SELF_EMPLOYED: (700, 780),
    EmploymentTier.SALARIED: (750, 850),
    EmploymentTier.UNEMPLOYED: (450, 550),
    EmploymentTier.UNKNOWN: (650, 750),
}


class ScoreCategory(NamedTuple):
    label: str
    recommendation: str


# Checked top-down, first floor met wins
SCORE_CATEGORIES = [
    (800, ScoreCategory("Excellent", "Eligible for best rates")),
    (750, ScoreCategory("Very Good", "Low interest likely")),
    (700, ScoreCategory("Good", "Competitive offers possible")),
    (600, ScoreCategory("Fair", "May need co-applicant")),
]
POOR = ScoreCategory("Poor", "Higher risk — manual review needed")


def _utf16_units(text: str):
    data = text.encode("utf-16-le")
    for i in range(0, len(data), 2):
        yield int.from_bytes(data[i:i + 2], "little")


def seed_hash(seed: str) -> int:
    """
    hash = hash * 31 + code unit, wrapped to signed 32-bit, then abs().
    Empty seed hashes to 0.
    """
    h = 0
    for unit in _utf16_units(seed or ""):
        h = (h * 31 + unit) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def score_range(tier) -> Tuple[int, int]:
    return TIER_SCORE_RANGES[EmploymentTier.from_value(tier)]


def score(seed: str, tier) -> int:
    """Deterministic score in the tier's band (always within 300-900)"""
    low, high = score_range(tier)
    return low + (seed_hash(seed) % (high - low + 1))


def categorize(value: int) -> ScoreCategory:
    for floor, category in SCORE_CATEGORIES:
        if value >= floor:
            return category
    return POOR


def identity_seed(applicant) -> str:
    """Seed is '<name>_<mobile>'; missing parts use the placeholder"""
    name = getattr(applicant, "name", None) or PLACEHOLDER
    mobile = getattr(applicant, "mobile", None) or PLACEHOLDER
    return f"{name}_{mobile}"


def assess_credit(applicant) -> CreditAssessment:
    """Score an ApplicantProfile or ApplicantSnapshot"""
    if not isinstance(applicant, (ApplicantProfile, ApplicantSnapshot)):
        applicant = ApplicantSnapshot()

    tier = EmploymentTier.from_value(applicant.employment)
    value = score(identity_seed(applicant), tier)
    category = categorize(value)

    return CreditAssessment(
        score=value,
        category=category.label,
        recommendation=category.recommendation,
        tier=tier,
    )
