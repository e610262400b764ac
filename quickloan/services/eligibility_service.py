# quickloan/services/eligibility_service.py
"""
Eligibility & Amortization Engine.
Deterministic: salary + tier give a ceiling, the ceiling caps the principal,
and the principal is quoted across a fixed set of tenors.
"""

import math
from typing import Iterable, List, Optional, Tuple

from quickloan.config.settings import settings
from quickloan.models.loan_schemas import (
    ApplicantSnapshot, EligibilityLimit, EmploymentTier, PlanQuote,
    RepaymentPlan, ScheduleRow, SelectedPlanRecord
)
from quickloan.services.errors import UnknownTenorError


class EligibilityService:
    """
    Computes the eligibility ceiling and repayment-plan quotes.
    Rate and tenors default to settings; tests pass them explicitly.
    """

    # ========== CEILING RULES ==========
    STUDENT_MULTIPLIER = 2
    STUDENT_ZERO_SALARY_FLOOR = 5_000
    SELF_EMPLOYED_MULTIPLIER = 3
    SALARIED_MULTIPLIER = 5
    FLAT_CEILING = 50_000             # Unemployed / unrecognised tier

    def __init__(
        self,
        annual_rate: Optional[float] = None,
        tenors: Optional[Iterable[int]] = None,
        preferred_tenor: Optional[int] = None,
    ):
        self.annual_rate = settings.ANNUAL_INTEREST_RATE if annual_rate is None else annual_rate
        self.tenors = sorted(set(tenors if tenors is not None else settings.TENOR_OPTIONS))
        self.preferred_tenor = settings.RECOMMENDED_TENOR if preferred_tenor is None else preferred_tenor
        if not self.tenors or any(m <= 0 for m in self.tenors):
            raise ValueError("Tenor set must contain positive month counts")

    # ========== A. ELIGIBILITY ==========
    def eligibility_ceiling(self, tier, salary: float) -> float:
        """
        Student:        2 × salary (5,000 when salary is 0)
        Self-employed:  3 × salary
        Salaried:       5 × salary
        Otherwise:      flat 50,000
        """
        s = max(float(salary or 0), 0.0)
        tier = EmploymentTier.from_value(tier)

        if tier == EmploymentTier.STUDENT:
            if s == 0:
                return float(self.STUDENT_ZERO_SALARY_FLOOR)
            return self.STUDENT_MULTIPLIER * s
        if tier == EmploymentTier.SELF_EMPLOYED:
            return self.SELF_EMPLOYED_MULTIPLIER * s
        if tier == EmploymentTier.SALARIED:
            return self.SALARIED_MULTIPLIER * s
        return float(self.FLAT_CEILING)

    def evaluate_eligibility(self, tier, salary: float, requested_amount: float) -> EligibilityLimit:
        """
        sanctioned = min(requested, ceiling). Exceeding the ceiling is flagged, not rejected.
        A zero requested amount (no upstream record) quotes the ceiling itself.
        """
        ceiling = self.eligibility_ceiling(tier, salary)
        requested = max(0, round(float(requested_amount or 0)))

        sanctioned = min(requested or ceiling, ceiling)
        return EligibilityLimit(
            ceiling=ceiling,
            requested_amount=requested,
            sanctioned_amount=sanctioned,
            limit_exceeded=requested > ceiling,
        )

    # ========== B. AMORTIZATION ==========
    @staticmethod
    def monthly_rate_from_annual(annual_rate: float) -> float:
        """Effective monthly rate for annual compounding: (1 + R)^(1/12) - 1"""
        return math.pow(1 + annual_rate, 1 / 12) - 1

    @staticmethod
    def calculate_emi(principal: float, monthly_rate: float, months: int) -> Tuple[float, float, float]:
        """
        EMI = P × r × (1+r)^n / ((1+r)^n - 1)
        Returns (emi, total_payable, total_interest), unrounded.
        """
        if not principal or months <= 0:
            return 0.0, 0.0, 0.0
        if monthly_rate == 0:
            return principal / months, float(principal), 0.0

        factor = math.pow(1 + monthly_rate, months)
        emi = principal * monthly_rate * factor / (factor - 1)
        total_payable = emi * months
        return emi, total_payable, total_payable - principal

    @staticmethod
    def tenor_label(months: int) -> str:
        if months % 12 == 0:
            years = months // 12
            return "1 year" if years == 1 else f"{years} years"
        return f"{months} months"

    def build_repayment_plans(self, principal: float) -> List[RepaymentPlan]:
        r = self.monthly_rate_from_annual(self.annual_rate)
        plans = []
        for months in self.tenors:
            emi, total_payable, total_interest = self.calculate_emi(principal, r, months)
            plans.append(RepaymentPlan(
                months=months,
                label=self.tenor_label(months),
                emi=round(emi, 2),
                total_payable=round(total_payable, 2),
                total_interest=round(total_interest, 2),
            ))
        return plans

    def recommended_tenor(self) -> int:
        """Preferred tenor (12) when offered, otherwise the longest"""
        if self.preferred_tenor in self.tenors:
            return self.preferred_tenor
        return self.tenors[-1]

    # ========== C. QUOTES & SELECTION ==========
    def quote_plans(self, applicant: Optional[ApplicantSnapshot]) -> PlanQuote:
        applicant = applicant or ApplicantSnapshot()
        eligibility = self.evaluate_eligibility(
            applicant.employment, applicant.salary, applicant.requested_amount
        )
        return PlanQuote(
            eligibility=eligibility,
            annual_rate=self.annual_rate,
            monthly_rate=self.monthly_rate_from_annual(self.annual_rate),
            plans=self.build_repayment_plans(eligibility.sanctioned_amount),
            recommended_months=self.recommended_tenor(),
        )

    @staticmethod
    def select_plan(quote: PlanQuote, months: int) -> SelectedPlanRecord:
        plan = quote.plan_for(months)
        if plan is None:
            raise UnknownTenorError(months)

        return SelectedPlanRecord(
            loan_amount=quote.eligibility.sanctioned_amount,
            months=plan.months,
            annual_rate=round(quote.annual_rate * 100, 4),
            emi=plan.emi,
            total_payable=plan.total_payable,
            total_interest=plan.total_interest,
        )

    def amortization_schedule(self, principal: float, months: int) -> List[ScheduleRow]:
        """
        Month-by-month split of each EMI into interest and principal.
        The last row clears whatever balance rounding left behind.
        """
        if principal <= 0 or months <= 0:
            return []

        r = self.monthly_rate_from_annual(self.annual_rate)
        emi, _, _ = self.calculate_emi(principal, r, months)
        balance = float(principal)
        rows = []

        for month in range(1, months + 1):
            interest = balance * r
            principal_part = emi - interest
            if month == months:
                principal_part = balance
            closing = max(balance - principal_part, 0.0)

            rows.append(ScheduleRow(
                month=month,
                opening_balance=round(balance, 2),
                emi=round(interest + principal_part, 2),
                interest=round(interest, 2),
                principal=round(principal_part, 2),
                closing_balance=round(closing, 2),
            ))
            balance = closing

        return rows
