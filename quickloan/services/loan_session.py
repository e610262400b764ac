# quickloan/services/loan_session.py
"""
One applicant's trip through the funnel.
Owns the session store, the stage machine and any pending simulated operations.
Each step validates first, writes second and advances the stage last.
"""

import asyncio
import logging
import secrets
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

from quickloan.config.settings import settings
from quickloan.models.loan_schemas import (
    ApplicationRecord, CreditAssessment, DocumentRequirement, DocumentStatus,
    LoanAgreement, LoanStage, PlanQuote, ProofDescriptor, ScheduleRow,
    SelectedPlanRecord, StageEvent
)
from quickloan.services.agreement_service import ACKNOWLEDGEMENT_REQUIRED, AgreementIssuer, validate_collateral
from quickloan.services.credit_score import assess_credit
from quickloan.services.document_resolver import required_documents
from quickloan.services.eligibility_service import EligibilityService
from quickloan.services.errors import FieldValidationError, SessionClosed, SessionNotFound, StageTransitionError
from quickloan.services.profile_validator import generate_conversation_id, validate_profile
from quickloan.services.session_store import (
    APPLICATION_KEY, CREDIT_ASSESSMENT_KEY, DOCUMENT_STATUS_KEY, SANCTIONED_AMOUNT_KEY,
    SELECTED_PLAN_KEY, InMemorySessionStore, ResilientSessionStore, SessionStore,
    read_agreement, read_applicant, read_application, read_document_statuses,
    read_selected_plan, write_model
)
from quickloan.services.simulation import simulate_kyc_processing, simulate_latency, simulate_upload
from quickloan.services.stage_machine import StageMachine

logger = logging.getLogger(__name__)


class LoanSession:
    def __init__(
        self,
        session_id: Optional[str] = None,
        store: Optional[SessionStore] = None,
        engine: Optional[EligibilityService] = None,
        upload_delay: Optional[Tuple[float, float]] = None,
        kyc_seconds: Optional[float] = None,
        collateral_delay: Optional[Tuple[float, float]] = None,
    ):
        self.session_id = session_id or secrets.token_hex(8)
        self.store = store if store is not None else ResilientSessionStore(InMemorySessionStore())
        self.machine = StageMachine()
        self.engine = engine or EligibilityService()
        self.issuer = AgreementIssuer(self.store)

        self.upload_delay = upload_delay or (settings.UPLOAD_DELAY_MIN_SECONDS, settings.UPLOAD_DELAY_MAX_SECONDS)
        self.kyc_seconds = settings.KYC_PROCESSING_SECONDS if kyc_seconds is None else kyc_seconds
        self.collateral_delay = collateral_delay or (
            settings.COLLATERAL_UPLOAD_MIN_SECONDS, settings.COLLATERAL_UPLOAD_MAX_SECONDS
        )

        self._pending: Set[asyncio.Future] = set()
        self.closed = False

    # ========== HELPERS ==========
    @property
    def stage(self) -> LoanStage:
        return self.machine.stage

    def _ensure_open(self):
        if self.closed:
            raise SessionClosed(f"Session {self.session_id} is closed")

    def _require(self, event: StageEvent):
        self._ensure_open()
        if not self.machine.can_advance(event):
            raise StageTransitionError(self.stage, event)

    async def _run(self, coro):
        """Track a simulated operation so close() can cancel it"""
        self._ensure_open()
        task = asyncio.ensure_future(coro)
        self._pending.add(task)
        try:
            return await task
        except asyncio.CancelledError as e:
            # Abandoned mid-operation: the result is dropped
            if self.closed:
                raise SessionClosed(f"Session {self.session_id} was closed during a pending operation") from e
            raise
        finally:
            self._pending.discard(task)

    @property
    def pending_operations(self) -> int:
        return len(self._pending)

    # ========== 1. ENTRY / INTAKE ==========
    def start(self) -> LoanStage:
        self._require(StageEvent.APPLICATION_STARTED)
        return self.machine.advance(StageEvent.APPLICATION_STARTED)

    def submit_application(self, raw: Mapping[str, Any]) -> Tuple[ApplicationRecord, List[DocumentRequirement]]:
        """Validate intake, store the application record, resolve the document list"""
        self._require(StageEvent.INTAKE_SUBMITTED)
        profile = validate_profile(raw)

        record = ApplicationRecord(conversation_id=generate_conversation_id(), profile=profile)
        write_model(self.store, APPLICATION_KEY, record)
        self.machine.advance(StageEvent.INTAKE_SUBMITTED)

        logger.info(f"Application {record.conversation_id} submitted ({profile.employment.value})")
        return record, required_documents(profile.employment)

    def application(self) -> Optional[ApplicationRecord]:
        return read_application(self.store)

    def required_documents(self) -> List[DocumentRequirement]:
        return required_documents(read_applicant(self.store).employment)

    # ========== 2. KYC / CREDIT SCORE ==========
    async def verify_identity(self) -> CreditAssessment:
        """Simulated KYC processing, then the credit score"""
        self._require(StageEvent.IDENTITY_VERIFIED)
        await self._run(simulate_kyc_processing(self.kyc_seconds))
        self._ensure_open()

        assessment = assess_credit(read_applicant(self.store))
        write_model(self.store, CREDIT_ASSESSMENT_KEY, assessment)
        self.machine.advance(StageEvent.IDENTITY_VERIFIED)
        return assessment

    def credit_assessment(self) -> CreditAssessment:
        """
        Score revealed by KYC. Read-only; only verify_identity writes it.
        Recomputed from the same seed, so it always matches what was stored.
        """
        self._ensure_open()
        if not self.machine.is_at_or_past(LoanStage.ELIGIBILITY):
            raise StageTransitionError(self.stage, "read credit score")
        return assess_credit(read_applicant(self.store))

    # ========== 3. ELIGIBILITY / OFFER ==========
    def quote(self) -> PlanQuote:
        return self.engine.quote_plans(read_applicant(self.store))

    def assess_eligibility(self) -> PlanQuote:
        """
        Quote every tenor for the sanctioned amount.
        Completes the eligibility stage; later stages may re-read the quote,
        but going back past eligibility hides it until KYC runs again.
        """
        self._ensure_open()
        if not self.machine.is_at_or_past(LoanStage.ELIGIBILITY):
            raise StageTransitionError(self.stage, StageEvent.ELIGIBILITY_ASSESSED)

        quote = self.quote()
        if self.machine.can_advance(StageEvent.ELIGIBILITY_ASSESSED):
            self.machine.advance(StageEvent.ELIGIBILITY_ASSESSED)
        return quote

    def choose_plan(self, months: int) -> SelectedPlanRecord:
        self._require(StageEvent.PLAN_SELECTED)
        selected = self.engine.select_plan(self.quote(), months)

        write_model(self.store, SELECTED_PLAN_KEY, selected)
        self.store.set(SANCTIONED_AMOUNT_KEY, selected.loan_amount)
        self.machine.advance(StageEvent.PLAN_SELECTED)
        return selected

    def selected_plan(self) -> Optional[SelectedPlanRecord]:
        return read_selected_plan(self.store)

    def repayment_schedule(self) -> List[ScheduleRow]:
        plan = self.selected_plan()
        if plan is None:
            return []
        return self.engine.amortization_schedule(plan.loan_amount, plan.months)

    # ========== 4. DOCUMENTS ==========
    async def upload_documents(self, files: Mapping[str, Optional[str]]) -> Tuple[Dict[str, str], bool]:
        """
        Upload each required document concurrently (simulated).
        Statuses are written only after every upload resolves; the stage
        advances only when all required documents are in.
        """
        self._require(StageEvent.DOCUMENTS_UPLOADED)
        required = self.required_documents()
        low, high = self.upload_delay

        results = await self._run(asyncio.gather(*[
            simulate_upload(doc.key, files.get(doc.key) or "", low, high) for doc in required
        ]))
        self._ensure_open()

        # Keep earlier successes when a retry omits a file
        previous = read_document_statuses(self.store)
        statuses = {}
        for doc, status in zip(required, results):
            if status != DocumentStatus.UPLOADED.value and previous.get(doc.key) == DocumentStatus.UPLOADED.value:
                status = DocumentStatus.UPLOADED.value
            statuses[doc.key] = status
        self.store.set(DOCUMENT_STATUS_KEY, statuses)

        complete = all(s == DocumentStatus.UPLOADED.value for s in statuses.values())
        if complete:
            self.machine.advance(StageEvent.DOCUMENTS_UPLOADED)
        return statuses, complete

    def document_statuses(self) -> Dict[str, str]:
        return read_document_statuses(self.store)

    # ========== 5. TERMS / AGREEMENT ==========
    async def acknowledge_terms(
        self,
        acknowledged: bool,
        collateral_name: Optional[str] = None,
        collateral_proof: Optional[ProofDescriptor] = None,
        now: Optional[datetime] = None,
    ) -> LoanAgreement:
        """
        Issue the agreement. Re-acknowledging after sanction issues a fresh token.
        The collateral proof 'upload' completes before anything is written.
        """
        self._ensure_open()
        if self.stage not in (LoanStage.APPROVAL, LoanStage.SANCTION):
            raise StageTransitionError(self.stage, StageEvent.TERMS_ACKNOWLEDGED)

        if not acknowledged:
            raise FieldValidationError({"acknowledged": ACKNOWLEDGEMENT_REQUIRED})
        collateral = validate_collateral(collateral_name, collateral_proof)

        if collateral is not None:
            await self._run(simulate_latency(*self.collateral_delay))
            self._ensure_open()

        agreement = self.issuer.record(collateral, now=now)
        if self.machine.can_advance(StageEvent.TERMS_ACKNOWLEDGED):
            self.machine.advance(StageEvent.TERMS_ACKNOWLEDGED)
        return agreement

    def agreement(self) -> Optional[LoanAgreement]:
        return read_agreement(self.store)

    # ========== NAVIGATION / LIFECYCLE ==========
    def go_back(self, stage: LoanStage) -> LoanStage:
        """Stored artifacts are left untouched"""
        self._ensure_open()
        return self.machine.go_back(stage)

    def close(self) -> None:
        """Abandon the session: cancel pending simulations and clear the store"""
        if self.closed:
            return
        for task in list(self._pending):
            task.cancel()
        self._pending.clear()
        self.store.clear()
        self.closed = True
        logger.info(f"Session {self.session_id} closed")

    def summary(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "stage": self.stage,
            "furthest_stage": self.machine.furthest,
            "progress": self.machine.progress(),
            "is_terminal": self.machine.is_terminal,
        }


class SessionManager:
    """Live sessions for the HTTP layer, keyed by id"""

    def __init__(self, **session_options):
        self._sessions: Dict[str, LoanSession] = {}
        self._options = session_options

    def create(self) -> LoanSession:
        session = LoanSession(**self._options)
        self._sessions[session.session_id] = session
        logger.info(f"Session {session.session_id} created")
        return session

    def get(self, session_id: str) -> LoanSession:
        session = self._sessions.get(session_id)
        if session is None or session.closed:
            raise SessionNotFound(session_id)
        return session

    def close(self, session_id: str) -> None:
        session = self.get(session_id)
        session.close()
        del self._sessions[session_id]

    def close_all(self) -> None:
        for session in list(self._sessions.values()):
            session.close()
        self._sessions.clear()

    def __len__(self) -> int:
        return len(self._sessions)
