# quickloan/routers/applications.py
"""
Loan Application API Endpoints.
Thin HTTP surface over LoanSession: one session per applicant, every step
gated by the stage machine.
"""

import logging
from fastapi import APIRouter, HTTPException, Depends, Request
from typing import List

from quickloan.models.loan_schemas import (
    CreditAssessment, DocumentRequirement, LoanAgreement, PlanQuote,
    ScheduleRow, SelectedPlanRecord
)
from quickloan.models.schemas import (
    AgreementRequest, ApplicationRequest, ApplicationResponse, BackRequest,
    DocumentUploadRequest, DocumentUploadResponse, KycResponse,
    PlanSelectionRequest, SessionCreated, StageResponse
)
from quickloan.services.errors import (
    CollateralPairingError, FieldValidationError, LoanFlowError, SessionClosed,
    SessionNotFound, StageTransitionError, UnknownTenorError
)
from quickloan.services.loan_session import LoanSession, SessionManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/applications", tags=["applications"])


def get_manager(request: Request) -> SessionManager:
    return request.app.state.sessions


def get_session(session_id: str, manager: SessionManager = Depends(get_manager)) -> LoanSession:
    try:
        return manager.get(session_id)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Session not found")


def _http_error(e: LoanFlowError) -> HTTPException:
    """Map a service error to its HTTP status"""
    if isinstance(e, FieldValidationError):
        return HTTPException(status_code=422, detail={"errors": e.errors})
    if isinstance(e, (CollateralPairingError, UnknownTenorError)):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, StageTransitionError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, (SessionNotFound, SessionClosed)):
        return HTTPException(status_code=404, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


@router.post("", response_model=SessionCreated, status_code=201)
async def create_session(manager: SessionManager = Depends(get_manager)):
    """Open a new applicant session"""
    session = manager.create()
    return SessionCreated(session_id=session.session_id, stage=session.stage)


@router.get("/{session_id}/stage", response_model=StageResponse)
async def get_stage(session: LoanSession = Depends(get_session)):
    return StageResponse(**session.summary())


@router.post("/{session_id}/start", response_model=StageResponse)
async def start_application(session: LoanSession = Depends(get_session)):
    try:
        session.start()
        return StageResponse(**session.summary())
    except LoanFlowError as e:
        raise _http_error(e)


@router.post("/{session_id}/profile", response_model=ApplicationResponse)
async def submit_profile(request: ApplicationRequest, session: LoanSession = Depends(get_session)):
    """
    Validate the intake form.
    422 lists every invalid field at once.
    """
    try:
        record, documents = session.submit_application(request.model_dump())
        return ApplicationResponse(
            conversation_id=record.conversation_id,
            stage=session.stage,
            required_documents=documents,
        )
    except LoanFlowError as e:
        raise _http_error(e)
    except Exception as e:
        logger.exception(f"Error submitting application: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{session_id}/documents", response_model=List[DocumentRequirement])
async def get_required_documents(session: LoanSession = Depends(get_session)):
    return session.required_documents()


@router.post("/{session_id}/kyc", response_model=KycResponse)
async def verify_kyc(session: LoanSession = Depends(get_session)):
    """Run simulated KYC processing and reveal the credit score"""
    try:
        assessment = await session.verify_identity()
        return KycResponse(stage=session.stage, assessment=assessment)
    except LoanFlowError as e:
        raise _http_error(e)
    except Exception as e:
        logger.exception(f"Error in KYC verification: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{session_id}/credit-score", response_model=CreditAssessment)
async def get_credit_score(session: LoanSession = Depends(get_session)):
    try:
        return session.credit_assessment()
    except LoanFlowError as e:
        raise _http_error(e)


@router.get("/{session_id}/plans", response_model=PlanQuote)
async def get_plans(session: LoanSession = Depends(get_session)):
    """Eligibility ceiling, sanctioned amount and one quote per tenor"""
    try:
        return session.assess_eligibility()
    except LoanFlowError as e:
        raise _http_error(e)
    except Exception as e:
        logger.exception(f"Error quoting plans: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{session_id}/plans/select", response_model=SelectedPlanRecord)
async def select_plan(request: PlanSelectionRequest, session: LoanSession = Depends(get_session)):
    try:
        return session.choose_plan(request.months)
    except LoanFlowError as e:
        raise _http_error(e)


@router.get("/{session_id}/plans/schedule", response_model=List[ScheduleRow])
async def get_schedule(session: LoanSession = Depends(get_session)):
    """Month-by-month amortization of the selected plan (empty before selection)"""
    return session.repayment_schedule()


@router.post("/{session_id}/documents/upload", response_model=DocumentUploadResponse)
async def upload_documents(request: DocumentUploadRequest, session: LoanSession = Depends(get_session)):
    try:
        statuses, complete = await session.upload_documents(request.files)
        return DocumentUploadResponse(stage=session.stage, statuses=statuses, complete=complete)
    except LoanFlowError as e:
        raise _http_error(e)
    except Exception as e:
        logger.exception(f"Error uploading documents: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{session_id}/agreement", response_model=LoanAgreement, status_code=201)
async def create_agreement(request: AgreementRequest, session: LoanSession = Depends(get_session)):
    """Acknowledge terms and issue a new agreement token"""
    try:
        return await session.acknowledge_terms(
            acknowledged=request.acknowledged,
            collateral_name=request.collateral_name,
            collateral_proof=request.collateral_proof,
        )
    except LoanFlowError as e:
        raise _http_error(e)
    except Exception as e:
        logger.exception(f"Error issuing agreement: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{session_id}/agreement", response_model=LoanAgreement)
async def get_agreement(session: LoanSession = Depends(get_session)):
    agreement = session.agreement()
    if agreement is None:
        raise HTTPException(status_code=404, detail="No agreement issued yet")
    return agreement


@router.post("/{session_id}/back", response_model=StageResponse)
async def go_back(request: BackRequest, session: LoanSession = Depends(get_session)):
    try:
        session.go_back(request.stage)
        return StageResponse(**session.summary())
    except LoanFlowError as e:
        raise _http_error(e)


@router.delete("/{session_id}", status_code=204)
async def close_session(session_id: str, manager: SessionManager = Depends(get_manager)):
    """Abandon the session; pending simulated work is dropped"""
    try:
        manager.close(session_id)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Session not found")
