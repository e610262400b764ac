from .profile_validator import validate_profile, collect_profile_errors, generate_conversation_id
from .credit_score import score, assess_credit, categorize
from .document_resolver import required_documents, document_checklist
from .eligibility_service import EligibilityService
from .agreement_service import AgreementIssuer, make_token, validate_collateral, load_agreement
from .session_store import SessionStore, InMemorySessionStore, ResilientSessionStore
from .stage_machine import StageMachine
from .loan_session import LoanSession, SessionManager

__all__ = [
    'validate_profile',
    'collect_profile_errors',
    'generate_conversation_id',
    'score',
    'assess_credit',
    'categorize',
    'required_documents',
    'document_checklist',
    'EligibilityService',
    'AgreementIssuer',
    'make_token',
    'validate_collateral',
    'load_agreement',
    'SessionStore',
    'InMemorySessionStore',
    'ResilientSessionStore',
    'StageMachine',
    'LoanSession',
    'SessionManager',
]
