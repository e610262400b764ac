# quickloan/services/session_store.py
"""
Session-scoped key/value store.
One instance per applicant session, injected into every step and cleared at the end.
No transactions: the last write for a key wins, and re-writing the same value is harmless.
"""

import copy
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from pydantic import ValidationError

from quickloan.models.loan_schemas import (
    ApplicantSnapshot, ApplicationRecord, CreditAssessment, LoanAgreement, SelectedPlanRecord
)
from quickloan.services.errors import MissingUpstreamData, StorageUnavailable

logger = logging.getLogger(__name__)

# Well-known keys
APPLICATION_KEY = "loanApplication"
CREDIT_ASSESSMENT_KEY = "creditAssessment"
DOCUMENT_STATUS_KEY = "documentStatuses"
SELECTED_PLAN_KEY = "selectedPlan"
SANCTIONED_AMOUNT_KEY = "sanctionedAmount"
AGREEMENT_KEY = "loanAgreement"


class SessionStore(ABC):
    """get/set surface shared by every backend"""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...


class InMemorySessionStore(SessionStore):
    """Dict-backed store; values are deep-copied in and out"""

    def __init__(self):
        self._data: Dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def keys(self):
        return list(self._data)


class ResilientSessionStore(SessionStore):
    """
    Wraps a backend that may raise StorageUnavailable.
    On the first failure the session continues in memory only.
    """

    def __init__(self, backend: SessionStore):
        self._backend = backend
        self._fallback = InMemorySessionStore()
        self.degraded = False

    def _degrade(self, action: str, key: Optional[str], error: Exception):
        logger.warning(f"⚠️ Session store {action} failed for '{key}' ({error}). Continuing in memory only.")
        self.degraded = True

    def get(self, key: str, default: Any = None) -> Any:
        if not self.degraded:
            try:
                return self._backend.get(key, default)
            except StorageUnavailable as e:
                self._degrade("read", key, e)
        return self._fallback.get(key, default)

    def set(self, key: str, value: Any) -> None:
        if not self.degraded:
            try:
                self._backend.set(key, value)
                return
            except StorageUnavailable as e:
                self._degrade("write", key, e)
        self._fallback.set(key, value)

    def delete(self, key: str) -> None:
        if not self.degraded:
            try:
                self._backend.delete(key)
                return
            except StorageUnavailable as e:
                self._degrade("delete", key, e)
        self._fallback.delete(key)

    def clear(self) -> None:
        if not self.degraded:
            try:
                self._backend.clear()
            except StorageUnavailable as e:
                self._degrade("clear", None, e)
        self._fallback.clear()


# ========== TYPED WRITERS ==========
def write_model(store: SessionStore, key: str, model) -> None:
    store.set(key, model.model_dump(mode="json"))


# ========== TOLERANT READERS ==========
def require(store: SessionStore, key: str, model_cls):
    """Strict read: raises MissingUpstreamData when the record is absent or unreadable"""
    raw = store.get(key)
    if raw is None:
        raise MissingUpstreamData(key)
    try:
        return model_cls.model_validate(raw)
    except ValidationError as e:
        raise MissingUpstreamData(key) from e


def _read_or_none(store: SessionStore, key: str, model_cls):
    try:
        return require(store, key, model_cls)
    except MissingUpstreamData:
        logger.warning(f"Missing upstream record '{key}', using defaults")
        return None


def read_application(store: SessionStore) -> Optional[ApplicationRecord]:
    return _read_or_none(store, APPLICATION_KEY, ApplicationRecord)


def read_applicant(store: SessionStore) -> ApplicantSnapshot:
    """Applicant snapshot, or a placeholder applicant"""
    record = read_application(store)
    if record is None:
        return ApplicantSnapshot()
    return ApplicantSnapshot.from_profile(record.profile)


def read_credit_assessment(store: SessionStore) -> Optional[CreditAssessment]:
    return _read_or_none(store, CREDIT_ASSESSMENT_KEY, CreditAssessment)


def read_selected_plan(store: SessionStore) -> Optional[SelectedPlanRecord]:
    return _read_or_none(store, SELECTED_PLAN_KEY, SelectedPlanRecord)


def read_sanctioned_amount(store: SessionStore) -> float:
    """Stored sanctioned amount -> selected plan's amount -> 0"""
    raw = store.get(SANCTIONED_AMOUNT_KEY)
    try:
        if raw is not None and float(raw) >= 0:
            return float(raw)
    except (TypeError, ValueError):
        logger.warning(f"Unreadable sanctioned amount {raw!r}, falling back")

    plan = read_selected_plan(store)
    if plan is not None:
        return plan.loan_amount
    return 0.0


def read_document_statuses(store: SessionStore) -> Dict[str, str]:
    raw = store.get(DOCUMENT_STATUS_KEY)
    return dict(raw) if isinstance(raw, dict) else {}


def read_agreement(store: SessionStore) -> Optional[LoanAgreement]:
    return _read_or_none(store, AGREEMENT_KEY, LoanAgreement)
