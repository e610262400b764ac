"""Session store: last write wins, degraded mode, tolerant readers."""

from quickloan.models.loan_schemas import PLACEHOLDER, SelectedPlanRecord
from quickloan.services.errors import StorageUnavailable
from quickloan.services.session_store import (
    SANCTIONED_AMOUNT_KEY, SELECTED_PLAN_KEY, InMemorySessionStore, ResilientSessionStore,
    SessionStore, read_agreement, read_applicant, read_credit_assessment,
    read_sanctioned_amount, read_selected_plan, write_model
)


class FlakyStore(SessionStore):
    """Backend that starts failing after a number of successful writes"""

    def __init__(self, ok_writes=0):
        self.inner = InMemorySessionStore()
        self.ok_writes = ok_writes

    def get(self, key, default=None):
        if self.ok_writes <= 0:
            raise StorageUnavailable("read failed")
        return self.inner.get(key, default)

    def set(self, key, value):
        if self.ok_writes <= 0:
            raise StorageUnavailable("quota exceeded")
        self.ok_writes -= 1
        self.inner.set(key, value)

    def delete(self, key):
        self.inner.delete(key)

    def clear(self):
        self.inner.clear()


def test_last_write_wins_and_rewrite_is_idempotent():
    store = InMemorySessionStore()
    store.set("k", {"a": 1})
    store.set("k", {"a": 2})
    store.set("k", {"a": 2})

    assert store.get("k") == {"a": 2}
    assert store.get("missing", "default") == "default"


def test_values_are_copied():
    store = InMemorySessionStore()
    value = {"a": [1]}
    store.set("k", value)
    value["a"].append(2)

    assert store.get("k") == {"a": [1]}


def test_clear():
    store = InMemorySessionStore()
    store.set("k", 1)
    store.clear()
    assert store.keys() == []


def test_degrades_to_memory_on_failure():
    store = ResilientSessionStore(FlakyStore(ok_writes=1))
    store.set("first", 1)
    assert not store.degraded

    store.set("second", 2)  # backend fails here
    assert store.degraded
    assert store.get("second") == 2

    store.set("second", 3)
    assert store.get("second") == 3


def test_degraded_read_falls_back_to_memory():
    store = ResilientSessionStore(FlakyStore(ok_writes=0))
    assert store.get("anything", "fallback") == "fallback"
    assert store.degraded


def test_missing_records_use_defaults():
    store = InMemorySessionStore()

    applicant = read_applicant(store)
    assert applicant.name == PLACEHOLDER
    assert applicant.salary == 0

    assert read_sanctioned_amount(store) == 0
    assert read_selected_plan(store) is None
    assert read_credit_assessment(store) is None
    assert read_agreement(store) is None


def test_corrupt_record_treated_as_missing():
    store = InMemorySessionStore()
    store.set(SELECTED_PLAN_KEY, {"months": "twelve"})
    store.set(SANCTIONED_AMOUNT_KEY, "lots")

    assert read_selected_plan(store) is None
    assert read_sanctioned_amount(store) == 0


def test_sanctioned_amount_falls_back_to_plan():
    store = InMemorySessionStore()
    plan = SelectedPlanRecord(loan_amount=80000, months=12, annual_rate=14.0, emi=7151.9, total_payable=85823.0)
    write_model(store, SELECTED_PLAN_KEY, plan)

    assert read_sanctioned_amount(store) == 80000

    store.set(SANCTIONED_AMOUNT_KEY, 75000)
    assert read_sanctioned_amount(store) == 75000
