"""Agreement issuance, tokens and collateral pairing."""

import re
from datetime import datetime

import pytest

from quickloan.models.loan_schemas import PLACEHOLDER, Collateral, ProofDescriptor
from quickloan.services.agreement_service import (
    AgreementIssuer, load_agreement, make_token, validate_collateral
)
from quickloan.services.errors import CollateralPairingError, FieldValidationError
from quickloan.services.session_store import (
    AGREEMENT_KEY, SANCTIONED_AMOUNT_KEY, InMemorySessionStore
)

TOKEN_RE = re.compile(r"^\d{8}-\d{6}-[0-9A-F]{4}$")
PROOF = ProofDescriptor(file_name="rc_book.pdf", content_type="application/pdf", size=20480)


def test_token_format():
    token = make_token(datetime(2026, 3, 7, 9, 5, 1))
    assert TOKEN_RE.match(token)
    assert token.startswith("20260307-090501-")


def test_tokens_sort_by_time():
    earlier = make_token(datetime(2026, 3, 7, 9, 5, 1))
    later = make_token(datetime(2026, 3, 7, 9, 5, 2))
    assert earlier[:15] < later[:15]


def test_collateral_pairing():
    assert validate_collateral(None, None) is None
    assert validate_collateral("  ", None) is None

    collateral = validate_collateral("Honda City 2018", PROOF)
    assert collateral.name == "Honda City 2018"
    assert collateral.proof.file_name == "rc_book.pdf"

    with pytest.raises(CollateralPairingError):
        validate_collateral("Honda City 2018", None)
    with pytest.raises(CollateralPairingError):
        validate_collateral("", PROOF)


def test_collateral_without_proof_creates_nothing():
    store = InMemorySessionStore()
    issuer = AgreementIssuer(store)

    with pytest.raises(CollateralPairingError):
        issuer.issue(True, collateral_name="Flat in Pune")

    assert store.get(AGREEMENT_KEY) is None


def test_acknowledgement_required():
    store = InMemorySessionStore()

    with pytest.raises(FieldValidationError) as exc:
        AgreementIssuer(store).issue(False)

    assert "acknowledged" in exc.value.errors
    assert store.get(AGREEMENT_KEY) is None


def test_two_issuances_get_distinct_tokens():
    store = InMemorySessionStore()
    issuer = AgreementIssuer(store)
    now = datetime(2026, 3, 7, 9, 5, 1)

    first = issuer.issue(True, now=now)
    second = issuer.issue(True, now=now)

    assert first.token != second.token
    assert load_agreement(store).token == second.token


def test_agreement_snapshot_with_defaults():
    store = InMemorySessionStore()
    store.set(SANCTIONED_AMOUNT_KEY, 250000)

    agreement = AgreementIssuer(store).issue(True, "Honda City 2018", PROOF)

    assert agreement.sanctioned_amount == 250000
    assert agreement.applicant.name == PLACEHOLDER
    assert agreement.plan is None
    assert agreement.collateral.name == "Honda City 2018"
    assert store.get(AGREEMENT_KEY)["token"] == agreement.token


def test_agreement_is_immutable():
    agreement = AgreementIssuer(InMemorySessionStore()).issue(True)
    with pytest.raises(Exception):
        agreement.sanctioned_amount = 1


def test_record_uses_prevalidated_collateral():
    store = InMemorySessionStore()
    issuer = AgreementIssuer(store)

    agreement = issuer.record(Collateral(name="Honda City 2018", proof=PROOF))

    assert TOKEN_RE.match(agreement.token)
    assert agreement.collateral.proof.file_name == "rc_book.pdf"
    assert agreement.token in issuer.issued_tokens
    assert load_agreement(store) == agreement
