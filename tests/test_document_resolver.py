"""Required documents per employment tier."""

import pytest

from quickloan.models.loan_schemas import EmploymentTier
from quickloan.services.document_resolver import document_checklist, required_documents


def keys(docs):
    return [d.key for d in docs]


@pytest.mark.parametrize("tier", list(EmploymentTier) + ["", None, 42, "pilot"])
def test_identity_document_always_first(tier):
    docs = required_documents(tier)
    assert docs
    assert docs[0].key == "ID_PROOF"


def test_tier_lists():
    assert keys(required_documents("Student")) == ["ID_PROOF", "STUDENT_ID_CARD", "ADDRESS_PROOF"]
    assert keys(required_documents("Self-employed")) == [
        "ID_PROOF", "BUSINESS_REGISTRATION", "BANK_STATEMENT_6M", "PROFIT_LOSS"
    ]
    assert keys(required_documents("Salaried Employee")) == [
        "ID_PROOF", "EMPLOYMENT_PROOF", "SALARY_SLIP_3M", "BANK_STATEMENT_3M"
    ]
    assert keys(required_documents("unemployed")) == ["ID_PROOF", "CO_APPLICANT_DOC", "ASSET_PROOF"]


@pytest.mark.parametrize("text", ["self employed", "self-employed", "selfemployed", "SELF EMPLOYED", " Self-Employed "])
def test_self_employed_synonyms(text):
    assert required_documents(text) == required_documents("Self-employed")


@pytest.mark.parametrize("tier", ["", None, "Retired", EmploymentTier.UNKNOWN])
def test_unknown_tier_gets_identity_only(tier):
    assert keys(required_documents(tier)) == ["ID_PROOF"]


def test_checklist_statuses():
    docs = required_documents("Student")

    assert document_checklist(docs) == {
        "ID_PROOF": "pending", "STUDENT_ID_CARD": "pending", "ADDRESS_PROOF": "pending"
    }
    assert document_checklist(docs, {"ID_PROOF": "pan.pdf", "ADDRESS_PROOF": "  "}) == {
        "ID_PROOF": "uploaded", "STUDENT_ID_CARD": "no_file", "ADDRESS_PROOF": "no_file"
    }
