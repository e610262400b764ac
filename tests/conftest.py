import pytest
from fastapi.testclient import TestClient

from quickloan.main import create_app
from quickloan.services.eligibility_service import EligibilityService
from quickloan.services.loan_session import LoanSession, SessionManager

NO_DELAYS = dict(upload_delay=(0, 0), kyc_seconds=0, collateral_delay=(0, 0))


@pytest.fixture
def salaried_form():
    return {
        "name": "Asha Verma",
        "age": "29",
        "mobile": "9876543210",
        "address": "12 MG Road, Pune",
        "pan": "abcde1234f",
        "aadhaar": "123412341234",
        "employment": "Salaried Employee",
        "salary": "50000",
        "requested_amount": "300000",
        "purpose": "Home renovation",
    }


@pytest.fixture
def engine():
    return EligibilityService(annual_rate=0.14, tenors=[6, 12, 24, 36, 60], preferred_tenor=12)


@pytest.fixture
def session(engine):
    return LoanSession(engine=engine, **NO_DELAYS)


@pytest.fixture
def client(engine):
    app = create_app(SessionManager(engine=engine, **NO_DELAYS))
    with TestClient(app) as c:
        yield c
