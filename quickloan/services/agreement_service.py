# quickloan/services/agreement_service.py
"""
Agreement Issuer.
Builds the immutable agreement snapshot, stamps it with a token and writes it
to the session store. Every acknowledgement issues a new token.
"""

import logging
import secrets
from datetime import datetime
from typing import Optional, Set

from quickloan.models.loan_schemas import Collateral, LoanAgreement, ProofDescriptor
from quickloan.services.errors import CollateralPairingError, FieldValidationError
from quickloan.services.session_store import (
    AGREEMENT_KEY, SessionStore, read_applicant, read_agreement,
    read_sanctioned_amount, read_selected_plan, write_model
)

logger = logging.getLogger(__name__)

ACKNOWLEDGEMENT_REQUIRED = "You must acknowledge the Terms & Conditions to continue."


def make_token(now: Optional[datetime] = None) -> str:
    """YYYYMMDD-HHMMSS-XXXX (4 upper-case hex digits). Sorts by issue time."""
    now = now or datetime.now()
    return f"{now.strftime('%Y%m%d-%H%M%S')}-{secrets.token_hex(2).upper()}"


def validate_collateral(name: Optional[str], proof: Optional[ProofDescriptor]) -> Optional[Collateral]:
    """Both present -> Collateral, both absent -> None, one of them -> CollateralPairingError"""
    name = (name or "").strip()
    has_proof = proof is not None and bool(proof.file_name.strip())

    if name and has_proof:
        return Collateral(name=name, proof=proof)
    if name or has_proof:
        raise CollateralPairingError()
    return None


class AgreementIssuer:
    """
    Issues agreements for one session.
    Remembers the tokens it handed out so a same-second suffix clash is redrawn.
    """

    MAX_TOKEN_ATTEMPTS = 16

    def __init__(self, store: SessionStore):
        self.store = store
        self.issued_tokens: Set[str] = set()

    def _unique_token(self, now: datetime) -> str:
        for _ in range(self.MAX_TOKEN_ATTEMPTS):
            token = make_token(now)
            if token not in self.issued_tokens:
                return token
        raise RuntimeError("Could not draw an unused agreement token")

    def issue(
        self,
        acknowledged: bool,
        collateral_name: Optional[str] = None,
        collateral_proof: Optional[ProofDescriptor] = None,
        now: Optional[datetime] = None,
    ) -> LoanAgreement:
        """
        Validate, snapshot and persist a new agreement.
        Nothing is written unless every check passes.
        """
        if not acknowledged:
            raise FieldValidationError({"acknowledged": ACKNOWLEDGEMENT_REQUIRED})

        collateral = validate_collateral(collateral_name, collateral_proof)
        return self.record(collateral, now=now)

    def record(self, collateral: Optional[Collateral] = None, now: Optional[datetime] = None) -> LoanAgreement:
        """Snapshot and persist an agreement whose inputs were already validated"""
        now = now or datetime.now()
        agreement = LoanAgreement(
            token=self._unique_token(now),
            acknowledged_at=now.isoformat(),
            applicant=read_applicant(self.store),
            plan=read_selected_plan(self.store),
            sanctioned_amount=read_sanctioned_amount(self.store),
            collateral=collateral,
        )

        write_model(self.store, AGREEMENT_KEY, agreement)
        self.issued_tokens.add(agreement.token)
        logger.info(f"✅ Agreement issued: {agreement.token} (sanctioned ₹{agreement.sanctioned_amount:,.0f})")
        return agreement


def load_agreement(store: SessionStore) -> Optional[LoanAgreement]:
    return read_agreement(store)
