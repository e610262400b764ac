"""
Error taxonomy for the loan funnel.
None of these are fatal: callers either show them as field messages or fall back.
"""

from typing import Dict


class LoanFlowError(Exception):
    """Base class for every error raised by the loan services"""


class FieldValidationError(LoanFlowError):
    """One or more intake fields are missing, malformed or out of range"""

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        fields = ", ".join(sorted(self.errors))
        super().__init__(f"Invalid field(s): {fields}")


class CollateralPairingError(LoanFlowError):
    """Collateral name and proof must be supplied together"""

    def __init__(self, message: str = "Both collateral name and proof document are required when providing collateral."):
        super().__init__(message)


class StorageUnavailable(LoanFlowError):
    """A session store backend could not read or write"""


class MissingUpstreamData(LoanFlowError):
    """A later step was reached without the record an earlier step writes"""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Missing upstream record: {key}")


class StageTransitionError(LoanFlowError):
    """Event does not apply to the current stage"""

    def __init__(self, stage, event):
        self.stage = stage
        self.event = event
        super().__init__(f"Cannot apply '{getattr(event, 'value', event)}' in stage '{getattr(stage, 'value', stage)}'")


class UnknownTenorError(LoanFlowError):
    def __init__(self, months: int):
        self.months = months
        super().__init__(f"No repayment plan offered for {months} months")


class SessionNotFound(LoanFlowError):
    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")


class SessionClosed(LoanFlowError):
    """The session was abandoned; nothing more may be written"""
