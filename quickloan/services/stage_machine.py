# quickloan/services/stage_machine.py
"""Funnel stage progression: explicit events forward, back navigation to reached stages."""

import logging
from typing import Dict, List, Tuple

from quickloan.models.loan_schemas import LoanStage, StageEvent
from quickloan.services.errors import StageTransitionError

logger = logging.getLogger(__name__)

STAGE_ORDER: List[LoanStage] = list(LoanStage)

TRANSITIONS: Dict[Tuple[LoanStage, StageEvent], LoanStage] = {
    (LoanStage.ENTRY, StageEvent.APPLICATION_STARTED): LoanStage.NEEDS,
    (LoanStage.NEEDS, StageEvent.INTAKE_SUBMITTED): LoanStage.PREQUALIFICATION,
    (LoanStage.PREQUALIFICATION, StageEvent.IDENTITY_VERIFIED): LoanStage.ELIGIBILITY,
    (LoanStage.ELIGIBILITY, StageEvent.ELIGIBILITY_ASSESSED): LoanStage.OFFER,
    (LoanStage.OFFER, StageEvent.PLAN_SELECTED): LoanStage.DOCUMENTS,
    (LoanStage.DOCUMENTS, StageEvent.DOCUMENTS_UPLOADED): LoanStage.APPROVAL,
    (LoanStage.APPROVAL, StageEvent.TERMS_ACKNOWLEDGED): LoanStage.SANCTION,
}


def stage_index(stage: LoanStage) -> int:
    return STAGE_ORDER.index(LoanStage(stage))


class StageMachine:
    def __init__(self, stage: LoanStage = LoanStage.ENTRY):
        self.stage = LoanStage(stage)
        self.furthest = self.stage

    @property
    def is_terminal(self) -> bool:
        return self.stage == LoanStage.SANCTION

    def can_advance(self, event: StageEvent) -> bool:
        return (self.stage, StageEvent(event)) in TRANSITIONS

    def advance(self, event: StageEvent) -> LoanStage:
        """Apply a completion event; anything not valid here is refused"""
        event = StageEvent(event)
        target = TRANSITIONS.get((self.stage, event))
        if target is None:
            raise StageTransitionError(self.stage, event)

        logger.info(f"Stage {self.stage.value} -> {target.value} ({event.value})")
        self.stage = target
        if stage_index(target) > stage_index(self.furthest):
            self.furthest = target
        return target

    def go_back(self, stage: LoanStage) -> LoanStage:
        """Return to an earlier stage. Sanction is final."""
        stage = LoanStage(stage)
        if self.is_terminal or stage_index(stage) >= stage_index(self.stage):
            raise StageTransitionError(self.stage, f"back to {stage.value}")

        logger.info(f"Stage {self.stage.value} -> {stage.value} (back)")
        self.stage = stage
        return stage

    def has_reached(self, stage: LoanStage) -> bool:
        return stage_index(stage) <= stage_index(self.furthest)

    def is_at_or_past(self, stage: LoanStage) -> bool:
        """Current position, not the furthest one reached"""
        return stage_index(stage) <= stage_index(self.stage)

    def progress(self) -> float:
        return round(stage_index(self.stage) / (len(STAGE_ORDER) - 1), 4)
