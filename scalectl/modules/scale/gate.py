"""Phase gating and resume handling.

The gate decides, for each phase in turn, whether it is skipped because it
lies before the resume cursor, runs unattended, or needs the operator's
confirmation. The cursor applies once: as soon as a phase at or after it is
admitted the cursor is cleared, and later phases are governed only by the
unattended flag.
"""
import logging
from typing import Callable, Dict

from . import output
from .models import Confirmation, GateDecision, Phase, PhaseId, PhaseStatus, RunState

logger = logging.getLogger("scale.gate")

Prompt = Callable[[str], bool]


class PhaseGate:
    """Admits phases according to a RunState."""

    def __init__(self, state: RunState, prompt: Prompt):
        self.state = state
        self.prompt = prompt
        self.status: Dict[PhaseId, PhaseStatus] = {p: PhaseStatus.NOT_STARTED for p in PhaseId}

    def evaluate(self, phase_id: PhaseId) -> GateDecision:
        """Decide what happens to a phase. Clears the resume cursor unless skipping."""
        cursor = self.state.start_phase
        if cursor is not None and phase_id < cursor:
            return GateDecision.SKIP
        if cursor is not None:
            logger.debug(f"Resuming at phase {phase_id.value}")
            self.state.start_phase = None
        if self.state.assume_yes:
            return GateDecision.PROCEED_UNATTENDED
        return GateDecision.PROCEED_AFTER_CONFIRMATION

    def confirm(self, phase: Phase) -> Confirmation:
        """Gate a phase, asking the operator where needed."""
        decision = self.evaluate(phase.id)
        if decision is GateDecision.SKIP:
            output.info(f"[skip] Phase {phase.id.value}")
            self.status[phase.id] = PhaseStatus.SKIPPED
            return Confirmation.SKIP

        output.info()
        output.info(f"PHASE {phase.id.value}: {phase.description}")
        if decision is GateDecision.PROCEED_UNATTENDED:
            output.info("[auto-yes] Proceeding …")
        else:
            self.status[phase.id] = PhaseStatus.AWAITING_CONFIRMATION
            if not self.prompt("Continue?"):
                self.status[phase.id] = PhaseStatus.DECLINED
                return Confirmation.ABORT
        self.status[phase.id] = PhaseStatus.RUNNING
        return Confirmation.RUN

    def confirm_next(self, phase: Phase) -> Confirmation:
        """Ask whether to move on once a phase has completed."""
        self.status[phase.id] = PhaseStatus.COMPLETED
        if self.state.assume_yes:
            output.info("[auto-yes] Continuing …")
            return Confirmation.RUN
        if not self.prompt("Proceed to the next phase?"):
            return Confirmation.ABORT
        return Confirmation.RUN
