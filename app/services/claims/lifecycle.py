"""Claim lifecycle state machine.

    RECEIVED -> VALIDATING -> LIQUIDATION -> PAYMENT -> CLOSED
    RECEIVED | VALIDATING -> INVALID

Entering LIQUIDATION is the "send to insurer" action and stamps
``sent_to_insurer_at``. CLOSED and INVALID are terminal and stamp
``closed_at``. The functions here mutate the claim object passed in and
never touch storage.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, FrozenSet, Optional

from app.core.exceptions import ClaimStateError, ValidationError
from app.schemas.claims import ClaimState
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

TERMINAL_STATES: FrozenSet[ClaimState] = frozenset({ClaimState.CLOSED, ClaimState.INVALID})

ALLOWED_TRANSITIONS: Dict[ClaimState, FrozenSet[ClaimState]] = {
    ClaimState.RECEIVED: frozenset({ClaimState.VALIDATING, ClaimState.LIQUIDATION, ClaimState.INVALID}),
    ClaimState.VALIDATING: frozenset({ClaimState.LIQUIDATION, ClaimState.INVALID}),
    ClaimState.LIQUIDATION: frozenset({ClaimState.PAYMENT}),
    ClaimState.PAYMENT: frozenset({ClaimState.CLOSED}),
    ClaimState.CLOSED: frozenset(),
    ClaimState.INVALID: frozenset(),
}


def is_deadline_tracking_active(state: ClaimState) -> bool:
    """Deadline clocks run for every non-terminal state."""
    return ClaimState(state) not in TERMINAL_STATES


class ClaimLifecycle:
    """Validates and applies claim state transitions."""

    is_deadline_tracking_active = staticmethod(is_deadline_tracking_active)

    @staticmethod
    def can_transition(current: ClaimState, target: ClaimState) -> bool:
        return ClaimState(target) in ALLOWED_TRANSITIONS[ClaimState(current)]

    def transition(
        self,
        claim,
        next_state: ClaimState,
        now: datetime,
        reason: Optional[str] = None,
    ):
        """Move a claim to ``next_state``.

        Args:
            claim: Claim record (ORM instance or any object with the claim attributes)
            next_state: Target state
            now: Timestamp used for the stamps this transition sets
            reason: Mandatory when the target is INVALID

        Returns:
            The same claim object, mutated

        Raises:
            ClaimStateError: The transition is not allowed from the current state
        """
        current = ClaimState(claim.state)
        next_state = ClaimState(next_state)

        if current in TERMINAL_STATES:
            raise ClaimStateError(
                f"Claim {claim.case_code} is {current.value}; no further transitions are allowed",
                current_state=current.value,
                requested_state=next_state.value,
            )

        if current == next_state:
            return claim

        if not self.can_transition(current, next_state):
            raise ClaimStateError(
                f"Cannot move claim {claim.case_code} from {current.value} to {next_state.value}",
                current_state=current.value,
                requested_state=next_state.value,
            )

        if next_state == ClaimState.INVALID:
            if not reason or not reason.strip():
                raise ClaimStateError(
                    "A reason is required to mark a claim as invalid",
                    current_state=current.value,
                    requested_state=next_state.value,
                )
            claim.invalid_reason = reason.strip()
            claim.closed_at = now
        elif next_state == ClaimState.CLOSED:
            claim.closed_at = now
        elif next_state == ClaimState.LIQUIDATION:
            # sent_to_insurer_at only ever goes from null to a value
            if claim.sent_to_insurer_at is None:
                claim.sent_to_insurer_at = now

        claim.state = next_state
        LOGGER.info(f"Claim {claim.case_code}: {current.value} -> {next_state.value}")
        return claim

    def send_to_insurer(self, claim, now: datetime):
        """Hand the case file to the insurer and enter liquidation."""
        if claim.sent_to_insurer_at is not None:
            raise ClaimStateError(
                f"Claim {claim.case_code} was already sent to the insurer",
                current_state=ClaimState(claim.state).value,
                requested_state=ClaimState.LIQUIDATION.value,
            )
        return self.transition(claim, ClaimState.LIQUIDATION, now)

    def invalidate(self, claim, reason: str, now: datetime):
        return self.transition(claim, ClaimState.INVALID, now, reason=reason)

    def close(self, claim, now: datetime):
        return self.transition(claim, ClaimState.CLOSED, now)

    def record_signature(self, claim, received_at: datetime):
        """Record the beneficiary's signed acceptance.

        Only the first signature starts the payment clock; later calls keep it.
        """
        state = ClaimState(claim.state)
        if state not in (ClaimState.LIQUIDATION, ClaimState.PAYMENT):
            raise ClaimStateError(
                f"Signatures are only accepted during liquidation or payment (claim is {state.value})",
                current_state=state.value,
            )
        if claim.signature_received_at is None:
            claim.signature_received_at = received_at
        return claim

    def register_settlement(self, claim, amount: Decimal):
        """Record the settlement amount reported by the insurer."""
        state = ClaimState(claim.state)
        if state != ClaimState.LIQUIDATION:
            raise ClaimStateError(
                f"Settlement can only be registered during liquidation (claim is {state.value})",
                current_state=state.value,
            )
        if amount is None or Decimal(amount) < 0:
            raise ValidationError("Settlement amount must be zero or positive")
        claim.settlement_amount = Decimal(amount)
        return claim
