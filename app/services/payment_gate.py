"""Payment Verification Gate - time-window checks at submission and approval"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from app.config import settings


@dataclass(frozen=True)
class GateDecision:
    """Outcome of a window check. A rejected decision always carries a reason."""
    accepted: bool
    reason: Optional[str] = None

    @property
    def rejected(self) -> bool:
        return not self.accepted


ACCEPTED = GateDecision(accepted=True)


def format_boundary(value: datetime) -> str:
    return value.strftime(settings.ENROLLMENT_DATE_FORMAT)


def is_within_window(batch, now: datetime) -> bool:
    """Inclusive at both ends: a request exactly at enroll_end is still on time."""
    return batch.enroll_start <= now <= batch.enroll_end


def evaluate_submission(batch, now: datetime) -> GateDecision:
    """Decide whether a payment submitted at `now` may go to admin review."""
    if now < batch.enroll_start:
        return GateDecision(
            accepted=False,
            reason=(
                "Payment submitted before enrollment period. "
                f"Enrollment starts on {format_boundary(batch.enroll_start)}"
            ),
        )
    if now > batch.enroll_end:
        return GateDecision(
            accepted=False,
            reason=f"Payment submitted after enrollment period ended on {format_boundary(batch.enroll_end)}",
        )
    return ACCEPTED


def evaluate_approval(batch, now: datetime) -> GateDecision:
    """
    Re-check the window when an admin approves.

    An on-time submission approved after enroll_end is auto-rejected.
    """
    if now > batch.enroll_end:
        return GateDecision(
            accepted=False,
            reason=f"Auto-rejected by system: Enrollment period ended on {format_boundary(batch.enroll_end)}",
        )
    return ACCEPTED
