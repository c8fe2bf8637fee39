from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from pension_api.common.errors import InvalidAction, InvalidDecision
from pension_api.models.pensioner import STATUS_VERIFIED, STATUS_FLAGGED, STATUS_REJECTED
from pension_api.models.verification import (
    METHOD_ADMIN_REVIEW, METHOD_MANUAL_REVIEW, REVIEW_VERIFIED, REVIEW_REJECTED,
)

ADMIN_APPROVAL_VALIDITY = timedelta(days=365)
REVIEW_APPROVAL_YEARS = 3

ADMIN_ACTIONS = ("approve", "flag", "reject")
REVIEW_DECISIONS = ("APPROVE", "REJECT")


@dataclass(frozen=True)
class Decision:
    status: str
    next_due_at: Optional[datetime]
    method: str
    message: str
    decided_at: datetime

    @property
    def is_approval(self) -> bool:
        return self.next_due_at is not None


def add_years(moment: datetime, years: int) -> datetime:
    try:
        return moment.replace(year=moment.year + years)
    except ValueError:
        # 29 Feb rolls over to 1 Mar in a non-leap target year
        return moment.replace(year=moment.year + years, month=3, day=1)


def decide(action: str, reason: Optional[str] = None, now: Optional[datetime] = None) -> Decision:
    """
    Admin decision on a pensioner: approve, flag or reject.

    Only approvals carry a due date (one year out). Raises InvalidAction for
    anything else, before any state is touched.
    """
    now = now or datetime.utcnow()
    if action == "approve":
        return Decision(STATUS_VERIFIED, now + ADMIN_APPROVAL_VALIDITY, METHOD_ADMIN_REVIEW,
                        "Pensioner approved by admin", now)
    if action == "flag":
        return Decision(STATUS_FLAGGED, None, METHOD_ADMIN_REVIEW,
                        f"Pensioner flagged: {reason or 'Suspicious activity detected'}", now)
    if action == "reject":
        return Decision(STATUS_REJECTED, None, METHOD_ADMIN_REVIEW,
                        f"Pensioner rejected: {reason or 'Failed verification'}", now)
    raise InvalidAction("Invalid action", payload={"allowed": list(ADMIN_ACTIONS)})


def decide_review(decision: str, now: Optional[datetime] = None) -> Decision:
    """Officer decision on a queued review. APPROVE renews for three years."""
    now = now or datetime.utcnow()
    d = str(decision or "").strip().upper()
    if d == "APPROVE":
        return Decision(REVIEW_VERIFIED, add_years(now, REVIEW_APPROVAL_YEARS), METHOD_MANUAL_REVIEW,
                        "Review approved by verification officer", now)
    if d == "REJECT":
        return Decision(REVIEW_REJECTED, None, METHOD_MANUAL_REVIEW,
                        "Review rejected by verification officer", now)
    raise InvalidDecision("Invalid decision", payload={"allowed": list(REVIEW_DECISIONS)})


def should_show_due_notification(next_due_at: Optional[datetime], has_seen: bool,
                                 now: Optional[datetime] = None) -> bool:
    if next_due_at is None:
        return False
    now = now or datetime.utcnow()
    return now >= next_due_at and not has_seen
