"""Typed failures of the commission engine.

Every failure carries a stable ``reason`` code. The HTTP layer and the bulk
resync failure list both key off it, so the UI can tell "add a grid" apart
from "fix the agent record" apart from "fix the policy data".
"""
from typing import Optional


class CommissionError(Exception):
    reason = "commission_error"

    def __init__(self, message: str, policy_id: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.policy_id = policy_id

    def as_dict(self) -> dict:
        return {"reason": self.reason, "detail": self.message}


class NoApplicableGridError(CommissionError):
    """No grid matches product/provider/premium/date. Needs an admin to add or adjust a grid."""
    reason = "no_applicable_grid"


class PartyNotFoundError(CommissionError):
    """The policy declares a source party that does not exist for the tenant."""
    reason = "party_not_found"


class PolicyNotFoundError(CommissionError):
    reason = "policy_not_found"


class ValidationError(CommissionError, ValueError):
    """Malformed input, rejected before any computation or write."""
    reason = "validation_error"


class PersistenceError(CommissionError):
    """Writing the distribution row failed; the previous row is left as it was."""
    reason = "persistence_error"


class ResyncInProgressError(CommissionError):
    reason = "resync_in_progress"


class UnexpectedCommissionError(CommissionError):
    """Wraps a non-commission exception raised while processing one policy."""
    reason = "unexpected_error"
