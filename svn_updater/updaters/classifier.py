"""Deterministic classification of checkout failures."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..scm.interface import ErrorKind, SVNClientError


class CheckoutOutcome(Enum):
    SUCCESS = "success"
    REPORTED_FAILURE = "reported_failure"
    INTERRUPTED = "interrupted"
    FATAL = "fatal"


@dataclass(frozen=True)
class FailureClassification:
    """Normalized failure classification result."""

    outcome: CheckoutOutcome
    reason_code: str
    message: str


def is_authentication_failure(error: SVNClientError) -> bool:
    """Whether an authentication failure caused `error`, directly or via its cause chain."""
    if error.cause_kind is ErrorKind.AUTHENTICATION:
        return True
    seen = set()
    current: Optional[BaseException] = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, SVNClientError) and current.kind is ErrorKind.AUTHENTICATION:
            return True
        current = current.__cause__
    return False


def classify_checkout_failure(error: SVNClientError) -> FailureClassification:
    """Map a client error to the outcome the checkout task surfaces.

    - cancelled because authentication failed: reported in the log, no raise
    - cancelled for any other reason: interruption
    - anything else: fatal I/O failure
    """
    if error.kind is ErrorKind.CANCELLED:
        if is_authentication_failure(error):
            return FailureClassification(
                outcome=CheckoutOutcome.REPORTED_FAILURE,
                reason_code="authentication_failed",
                message=str(error),
            )
        return FailureClassification(
            outcome=CheckoutOutcome.INTERRUPTED,
            reason_code="cancelled",
            message=str(error),
        )

    return FailureClassification(
        outcome=CheckoutOutcome.FATAL,
        reason_code=f"client_{error.kind.value}",
        message=str(error),
    )
