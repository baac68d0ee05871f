"""Pure subscription status logic.

Derives the effective status of a subscription from its stored state, the app's
grace period and an explicit reference time. Nothing here reads the clock or the
database; the scheduled sweeps are what persist these transitions.
"""

from typing import Optional, Protocol, Union

from credibill.core.datetime_utils import MS_PER_DAY
from credibill.core.shared_models import SubscriptionStatus


class SubscriptionState(Protocol):
    """The stored fields status resolution reads. Models and schemas both satisfy it."""

    status: str
    trial_ends_at: Optional[int]
    current_period_end: Optional[int]


# Computed statuses that still grant access to the subscribed service
ACCESS_STATUSES = frozenset(
    {
        SubscriptionStatus.ACTIVE,
        SubscriptionStatus.TRIALING,
        SubscriptionStatus.PENDING_PAYMENT,
    }
)

CANCELLABLE_STATUSES = frozenset(
    {
        SubscriptionStatus.ACTIVE,
        SubscriptionStatus.TRIALING,
        SubscriptionStatus.PENDING_PAYMENT,
        SubscriptionStatus.PAUSED,
    }
)

PAUSABLE_STATUSES = frozenset({SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING})

RESUMABLE_STATUSES = frozenset({SubscriptionStatus.PAUSED})

STATUS_DESCRIPTIONS = {
    SubscriptionStatus.ACTIVE: "Active subscription with access to services",
    SubscriptionStatus.TRIALING: "In trial period - no payment required yet",
    SubscriptionStatus.PENDING_PAYMENT: "Awaiting first payment to activate",
    SubscriptionStatus.PAST_DUE: "Payment overdue - access may be limited",
    SubscriptionStatus.PAUSED: "Subscription paused by user",
    SubscriptionStatus.CANCELLED: "Subscription cancelled - no further billing",
    SubscriptionStatus.EXPIRED: "Subscription expired",
}


def stored_status(subscription: SubscriptionState) -> Union[SubscriptionStatus, str]:
    """Return the stored status as an enum member, or the raw value if it is unknown."""
    try:
        return SubscriptionStatus(subscription.status)
    except ValueError:
        return subscription.status


def grace_deadline(current_period_end: int, grace_period_days: int) -> int:
    """Last instant (epoch ms) at which a period that ended at `current_period_end` is in grace."""
    return current_period_end + grace_period_days * MS_PER_DAY


def compute_status(
    subscription: SubscriptionState, grace_period_days: int, now: int
) -> Union[SubscriptionStatus, str]:
    """Compute the effective status of a subscription at `now`.

    Rules are checked in order and the first match wins:

    1. cancelled and paused are returned as stored.
    2. trialing becomes pending_payment once `now` reaches `trial_ends_at`.
    3. active and pending_payment without a period end are pending_payment, since no
       grace deadline can be computed before the first payment. With a period end
       they become past_due once `now` is strictly after the grace deadline.
    4. past_due, expired and unknown values are returned as stored.

    Args:
        subscription: Stored subscription state
        grace_period_days: Grace period of the owning app, in days
        now: Reference time in epoch milliseconds

    Returns:
        The computed status. Unknown stored values are passed through unchanged.
    """
    status = stored_status(subscription)

    if status in (SubscriptionStatus.CANCELLED, SubscriptionStatus.PAUSED):
        return status

    if status == SubscriptionStatus.TRIALING:
        if subscription.trial_ends_at is not None and now >= subscription.trial_ends_at:
            return SubscriptionStatus.PENDING_PAYMENT
        return SubscriptionStatus.TRIALING

    if status in (SubscriptionStatus.PENDING_PAYMENT, SubscriptionStatus.ACTIVE):
        if subscription.current_period_end is None:
            return SubscriptionStatus.PENDING_PAYMENT
        if now > grace_deadline(subscription.current_period_end, grace_period_days):
            return SubscriptionStatus.PAST_DUE
        return status

    return status


def get_status_description(status: Union[SubscriptionStatus, str]) -> str:
    """Get a human-readable description of a subscription status."""
    try:
        return STATUS_DESCRIPTIONS[SubscriptionStatus(status)]
    except (KeyError, ValueError):
        return "Unknown status"


def has_active_access(subscription: SubscriptionState, grace_period_days: int, now: int) -> bool:
    """Check whether the subscription grants access at `now`.

    Access covers active, trialing and pending_payment. The grace period is
    accounted for by `compute_status`.
    """
    return compute_status(subscription, grace_period_days, now) in ACCESS_STATUSES


def can_be_cancelled(subscription: SubscriptionState) -> bool:
    """Check if the stored status allows cancellation."""
    return stored_status(subscription) in CANCELLABLE_STATUSES


def can_be_paused(subscription: SubscriptionState) -> bool:
    """Check if the stored status allows pausing."""
    return stored_status(subscription) in PAUSABLE_STATUSES


def can_be_resumed(subscription: SubscriptionState) -> bool:
    """Check if the stored status allows resuming."""
    return stored_status(subscription) in RESUMABLE_STATUSES
