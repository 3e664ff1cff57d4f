"""Closed vocabularies for the Action Center.

Queues, reason codes, per-queue action vocabularies, and admin role
permissions. Everything here is static data plus pure lookups; validation
helpers raise the domain exceptions so every boundary rejects the same way.
"""

from enum import Enum

from action_center.core.exceptions import InvalidReasonCodeError


class Queue(str, Enum):
    """Operational queues aggregated by the Action Center."""

    KYC = "kyc"
    BOOKINGS = "bookings"
    REFUNDS_DISPUTES = "refunds_disputes"
    PAYOUTS = "payouts"
    WEBHOOKS = "webhooks"
    CONTENT_FLAGS = "content_flags"


class RefType(str, Enum):
    """Kind of domain entity an item points at."""

    PROVIDER = "provider"
    CUSTOMER = "customer"
    BOOKING = "booking"
    PAYOUT = "payout"
    WEBHOOK = "webhook"
    REVIEW = "review"


class ItemStatus(str, Enum):
    """Action item lifecycle states."""

    OPEN = "open"
    SNOOZED = "snoozed"
    WAITING_ON_USER = "waiting_on_user"  # request_info and similar, awaiting a reply
    RESOLVED = "resolved"


class Severity(str, Enum):
    RED = "red"
    AMBER = "amber"
    GREEN = "green"


class ActionEffect(str, Enum):
    """What a queue-specific action does to the item's status."""

    RESOLVE = "resolve"
    AWAIT_FOLLOWUP = "await_followup"
    RECORD = "record"  # audit only, status unchanged


class AdminRole(str, Enum):
    SUPER_ADMIN = "super_admin"
    FINANCE_ADMIN = "finance_admin"
    OPERATIONS_ADMIN = "operations_admin"
    SUPPORT_ADMIN = "support_admin"
    CONTENT_ADMIN = "content_admin"


REASON_CODES: dict[Queue, tuple[str, ...]] = {
    Queue.KYC: (
        "ID_MISMATCH",
        "DOC_EXPIRED",
        "DOC_UNCLEAR",
        "FRAUD_SUSPECTED",
        "INFO_INCOMPLETE",
    ),
    Queue.BOOKINGS: (
        "PENDING_CONFIRM",
        "RESCHEDULE_REQUEST",
        "CANCELLATION_REQUEST",
        "PAYMENT_ISSUE",
        "DISPUTE_RAISED",
    ),
    Queue.REFUNDS_DISPUTES: (
        "REFUND_REQUESTED",
        "CHARGEBACK_OPEN",
        "SERVICE_NOT_RENDERED",
        "QUALITY_ISSUE",
        "UNAUTHORIZED_CHARGE",
    ),
    Queue.PAYOUTS: (
        "FAILED_PAYOUT",
        "PENDING_INFO",
        "BANK_DETAILS_INVALID",
        "THRESHOLD_NOT_MET",
        "HOLD_REQUESTED",
    ),
    Queue.WEBHOOKS: (
        "DELIVERY_FAILED",
        "RATE_LIMITED",
        "AUTH_FAILED",
        "TIMEOUT",
        "INVALID_RESPONSE",
    ),
    Queue.CONTENT_FLAGS: (
        "REVIEW_FLAGGED",
        "IMAGE_INAPPROPRIATE",
        "PROFILE_SUSPICIOUS",
        "SPAM_DETECTED",
        "HARASSMENT_REPORTED",
    ),
}

# Per-queue action vocabulary and the effect each action has on the item.
QUEUE_ACTIONS: dict[Queue, dict[str, ActionEffect]] = {
    Queue.KYC: {
        "approve": ActionEffect.RESOLVE,
        "reject": ActionEffect.RESOLVE,
        "request_info": ActionEffect.AWAIT_FOLLOWUP,
    },
    Queue.BOOKINGS: {
        "confirm": ActionEffect.RESOLVE,
        "reschedule": ActionEffect.AWAIT_FOLLOWUP,
        "cancel": ActionEffect.RESOLVE,
    },
    Queue.REFUNDS_DISPUTES: {
        "approve_refund": ActionEffect.RESOLVE,
        "deny_refund": ActionEffect.RESOLVE,
        "request_info": ActionEffect.AWAIT_FOLLOWUP,
    },
    Queue.PAYOUTS: {
        "retry": ActionEffect.RESOLVE,
        "change_method": ActionEffect.AWAIT_FOLLOWUP,
        "request_info": ActionEffect.AWAIT_FOLLOWUP,
    },
    Queue.WEBHOOKS: {
        "retry": ActionEffect.RESOLVE,  # goes through the redelivery side effect first
        "view_payload": ActionEffect.RECORD,
        "disable": ActionEffect.RESOLVE,
    },
    Queue.CONTENT_FLAGS: {
        "approve": ActionEffect.RESOLVE,
        "hide": ActionEffect.RESOLVE,
        "strike_user": ActionEffect.RESOLVE,
    },
}

ROLE_PERMISSIONS: dict[AdminRole, tuple[Queue, ...]] = {
    AdminRole.SUPER_ADMIN: tuple(Queue),
    AdminRole.FINANCE_ADMIN: (Queue.PAYOUTS, Queue.REFUNDS_DISPUTES),
    AdminRole.OPERATIONS_ADMIN: (Queue.BOOKINGS, Queue.KYC),
    AdminRole.SUPPORT_ADMIN: (Queue.BOOKINGS, Queue.REFUNDS_DISPUTES, Queue.CONTENT_FLAGS),
    AdminRole.CONTENT_ADMIN: (Queue.CONTENT_FLAGS,),
}

# Statuses shown by list() when the caller does not opt in to history
ACTIVE_STATUSES: tuple[ItemStatus, ...] = (
    ItemStatus.OPEN,
    ItemStatus.SNOOZED,
    ItemStatus.WAITING_ON_USER,
)


def validate_reason_codes(queue: Queue, reason_codes: list[str]) -> None:
    """Raise InvalidReasonCodeError if any code is outside the queue's closed set."""
    allowed = REASON_CODES[queue]
    invalid = [code for code in reason_codes if code not in allowed]
    if invalid:
        raise InvalidReasonCodeError(queue.value, invalid)


def action_effect(queue: Queue, action: str) -> ActionEffect | None:
    """Return the effect of ``action`` on ``queue``, or None if it is not in the vocabulary."""
    return QUEUE_ACTIONS[queue].get(action)


def permitted_queues(role: AdminRole) -> tuple[Queue, ...]:
    return ROLE_PERMISSIONS.get(role, ())
