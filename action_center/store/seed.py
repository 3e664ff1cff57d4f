"""Demo data for the in-memory store.

SLA deadlines are relative to ``now`` so the demo always shows a spread of
red, amber, green, and unscheduled items.
"""

from datetime import datetime, timedelta, timezone

from action_center.domain.queues import ItemStatus, Queue, RefType
from action_center.schemas.action_items import ActionItem, ActionNote

# (id, queue, ref_type, ref_id, title, who_name, who_phone, reason_code, sla offset hours, amount)
_DEMO_ROWS = [
    ("AC-K1D0C001", Queue.KYC, RefType.PROVIDER, "prov_1042", "ID name does not match profile",
     "Amara Okafor", "+2348031234567", "ID_MISMATCH", -3, None),
    ("AC-K1D0C002", Queue.KYC, RefType.PROVIDER, "prov_1187", "Driver licence expired last month",
     "Tunde Bello", "+2348029876543", "DOC_EXPIRED", 10, None),
    ("AC-K1D0C003", Queue.KYC, RefType.CUSTOMER, "cust_5521", "Selfie does not match ID photo",
     "Grace Eze", "+2348051112233", "FRAUD_SUSPECTED", 1, None),
    ("AC-B00K0001", Queue.BOOKINGS, RefType.BOOKING, "bk_88210", "Provider has not confirmed booking",
     "Chidi Nwosu", "+2348064445566", "PENDING_CONFIRM", 5, 1500000),
    ("AC-B00K0002", Queue.BOOKINGS, RefType.BOOKING, "bk_88342", "Customer asked to move to Saturday",
     "Ngozi Adeyemi", "+2348077778899", "RESCHEDULE_REQUEST", 30, 850000),
    ("AC-REFD0001", Queue.REFUNDS_DISPUTES, RefType.BOOKING, "bk_87001", "Cleaner never arrived",
     "Ifeoma Obi", "+2348012223344", "SERVICE_NOT_RENDERED", 20, 2200000),
    ("AC-REFD0002", Queue.REFUNDS_DISPUTES, RefType.CUSTOMER, "cust_4410", "Card issuer chargeback opened",
     "Emeka Umeh", None, "CHARGEBACK_OPEN", -12, 4500000),
    ("AC-PAY00001", Queue.PAYOUTS, RefType.PAYOUT, "po_30021", "Payout bounced by receiving bank",
     "Sade Lawal", "+2348035556677", "FAILED_PAYOUT", 0.5, 12500000),
    ("AC-PAY00002", Queue.PAYOUTS, RefType.PAYOUT, "po_30077", "Account number fails validation",
     "Bayo Ogun", None, "BANK_DETAILS_INVALID", 72, 6300000),
    ("AC-WHK00001", Queue.WEBHOOKS, RefType.WEBHOOK, "wh_evt_9901", "payment.succeeded delivery failed",
     None, None, "DELIVERY_FAILED", 6, None),
    ("AC-WHK00002", Queue.WEBHOOKS, RefType.WEBHOOK, "wh_evt_9954", "Partner endpoint timed out",
     None, None, "TIMEOUT", None, None),
    ("AC-FLAG0001", Queue.CONTENT_FLAGS, RefType.REVIEW, "rev_22019", "Review contains abusive language",
     "Kelechi Ibe", None, "HARASSMENT_REPORTED", 40, None),
    ("AC-FLAG0002", Queue.CONTENT_FLAGS, RefType.PROVIDER, "prov_2201", "Profile photo flagged by users",
     "Musa Danjuma", None, "IMAGE_INAPPROPRIATE", None, None),
]


def demo_items(now: datetime | None = None) -> tuple[list[ActionItem], list[ActionNote]]:
    """Build the demo item set and a couple of prior operator notes."""
    now = now or datetime.now(timezone.utc)
    items: list[ActionItem] = []

    for index, row in enumerate(_DEMO_ROWS):
        item_id, queue, ref_type, ref_id, title, who_name, who_phone, reason, sla_hours, amount = row
        opened_at = now - timedelta(hours=48 - index)
        items.append(
            ActionItem(
                id=item_id,
                queue=queue,
                ref_type=ref_type,
                ref_id=ref_id,
                title=title,
                who_name=who_name,
                who_phone=who_phone,
                reason_code=reason,
                status=ItemStatus.OPEN,
                sla_at=now + timedelta(hours=sla_hours) if sla_hours is not None else None,
                amount_at_risk=amount,
                opened_at=opened_at,
                updated_at=opened_at,
            )
        )

    notes = [
        ActionNote(
            id="NOTE-demo00000001",
            action_item_id="AC-K1D0C001",
            body="Surname on ID uses maiden name, asked provider for marriage certificate.",
            author_id="admin-ops-1",
            author_name="Ops Admin",
            created_at=now - timedelta(hours=20),
        ),
        ActionNote(
            id="NOTE-demo00000002",
            action_item_id="AC-PAY00001",
            body="Bank says account is dormant.",
            author_id="admin-fin-1",
            author_name="Finance Admin",
            created_at=now - timedelta(hours=2),
        ),
    ]
    return items, notes
