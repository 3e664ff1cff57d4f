"""Action item state machine."""

from action_center.core.exceptions import InvalidTransitionError
from action_center.domain.queues import ItemStatus


class ItemStateMachine:
    """Valid status transitions for action items.

    ``resolved`` is terminal. Snoozing an already snoozed item moves its
    wake time, which is why SNOOZED -> SNOOZED is allowed.
    """

    TRANSITIONS: dict[ItemStatus, frozenset[ItemStatus]] = {
        ItemStatus.OPEN: frozenset({
            ItemStatus.SNOOZED,
            ItemStatus.WAITING_ON_USER,
            ItemStatus.RESOLVED,
        }),
        ItemStatus.SNOOZED: frozenset({
            ItemStatus.OPEN,  # wake
            ItemStatus.SNOOZED,
            ItemStatus.WAITING_ON_USER,
            ItemStatus.RESOLVED,
        }),
        ItemStatus.WAITING_ON_USER: frozenset({
            ItemStatus.OPEN,  # user replied
            ItemStatus.SNOOZED,
            ItemStatus.WAITING_ON_USER,  # a second request_info while still waiting
            ItemStatus.RESOLVED,
        }),
        ItemStatus.RESOLVED: frozenset(),
    }

    @classmethod
    def is_terminal(cls, status: ItemStatus) -> bool:
        return not cls.TRANSITIONS[status]

    @classmethod
    def can_transition(cls, current: ItemStatus, target: ItemStatus) -> bool:
        return target in cls.TRANSITIONS[current]

    @classmethod
    def ensure_mutable(cls, item_id: str, current: ItemStatus, operation: str) -> None:
        """Reject any mutation of an item in a terminal state."""
        if cls.is_terminal(current):
            raise InvalidTransitionError(
                item_id,
                f"Action item {item_id} is already {current.value}; cannot {operation}",
            )

    @classmethod
    def ensure_transition(
        cls,
        item_id: str,
        current: ItemStatus,
        target: ItemStatus,
        operation: str,
    ) -> None:
        cls.ensure_mutable(item_id, current, operation)
        if not cls.can_transition(current, target):
            raise InvalidTransitionError(
                item_id,
                f"Cannot {operation} action item {item_id}: "
                f"{current.value} -> {target.value} is not a valid transition",
            )
