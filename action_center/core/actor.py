"""Acting admin identity, passed explicitly into every write and scoped read."""

from dataclasses import dataclass

from action_center.core.exceptions import PermissionDeniedError
from action_center.domain.queues import AdminRole, Queue, permitted_queues


@dataclass(frozen=True)
class Actor:
    """Admin performing an operation."""

    id: str
    name: str
    role: AdminRole = AdminRole.SUPPORT_ADMIN

    @classmethod
    def system(cls) -> "Actor":
        """Identity used for background transitions (snooze wake)."""
        return cls(id="system", name="System", role=AdminRole.SUPER_ADMIN)

    def can_access(self, queue: Queue) -> bool:
        return queue in permitted_queues(self.role)


def ensure_queue_access(actor: Actor, queue: Queue, enforce: bool = True) -> None:
    """Raise PermissionDeniedError if ``actor`` may not work ``queue``."""
    if enforce and not actor.can_access(queue):
        raise PermissionDeniedError(actor.id, queue.value)
