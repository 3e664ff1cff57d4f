class ActionCenterError(Exception):
    """Base exception for the Action Center.

    ``code`` is the stable machine-readable identifier returned to API callers,
    ``status_code`` the HTTP status the API layer maps it to, and ``retryable``
    tells the caller whether repeating the same request may succeed.
    """

    code = "action_center_error"
    status_code = 500
    retryable = False


class ItemNotFoundError(ActionCenterError):
    """Raised when an operation references an item id that does not exist."""

    code = "not_found"
    status_code = 404

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Action item {item_id} not found")


class InvalidTransitionError(ActionCenterError):
    """Raised when an action is incompatible with the item's status or queue."""

    code = "invalid_transition"
    status_code = 409

    def __init__(self, item_id: str, message: str):
        self.item_id = item_id
        super().__init__(message)


class InvalidInputError(ActionCenterError):
    """Raised when a request value is outside what the operation accepts."""

    code = "invalid_input"
    status_code = 422


class InvalidReasonCodeError(InvalidInputError):
    """Raised when a reason code is outside the queue's closed set."""

    code = "invalid_reason_code"

    def __init__(self, queue: str, reason_codes: list[str]):
        self.queue = queue
        self.reason_codes = reason_codes
        super().__init__(f"Reason code(s) {', '.join(reason_codes)} not allowed for queue '{queue}'")


class InvalidFilterError(InvalidInputError):
    """Raised when a list filter value is malformed."""

    code = "invalid_filter"


class ExternalActionFailure(ActionCenterError):
    """Raised when an external side effect (e.g. webhook redelivery) fails.

    Item state is never mutated when this is raised.
    """

    code = "external_action_failed"
    status_code = 502
    retryable = True


class ConcurrencyConflictError(ActionCenterError):
    """Raised when the per-item write lock could not be acquired in time."""

    code = "concurrency_conflict"
    status_code = 409
    retryable = True

    def __init__(self, item_id: str, waited_seconds: float):
        self.item_id = item_id
        self.waited_seconds = waited_seconds
        super().__init__(
            f"Action item {item_id} is being modified by another operator, "
            f"gave up after {waited_seconds:.1f}s. Re-fetch and retry."
        )


class PermissionDeniedError(ActionCenterError):
    """Raised when the acting admin's role does not cover the item's queue."""

    code = "permission_denied"
    status_code = 403

    def __init__(self, actor_id: str, queue: str):
        self.actor_id = actor_id
        self.queue = queue
        super().__init__(f"Admin {actor_id} has no access to queue '{queue}'")
