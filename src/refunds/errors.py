"""Error taxonomy for the Refunds domain.

Every workflow failure carries a stable machine-readable ``code`` and the HTTP
status the API layer answers with. Field-level validation keeps using
Protean's ``ValidationError``; the API maps it to ``VALIDATION_ERROR``.
"""


class RefundsError(Exception):
    """Base class for recoverable workflow errors."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class NotFound(RefundsError):
    """Missing or unowned order/request."""

    code = "NOT_FOUND"
    status_code = 404


class InvalidState(RefundsError):
    """The order or request is not in a state that permits the operation."""

    code = "INVALID_STATE"
    status_code = 409


class InvalidTransition(InvalidState):
    code = "INVALID_TRANSITION"

    def __init__(self, current: str, target: str):
        super().__init__(
            f"Cannot transition from {current} to {target}",
            current=current,
            target=target,
        )
        self.current = current
        self.target = target


class Conflict(RefundsError):
    """Duplicate active request or a competing write."""

    code = "CONFLICT"
    status_code = 409


class Expired(RefundsError):
    """Outside the eligibility window."""

    code = "EXPIRED"
    status_code = 410


class TooSoon(RefundsError):
    """Cooldown has not elapsed yet."""

    code = "TOO_SOON"
    status_code = 429


class NoValidItems(RefundsError):
    """A batch return request produced zero usable lines."""

    code = "NO_VALID_ITEMS"
    status_code = 422


class Unavailable(RefundsError):
    """A storage or collaborator call timed out. Safe to retry."""

    code = "UNAVAILABLE"
    status_code = 503


class InternalError(RefundsError):
    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str = "Internal server error", **context):
        super().__init__(message, **context)
