"""Domain error taxonomy. Routes never build error responses by hand; main.py maps these to HTTP."""


class EngineError(Exception):
    """Base for all domain errors. status_code is the HTTP mapping; detail is safe to show the caller."""

    status_code = 500
    detail = "Internal error"

    def __init__(self, detail: str | None = None):
        super().__init__(detail or self.detail)
        if detail:
            self.detail = detail


class Unauthorized(EngineError):
    """No actor, or the actor could not be resolved."""

    status_code = 401
    detail = "Unauthorized"


class Forbidden(EngineError):
    status_code = 403
    detail = "Forbidden"


class InvalidField(EngineError, ValueError):
    """Field name is not in the pod field registry."""

    status_code = 400
    detail = "Invalid field"

    def __init__(self, field: object):
        super().__init__(f"Invalid field: {field!r}")
        self.field = field


class InvalidPayload(EngineError, ValueError):
    status_code = 400
    detail = "Invalid payload"


class NotFound(EngineError):
    status_code = 404
    detail = "Not found"


class Conflict(EngineError):
    status_code = 409
    detail = "Conflict"


class AuditWriteFailed(EngineError):
    """The audit record could not be written; the triggering mutation must not apply."""

    status_code = 500
    detail = "Audit write failed; change not applied"


class StoreFailure(EngineError):
    """Unexpected persistence error. Logged with context in repo; caller only sees the generic detail."""

    status_code = 500
    detail = "Internal error"
