"""
Marketplace error taxonomy.

Every error carries an HTTP status code and a short machine-readable code so
the views can render it without a mapping table:

    NotFound         404  request, shift or staff member does not exist
    InvalidState     400  operation not allowed for the request's kind or status
    AmbiguousActor   400  shared login did not say which staff member is acting
    Forbidden        403  actor lacks the capability for this operation
    Conflict         409  lost a race; refresh and retry
    InternalFailure  500  persistence failure; nothing was committed
"""


class MarketplaceError(Exception):
    """Base class for all marketplace errors."""

    status_code = 400
    code = "marketplace_error"

    def __init__(self, message: str, request_id=None):
        super().__init__(message)
        self.message = message
        self.request_id = request_id

    def as_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class NotFound(MarketplaceError):
    status_code = 404
    code = "not_found"


class InvalidState(MarketplaceError):
    status_code = 400
    code = "invalid_state"


class AmbiguousActor(InvalidState):
    code = "ambiguous_actor"


class Forbidden(MarketplaceError):
    status_code = 403
    code = "forbidden"


class Conflict(MarketplaceError):
    status_code = 409
    code = "conflict"


class InternalFailure(MarketplaceError):
    status_code = 500
    code = "internal_error"
