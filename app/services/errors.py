"""Domain errors raised by the service layer.

Each error carries a stable ``code`` the API layer turns into a response;
the HTTP status lives on the class so routes do not need a lookup table.
"""


class ServiceError(Exception):
    """Base class for business-rule failures."""

    status_code = 400

    def __init__(self, code: str, message: str | None = None):
        super().__init__(message or code)
        self.code = code
        self.message = message or code


class NotFoundError(ServiceError):
    """A family-scoped record does not exist."""

    status_code = 404


class ConflictError(ServiceError):
    """A uniqueness rule would be broken."""

    status_code = 409


CHILD_NOT_FOUND = "CHILD_NOT_FOUND"
CHORE_NOT_FOUND = "CHORE_NOT_FOUND"
REWARD_NOT_FOUND = "REWARD_NOT_FOUND"
FAMILY_NOT_FOUND = "FAMILY_NOT_FOUND"
CONTENT_NOT_FOUND = "CONTENT_NOT_FOUND"
INSUFFICIENT_POINTS = "INSUFFICIENT_POINTS"
CHORE_NOT_SUBMITTED = "CHORE_NOT_SUBMITTED"
EMAIL_IN_USE = "EMAIL_IN_USE"
FAMILY_CODE_IN_USE = "FAMILY_CODE_IN_USE"
FAMILY_CODE_UNAVAILABLE = "FAMILY_CODE_UNAVAILABLE"
SLUG_IN_USE = "SLUG_IN_USE"
