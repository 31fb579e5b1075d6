"""API error classes.

Every error carries a machine-readable code, a message and the HTTP status
the exception handlers in ``feedback.main`` render it with. Services and
repositories raise these directly; route handlers let them propagate.
"""


class APIError(Exception):
    """Base class for API errors.

    All API errors have a code, message, and HTTP status.
    Subclasses set default status_code.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(APIError):
    """Field validation failed (400).

    Use for request body validation errors, query param errors, etc.
    """

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class UnauthorizedError(APIError):
    """Authentication required (401)."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
        )


class NotFoundError(APIError):
    """Resource not found (404).

    Use when requested resource doesn't exist OR doesn't belong to user.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(
            code="NOT_FOUND",
            message=message,
            status_code=404,
        )


class TokenConflictError(APIError):
    """An active verification token already exists for this user and action (409).

    Raised by strict issuance, and by stores whose insert hits the
    (user_id, action_type) uniqueness guard. Callers may fall back to
    replacing issuance or tell the user a link is already outstanding.

    Args:
        action_type: Action tag of the conflicting record.
    """

    def __init__(self, action_type: str) -> None:
        super().__init__(
            code="TOKEN_CONFLICT",
            message=(
                f"An active '{action_type}' link already exists for this user"
            ),
            status_code=409,
            details=[{"action_type": action_type}],
        )
        self.action_type = action_type


class StoreError(APIError):
    """Verification store failure (503).

    Wraps connectivity problems, constraint violations other than the
    uniqueness guard, and vanished rows. The original exception is kept
    on ``cause`` for logging; it is never rendered to clients.

    Args:
        message: Description of the failed operation.
        cause: Underlying exception, if any.
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(
            code="STORE_ERROR",
            message=message,
            status_code=503,
        )
        self.cause = cause


class TokenMissingError(StoreError):
    """The record an update targeted no longer exists (503).

    Raised when a confirmation handler consumed the token between the
    issuer's read and its write.
    """

    def __init__(self, action_type: str) -> None:
        super().__init__(f"No outstanding '{action_type}' token to replace")
        self.action_type = action_type


class IdentityResolutionError(APIError):
    """Recipient could not be resolved to a user or display name (404)."""

    def __init__(self, message: str = "Recipient could not be resolved") -> None:
        super().__init__(
            code="IDENTITY_NOT_RESOLVED",
            message=message,
            status_code=404,
        )


class TransportError(APIError):
    """Mail dispatch failed (502).

    Args:
        message: Description of the failure.
        cause: Underlying transport exception, if any.
    """

    def __init__(
        self,
        message: str = "Failed to send email",
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(
            code="MAIL_TRANSPORT_ERROR",
            message=message,
            status_code=502,
        )
        self.cause = cause


class InternalError(APIError):
    """Unexpected server error (500).

    Use for unhandled exceptions. Never expose stack traces to clients.
    """

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        super().__init__(
            code="INTERNAL_ERROR",
            message=message,
            status_code=500,
        )
