class AppError(Exception):
    """Base error for all application-specific issues."""

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        code: str = "INTERNAL_ERROR",
    ):
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(self.message)


class NotFoundError(AppError):
    def __init__(self, message: str = "Resource not found."):
        super().__init__(message, status_code=404, code="NOT_FOUND")


class InvalidInputError(AppError):
    def __init__(self, message: str):
        super().__init__(message, status_code=400, code="INVALID_INPUT")


class AuthenticationError(AppError):
    def __init__(self, message: str = "Authentication required."):
        super().__init__(message, status_code=401, code="UNAUTHENTICATED")


class ForbiddenError(AppError):
    def __init__(self, message: str = "Forbidden."):
        super().__init__(message, status_code=403, code="FORBIDDEN")


class ConflictError(AppError):
    def __init__(self, message: str, code: str = "CONFLICT"):
        super().__init__(message, status_code=409, code=code)


class SlotUnavailableError(ConflictError):
    """Requested window failed the composite availability check.

    ``reason`` is ``OUTSIDE_SCHEDULE`` when the window is not inside a working
    block and ``SLOT_TAKEN`` when it overlaps a blocking appointment.
    """

    OUTSIDE_SCHEDULE = "OUTSIDE_SCHEDULE"
    SLOT_TAKEN = "SLOT_TAKEN"

    def __init__(self, reason: str, message: str | None = None):
        self.reason = reason
        if message is None:
            if reason == self.OUTSIDE_SCHEDULE:
                message = "Doctor is not available at the requested time."
            else:
                message = "The requested time conflicts with an existing appointment."
        super().__init__(message, code=reason)


class InfrastructureError(AppError):
    """Backing store or storage provider failure."""

    def __init__(self, message: str = "A backing service is unavailable."):
        super().__init__(message, status_code=503, code="INFRASTRUCTURE_FAILURE")


__all__ = [
    "AppError",
    "NotFoundError",
    "InvalidInputError",
    "AuthenticationError",
    "ForbiddenError",
    "ConflictError",
    "SlotUnavailableError",
    "InfrastructureError",
]
