"""Custom application exceptions."""


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class UnauthorizedException(AppException):
    """Unauthorized access exception."""

    def __init__(self, message: str = "Unauthorized"):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401)


class ForbiddenException(AppException):
    """Forbidden access exception."""

    def __init__(self, message: str = "Forbidden"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, message: str = "Bad request"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class ConflictException(AppException):
    """Conflict exception."""

    def __init__(self, message: str = "Conflict"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class ValidationException(AppException):
    """Validation error exception.

    Raised for business-rule violations the caller can fix by re-prompting,
    such as a missing diagnosis or a date outside the booking window.
    """

    def __init__(self, message: str = "Validation error"):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422)


class IneligibleCancellationException(ConflictException):
    """Cancellation attempted on a closed appointment or too close to its time."""

    def __init__(self, message: str = "Appointment can no longer be cancelled"):
        """Initialize with 409 status code."""
        super().__init__(message)


class InvalidTransitionException(ConflictException):
    """Status change not allowed from the appointment's current status."""

    def __init__(self, message: str = "Invalid appointment status transition"):
        """Initialize with 409 status code."""
        super().__init__(message)


class UpstreamServiceException(AppException):
    """The clinic API failed or could not be reached."""

    def __init__(self, message: str = "Clinic service unavailable"):
        """Initialize with 502 status code."""
        super().__init__(message, status_code=502)


class ServiceUnavailableException(AppException):
    """A gateway-owned store could not complete the operation."""

    def __init__(self, message: str = "Service temporarily unavailable"):
        """Initialize with 503 status code."""
        super().__init__(message, status_code=503)
