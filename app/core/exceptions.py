"""Custom application exceptions."""


class AppException(Exception):
    """Base application exception."""

    kind: str | None = None

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)

    @property
    def error_kind(self) -> str:
        """Machine readable failure kind reported to API clients."""
        return self.kind or self.__class__.__name__


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class ForbiddenException(AppException):
    """Forbidden access exception."""

    def __init__(self, message: str = "Forbidden"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class ConflictException(AppException):
    """Conflict exception."""

    def __init__(self, message: str = "Conflict"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class ValidationException(AppException):
    """Validation error exception."""

    def __init__(self, message: str = "Validation error"):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422)


# Booking engine failures


class InvalidSlotKindException(ValidationException):
    """Malformed slot date or time."""

    kind = "InvalidSlotKind"

    def __init__(self, message: str = "Invalid slot date or time"):
        super().__init__(message)


class PropertyUnavailableException(ConflictException):
    """Property is missing or not in a bookable status."""

    kind = "PropertyUnavailable"

    def __init__(self, message: str = "Property is not available for viewings"):
        super().__init__(message)


class SlotBlockedException(ConflictException):
    """An administrator blocked the requested slot."""

    kind = "SlotBlocked"

    def __init__(self, message: str = "This time slot is not available"):
        super().__init__(message)


class DuplicateActiveBookingException(ConflictException):
    """Customer already holds or queues for the property."""

    kind = "DuplicateActiveBooking"

    def __init__(
        self,
        message: str = "You already have a pending, confirmed, or queued appointment for this property",
    ):
        super().__init__(message)


class InvalidTransitionException(ConflictException):
    """Requested status change is not reachable from the current status."""

    kind = "InvalidTransition"

    def __init__(self, message: str = "Invalid status transition"):
        super().__init__(message)


class RoleNotPermittedException(ForbiddenException):
    """Acting role may not perform the requested transition."""

    kind = "RoleNotPermitted"

    def __init__(self, message: str = "Your role does not permit this action"):
        super().__init__(message)


class NotOwnerException(ForbiddenException):
    """Acting user does not own the appointment."""

    kind = "NotOwner"

    def __init__(self, message: str = "You do not own this appointment"):
        super().__init__(message)


class ConcurrencyConflictException(ConflictException):
    """Slot transaction lost a serialization race; the whole request can be retried."""

    kind = "ConcurrencyConflict"

    def __init__(self, message: str = "The slot was modified concurrently, please retry"):
        super().__init__(message)
