"""Custom application exceptions."""

from typing import Any


class AppException(Exception):
    """Base application exception."""

    error = "AppException"

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        """Initialize exception with message, status code and optional context."""
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    error = "NotFound"

    def __init__(self, message: str = "Resource not found", details: dict[str, Any] | None = None):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404, details=details)


class UnauthorizedException(AppException):
    """Unauthorized access exception."""

    error = "Unauthorized"

    def __init__(self, message: str = "Unauthorized"):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401)


class ForbiddenException(AppException):
    """Forbidden access exception."""

    error = "Forbidden"

    def __init__(self, message: str = "Forbidden", details: dict[str, Any] | None = None):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403, details=details)


class BadRequestException(AppException):
    """Bad request exception."""

    error = "BadRequest"

    def __init__(self, message: str = "Bad request", details: dict[str, Any] | None = None):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400, details=details)


class ConflictException(AppException):
    """Conflict exception."""

    error = "Conflict"

    def __init__(self, message: str = "Conflict", details: dict[str, Any] | None = None):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409, details=details)


class ValidationException(AppException):
    """Validation error exception."""

    error = "ValidationError"

    def __init__(self, message: str = "Validation error", details: dict[str, Any] | None = None):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422, details=details)


# Scheduling errors


class InvalidTimeFormatException(ValidationException):
    """Wall-clock time is not a valid HH:MM value."""

    error = "InvalidFormat"

    def __init__(self, value: Any):
        super().__init__(
            f"Invalid time format (HH:MM): {value!r}",
            details={"value": value},
        )


class PatientNotFoundException(NotFoundException):
    error = "PatientNotFound"

    def __init__(self, message: str = "Patient not found"):
        super().__init__(message)


class DoctorNotFoundException(NotFoundException):
    error = "DoctorNotFound"

    def __init__(self, message: str = "Doctor not found"):
        super().__init__(message)


class ClinicNotFoundException(NotFoundException):
    error = "ClinicNotFound"

    def __init__(self, message: str = "Clinic not found or inactive"):
        super().__init__(message)


class AppointmentNotFoundException(NotFoundException):
    error = "AppointmentNotFound"

    def __init__(self, message: str = "Appointment not found"):
        super().__init__(message)


class DoctorUnavailableException(BadRequestException):
    """Doctor is inactive or not working during the requested time."""

    error = "DoctorUnavailable"


class ClinicClosedException(BadRequestException):
    error = "ClinicClosed"


class OutsideOperatingHoursException(BadRequestException):
    error = "OutsideOperatingHours"


class PastDateException(BadRequestException):
    error = "PastDate"

    def __init__(
        self,
        message: str = "Appointment must be scheduled for a future date and time",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details=details)


class SchedulingConflictException(ConflictException):
    """Doctor already has an active appointment overlapping the requested range."""

    error = "SchedulingConflict"

    def __init__(
        self,
        existing_appointment_id: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.existing_appointment_id = existing_appointment_id
        super().__init__(
            "Doctor is not available at the requested time",
            details={"existing_appointment_id": existing_appointment_id, **(details or {})},
        )


class InvalidTransitionException(ConflictException):
    """Lifecycle action is not allowed from the appointment's current state."""

    error = "InvalidTransition"

    def __init__(self, action: str, status: str, reason: str | None = None):
        self.action = action
        self.status = status
        message = reason or f"Cannot {action} an appointment with status '{status}'"
        super().__init__(message, details={"action": action, "status": status})


class AccessDeniedException(ForbiddenException):
    error = "AccessDenied"

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class DuplicateAppointmentIdException(ConflictException):
    """Generated appointment ID collided with a concurrent booking."""

    error = "DuplicateAppointmentId"

    def __init__(self, appointment_id: str):
        super().__init__(
            "Appointment ID already exists",
            details={"appointment_id": appointment_id},
        )
