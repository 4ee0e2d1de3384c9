# backend/slotbook/core/exceptions.py
"""
Domain-specific exceptions for the Slotbook engine.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
"""

from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        """Convert to an HTTPException carrying message, code and details."""
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when input fails business validation."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class ForbiddenException(DomainException):
    """Raised when the caller lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific business exceptions


class InvalidRangeException(ValidationException):
    """Raised when a time range does not start strictly before it ends."""

    def __init__(self, start: Any, end: Any):
        super().__init__(
            message=f"Start time {start} must be before end time {end}",
            code="INVALID_RANGE",
            details={"start_time": str(start), "end_time": str(end)},
        )


class SlotOverlapException(ConflictException):
    """Raised when an availability slot overlaps with an existing slot."""

    def __init__(self, new_range: str, conflicting_range: str, specific_date: Optional[str] = None):
        prefix = f"Overlapping slot on {specific_date}" if specific_date else "Overlapping slot"
        super().__init__(
            message=f"{prefix}: {new_range} conflicts with {conflicting_range}",
            code="AVAILABILITY_OVERLAP",
            details={
                "date": specific_date or "",
                "new_slot": new_range,
                "conflicting_slot": conflicting_range,
            },
        )


class InvalidTransitionException(BusinessRuleException):
    """Raised when an appointment cannot move to the requested status."""

    def __init__(self, appointment_id: str, current_status: str, action: str):
        super().__init__(
            message=f"Cannot {action} appointment in status {current_status}",
            code="INVALID_TRANSITION",
            details={
                "appointment_id": appointment_id,
                "current_status": current_status,
                "action": action,
            },
        )


class IneligibleStaffException(BusinessRuleException):
    """Raised when a staff member does not perform the requested service."""

    def __init__(self, staff_id: str, service_id: str):
        super().__init__(
            message="Staff member cannot perform this service",
            code="INELIGIBLE_STAFF",
            details={"staff_id": staff_id, "service_id": service_id},
        )


class ServiceNotFoundException(NotFoundException):
    """Raised when a service cannot be resolved from the catalog."""

    def __init__(self, service_id: str):
        super().__init__(
            message="Service not found",
            code="SERVICE_NOT_FOUND",
            details={"service_id": service_id},
        )


class NoAvailabilityException(NotFoundException):
    """Raised when a staff member has no availability on the requested date."""

    def __init__(self, staff_id: str, specific_date: str):
        super().__init__(
            message=f"Staff member has no availability on {specific_date}",
            code="NO_AVAILABILITY",
            details={"staff_id": staff_id, "date": specific_date},
        )


class BookingConflictException(ConflictException):
    """Raised when a booking conflicts with existing bookings."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: str = "BOOKING_CONFLICT",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "This time slot conflicts with an existing booking",
            code=code,
            details=details or {},
        )

    @property
    def alternative_slots(self) -> List[Dict[str, Any]]:
        return list(self.details.get("alternative_slots", []))


class SlotUnavailableException(BookingConflictException):
    """Raised when the requested interval is not inside the staff's free time."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "The requested time slot is not available",
            code="SLOT_UNAVAILABLE",
            details=details,
        )


class AvailabilityConflictException(ConflictException):
    """Raised when an availability edit would orphan a booked appointment."""

    def __init__(self, staff_id: str, specific_date: str, appointment_ids: List[str]):
        super().__init__(
            message=(
                f"Availability change on {specific_date} would leave "
                f"{len(appointment_ids)} appointment(s) outside available time"
            ),
            code="AVAILABILITY_CONFLICT",
            details={
                "staff_id": staff_id,
                "date": specific_date,
                "appointment_ids": appointment_ids,
            },
        )


class AccessDeniedException(ForbiddenException):
    """Raised when the caller does not own the resource they act on."""

    def __init__(self, message: str = "Access denied", *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="ACCESS_DENIED", details=details)


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
