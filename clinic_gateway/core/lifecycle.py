"""Appointment lifecycle rules.

Pure functions over :class:`Appointment` values: booking-window checks,
cancellation eligibility and the two terminal transitions::

    SCHEDULED|ACTIVE --cancel--> CANCELLED
    SCHEDULED --complete--> COMPLETED

Nothing leaves ``COMPLETED`` or ``CANCELLED``. Callers supply ``now`` so the
rules never read the clock themselves.
"""

from datetime import UTC, date, datetime, time, timedelta
from typing import assert_never

from clinic_gateway.config import settings
from clinic_gateway.core.exceptions import (
    IneligibleCancellationException,
    InvalidTransitionException,
    ValidationException,
)
from clinic_gateway.schemas.appointments import Appointment, AppointmentStatus


def booking_window(now: datetime) -> tuple[datetime, datetime]:
    """Earliest and latest timestamps a new appointment may take."""
    return (
        now + timedelta(days=settings.booking_min_days_ahead),
        now + timedelta(days=settings.booking_max_days_ahead),
    )


def is_booking_window_valid(candidate: datetime, now: datetime) -> bool:
    """Whether ``candidate`` is neither before the earliest nor after the latest bookable time."""
    earliest, latest = booking_window(now)
    return not candidate < earliest and not candidate > latest


def ensure_booking_window(candidate: datetime, now: datetime) -> None:
    """
    Reject a booking outside the allowed window.

    Raises:
        ValidationException: If the candidate timestamp is not bookable
    """
    if not is_booking_window_valid(candidate, now):
        raise ValidationException(
            f"Appointments must be booked between {settings.booking_min_days_ahead} "
            f"and {settings.booking_max_days_ahead} days in advance"
        )


def is_booking_day_open(day: date, now: datetime) -> bool:
    """Whether any instant of ``day`` (UTC) falls inside the booking window."""
    earliest, latest = booking_window(now)
    day_start = datetime.combine(day, time.min, tzinfo=UTC)
    day_end = datetime.combine(day, time.max, tzinfo=UTC)
    return day_end >= earliest and day_start <= latest


def is_open(status: AppointmentStatus) -> bool:
    """Whether the status still allows a transition."""
    match status:
        case AppointmentStatus.SCHEDULED | AppointmentStatus.ACTIVE:
            return True
        case AppointmentStatus.COMPLETED | AppointmentStatus.CANCELLED:
            return False
        case _:
            assert_never(status)


def hours_until(appointment: Appointment, now: datetime) -> int:
    """Whole hours left before the appointment, truncated toward zero."""
    seconds = (appointment.scheduled_at - now).total_seconds()
    return int(seconds / 3600)


def is_cancellable(
    appointment: Appointment,
    now: datetime,
    threshold_hours: int | None = None,
) -> bool:
    """
    Check whether a patient may still cancel the appointment.

    Lead time is counted in whole hours, as shown to the patient, and must
    be strictly greater than the threshold; 24.5 hours counts as 24 and is
    not cancellable with the default threshold.

    Args:
        appointment: Appointment to check
        now: Current time
        threshold_hours: Override for the configured threshold

    Returns:
        True if the appointment can be cancelled
    """
    if threshold_hours is None:
        threshold_hours = settings.cancellation_threshold_hours

    if not is_open(appointment.status):
        return False

    return hours_until(appointment, now) > threshold_hours


def cancel(
    appointment: Appointment,
    now: datetime,
    threshold_hours: int | None = None,
) -> Appointment:
    """
    Cancel an appointment.

    Returns:
        A copy of the appointment with status ``CANCELLED``

    Raises:
        IneligibleCancellationException: If the appointment is closed or too close
    """
    if threshold_hours is None:
        threshold_hours = settings.cancellation_threshold_hours

    if not is_open(appointment.status):
        raise IneligibleCancellationException(
            f"Appointment is {appointment.status.value} and cannot be cancelled"
        )

    if not is_cancellable(appointment, now, threshold_hours):
        raise IneligibleCancellationException(
            f"Appointments can only be cancelled more than {threshold_hours} hours in advance"
        )

    return appointment.model_copy(update={"status": AppointmentStatus.CANCELLED})


def complete(
    appointment: Appointment,
    diagnosis: str,
    recommendations: str | None,
) -> Appointment:
    """
    Mark an appointment as attended, recording the diagnosis.

    Args:
        appointment: Scheduled appointment
        diagnosis: Required diagnosis text
        recommendations: Optional recommendations for the patient

    Returns:
        A copy of the appointment with status ``COMPLETED``

    Raises:
        ValidationException: If the diagnosis is blank
        InvalidTransitionException: If the appointment is not scheduled
    """
    diagnosis = (diagnosis or "").strip()
    if not diagnosis:
        raise ValidationException("Diagnosis required")

    if appointment.status != AppointmentStatus.SCHEDULED:
        raise InvalidTransitionException(
            f"Only scheduled appointments can be completed, this one is {appointment.status.value}"
        )

    recommendations = (recommendations or "").strip() or None

    return appointment.model_copy(
        update={
            "status": AppointmentStatus.COMPLETED,
            "diagnosis": diagnosis,
            "recommendations": recommendations,
        }
    )
