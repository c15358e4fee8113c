"""Patient-side appointment workflow: availability, booking, review and cancellation."""

from datetime import UTC, date, datetime
from typing import assert_never

import structlog

from clinic_gateway.core import lifecycle
from clinic_gateway.core.clinic_api import ClinicApiClient
from clinic_gateway.core.exceptions import ForbiddenException, ValidationException
from clinic_gateway.schemas.appointments import (
    Appointment,
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentStatus,
    AvailabilityResponse,
    AvailabilitySlot,
    PatientAppointment,
    Specialty,
)
from clinic_gateway.schemas.auth import Session

logger = structlog.get_logger()


def _canonical(status: AppointmentStatus) -> AppointmentStatus:
    """Fold the patient-facing synonym into the status it stands for."""
    match status:
        case AppointmentStatus.ACTIVE | AppointmentStatus.SCHEDULED:
            return AppointmentStatus.SCHEDULED
        case AppointmentStatus.COMPLETED | AppointmentStatus.CANCELLED:
            return status
        case _:
            assert_never(status)


class AppointmentService:
    """Service for a patient's appointments."""

    def __init__(self, clinic: ClinicApiClient):
        """Initialize service with the clinic API client."""
        self.clinic = clinic

    async def search_availability(
        self,
        day: date,
        specialty: Specialty,
        now: datetime,
    ) -> AvailabilityResponse:
        """
        Find bookable slots for a specialty on a day.

        Args:
            day: Requested calendar day
            specialty: Requested specialty
            now: Current time

        Returns:
            Slots inside the booking window, earliest first

        Raises:
            ValidationException: If no part of the day is bookable
        """
        if not lifecycle.is_booking_day_open(day, now):
            raise ValidationException(
                "Please select a date within the booking window and a specialty"
            )

        slots = await self.clinic.search_availability(specialty, day)
        bookable = sorted(
            (slot for slot in slots if lifecycle.is_booking_window_valid(slot.scheduled_at, now)),
            key=lambda slot: slot.scheduled_at,
        )

        logger.info(
            "availability_searched",
            day=day.isoformat(),
            specialty=specialty.value,
            offered=len(slots),
            bookable=len(bookable),
        )

        return AvailabilityResponse(
            day=day,
            specialty=specialty,
            specialty_label=specialty.label,
            slots=bookable,
        )

    async def book(
        self,
        session: Session,
        data: AppointmentCreate,
        now: datetime,
    ) -> Appointment:
        """
        Confirm a slot as a new appointment for the patient.

        Raises:
            ValidationException: If the slot is outside the booking window
        """
        lifecycle.ensure_booking_window(data.scheduled_at, now)

        slot = AvailabilitySlot(
            scheduled_at=data.scheduled_at,
            specialty=data.specialty,
            assigned_provider=data.assigned_provider,
            provider_id=data.provider_id,
        )
        appointment = await self.clinic.create_appointment(session.user_id, slot)

        logger.info(
            "appointment_booked",
            appointment_id=appointment.id,
            patient_id=session.user_id,
            scheduled_at=appointment.scheduled_at.isoformat(),
        )
        return appointment

    async def get_appointment(self, session: Session, appointment_id: str) -> Appointment:
        """
        Get one of the patient's appointments.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If it belongs to someone else
        """
        appointment = await self.clinic.get_appointment(appointment_id)

        if appointment.patient_id != session.user_id:
            raise ForbiddenException("Access denied to this appointment")

        return appointment

    async def list_appointments(
        self,
        session: Session,
        filters: AppointmentFilters,
        now: datetime,
    ) -> AppointmentListResponse:
        """
        List the patient's appointments with optional day and status filters.

        ``active`` and ``scheduled`` filter values match each other.
        """
        appointments = await self.clinic.list_patient_appointments(session.user_id)

        if filters.day is not None:
            appointments = [
                a for a in appointments if a.scheduled_at.astimezone(UTC).date() == filters.day
            ]

        if filters.status is not None:
            wanted = _canonical(filters.status)
            appointments = [a for a in appointments if _canonical(a.status) == wanted]

        appointments.sort(key=lambda a: a.scheduled_at)
        items = [self.annotate(a, now) for a in appointments]

        return AppointmentListResponse(total=len(items), items=items)

    @staticmethod
    def annotate(appointment: Appointment, now: datetime) -> PatientAppointment:
        """Attach cancellation eligibility and remaining hours."""
        return PatientAppointment(
            **appointment.model_dump(),
            cancellable=lifecycle.is_cancellable(appointment, now),
            hours_remaining=(
                lifecycle.hours_until(appointment, now)
                if lifecycle.is_open(appointment.status)
                else None
            ),
        )

    async def cancel_appointment(
        self,
        session: Session,
        appointment_id: str,
        now: datetime,
    ) -> Appointment:
        """
        Cancel one of the patient's appointments.

        Raises:
            IneligibleCancellationException: If it is closed or too close
            ConflictException: If the clinic API saw a concurrent change
        """
        current = await self.get_appointment(session, appointment_id)
        cancelled = lifecycle.cancel(current, now)

        stored = await self.clinic.update_status(cancelled, expected_status=current.status)

        logger.info(
            "appointment_cancelled",
            appointment_id=stored.id,
            patient_id=session.user_id,
            hours_before=lifecycle.hours_until(current, now),
        )
        return stored
