"""Patient appointment endpoints."""

from datetime import date

from fastapi import APIRouter, Query, status

from clinic_gateway.dependencies import ClinicClient, Now, PatientSession
from clinic_gateway.schemas.appointments import (
    Appointment,
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentStatus,
    AvailabilityResponse,
    PatientAppointment,
    Specialty,
)
from clinic_gateway.services.appointment_service import AppointmentService

router = APIRouter()


@router.get(
    "/availability",
    response_model=AvailabilityResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Search availability",
)
async def search_availability(
    session: PatientSession,
    clinic: ClinicClient,
    now: Now,
    day: date = Query(..., alias="date"),
    specialty: Specialty = Query(...),
) -> AvailabilityResponse:
    """
    Search bookable slots for a specialty on a day.

    Args:
        session: Patient session
        clinic: Clinic API client
        now: Current time
        day: Requested day
        specialty: Requested specialty

    Returns:
        Slots inside the booking window
    """
    service = AppointmentService(clinic)
    return await service.search_availability(day, specialty, now)


@router.post(
    "/",
    response_model=Appointment,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Book appointment",
)
async def book_appointment(
    data: AppointmentCreate,
    session: PatientSession,
    clinic: ClinicClient,
    now: Now,
) -> Appointment:
    """
    Confirm a proposed slot as a new appointment.

    Args:
        data: Slot to confirm
        session: Patient session
        clinic: Clinic API client
        now: Current time

    Returns:
        Created appointment
    """
    service = AppointmentService(clinic)
    return await service.book(session, data, now)


@router.get(
    "/",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List appointments",
)
async def list_appointments(
    session: PatientSession,
    clinic: ClinicClient,
    now: Now,
    day: date | None = Query(None, alias="date"),
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
) -> AppointmentListResponse:
    """
    List the patient's appointments.

    Args:
        session: Patient session
        clinic: Clinic API client
        now: Current time
        day: Filter by calendar day
        status_filter: Filter by status

    Returns:
        Appointments with cancellation eligibility
    """
    filters = AppointmentFilters(day=day, status=status_filter)

    service = AppointmentService(clinic)
    return await service.list_appointments(session, filters, now)


@router.get(
    "/{appointment_id}",
    response_model=PatientAppointment,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: str,
    session: PatientSession,
    clinic: ClinicClient,
    now: Now,
) -> PatientAppointment:
    """Get one of the patient's appointments."""
    service = AppointmentService(clinic)
    appointment = await service.get_appointment(session, appointment_id)
    return service.annotate(appointment, now)


@router.post(
    "/{appointment_id}/cancel",
    response_model=Appointment,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Cancel appointment",
)
async def cancel_appointment(
    appointment_id: str,
    session: PatientSession,
    clinic: ClinicClient,
    now: Now,
) -> Appointment:
    """
    Cancel an appointment while enough lead time remains.

    Raises:
        IneligibleCancellationException: If the appointment can no longer be cancelled
    """
    service = AppointmentService(clinic)
    return await service.cancel_appointment(session, appointment_id, now)
