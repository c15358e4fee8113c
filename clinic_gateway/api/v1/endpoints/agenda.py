"""Doctor agenda endpoints."""

from datetime import date

from fastapi import APIRouter, Query, status

from clinic_gateway.dependencies import CacheManagerDep, ClinicClient, DoctorSession, Now
from clinic_gateway.schemas.appointments import (
    AgendaAppointment,
    Appointment,
    AppointmentComplete,
    DailyAgendaResponse,
    DiagnosisDraft,
)
from clinic_gateway.services.agenda_service import AgendaService

router = APIRouter()


@router.get(
    "/",
    response_model=DailyAgendaResponse,
    status_code=status.HTTP_200_OK,
    tags=["Agenda"],
    summary="Daily agenda",
)
async def daily_agenda(
    session: DoctorSession,
    clinic: ClinicClient,
    cache_manager: CacheManagerDep,
    now: Now,
    day: date | None = Query(None, alias="date"),
) -> DailyAgendaResponse:
    """
    Get the doctor's appointments for a day, today by default.

    Args:
        session: Doctor session
        clinic: Clinic API client
        cache_manager: Cache manager
        now: Current time
        day: Agenda day

    Returns:
        Appointments grouped into scheduled, completed and cancelled
    """
    service = AgendaService(clinic, cache_manager)
    return await service.daily_agenda(session, day or now.date())


@router.get(
    "/appointments/{appointment_id}",
    response_model=AgendaAppointment,
    status_code=status.HTTP_200_OK,
    tags=["Agenda"],
    summary="Appointment detail",
)
async def get_agenda_appointment(
    appointment_id: str,
    session: DoctorSession,
    clinic: ClinicClient,
    cache_manager: CacheManagerDep,
) -> AgendaAppointment:
    """Get an appointment with its provisional diagnosis."""
    service = AgendaService(clinic, cache_manager)
    return await service.get_appointment(session, appointment_id)


@router.get(
    "/appointments/{appointment_id}/draft",
    response_model=DiagnosisDraft,
    status_code=status.HTTP_200_OK,
    tags=["Agenda"],
    summary="Get provisional diagnosis",
)
async def get_draft(
    appointment_id: str,
    session: DoctorSession,
    clinic: ClinicClient,
    cache_manager: CacheManagerDep,
) -> DiagnosisDraft:
    """Get the provisional diagnosis, empty if none was saved."""
    service = AgendaService(clinic, cache_manager)
    return await service.get_draft(session, appointment_id)


@router.put(
    "/appointments/{appointment_id}/draft",
    response_model=DiagnosisDraft,
    status_code=status.HTTP_200_OK,
    tags=["Agenda"],
    summary="Save provisional diagnosis",
)
async def save_draft(
    appointment_id: str,
    data: DiagnosisDraft,
    session: DoctorSession,
    clinic: ClinicClient,
    cache_manager: CacheManagerDep,
) -> DiagnosisDraft:
    """Save provisional diagnosis notes without completing the appointment."""
    service = AgendaService(clinic, cache_manager)
    return await service.save_draft(session, appointment_id, data)


@router.post(
    "/appointments/{appointment_id}/complete",
    response_model=Appointment,
    status_code=status.HTTP_200_OK,
    tags=["Agenda"],
    summary="Complete appointment",
)
async def complete_appointment(
    appointment_id: str,
    data: AppointmentComplete,
    session: DoctorSession,
    clinic: ClinicClient,
    cache_manager: CacheManagerDep,
) -> Appointment:
    """
    Record the diagnosis and mark the appointment as completed.

    Args:
        appointment_id: Appointment ID
        data: Diagnosis and recommendations
        session: Doctor session
        clinic: Clinic API client
        cache_manager: Cache manager

    Returns:
        Completed appointment
    """
    service = AgendaService(clinic, cache_manager)
    return await service.complete_appointment(session, appointment_id, data)
