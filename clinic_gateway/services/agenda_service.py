"""Doctor-side workflow: daily agenda, diagnosis drafts and completion."""

from datetime import UTC, date, datetime
from typing import assert_never

import structlog

from clinic_gateway.config import settings
from clinic_gateway.core import lifecycle
from clinic_gateway.core.clinic_api import ClinicApiClient
from clinic_gateway.core.exceptions import (
    ForbiddenException,
    InvalidTransitionException,
    ServiceUnavailableException,
)
from clinic_gateway.core.redis_client import CacheManager
from clinic_gateway.schemas.appointments import (
    AgendaAppointment,
    AgendaCounts,
    Appointment,
    AppointmentComplete,
    AppointmentStatus,
    DailyAgendaResponse,
    DiagnosisDraft,
)
from clinic_gateway.schemas.auth import Session

logger = structlog.get_logger()


class AgendaService:
    """Service for a doctor's agenda."""

    def __init__(self, clinic: ClinicApiClient, cache_manager: CacheManager):
        """Initialize service with the clinic client and cache manager."""
        self.clinic = clinic
        self.cache = cache_manager

    @staticmethod
    def _draft_cache_key(appointment_id: str) -> str:
        """Generate cache key for a diagnosis draft."""
        return f"diagnosis_draft:{appointment_id}"

    async def daily_agenda(self, session: Session, day: date) -> DailyAgendaResponse:
        """
        Get the doctor's appointments for a day grouped by status.

        Only the ``scheduled`` group can take drafts and completion;
        ``awaiting_confirmation`` holds ACTIVE appointments the patient has
        not confirmed yet.

        Args:
            session: Doctor session
            day: Agenda day

        Returns:
            Grouped appointments with per-group counts
        """
        appointments = await self.clinic.list_provider_appointments(session.user_id, day)
        appointments.sort(key=lambda a: a.scheduled_at)

        scheduled: list[Appointment] = []
        awaiting_confirmation: list[Appointment] = []
        completed: list[Appointment] = []
        cancelled: list[Appointment] = []

        for appointment in appointments:
            match appointment.status:
                case AppointmentStatus.SCHEDULED:
                    scheduled.append(appointment)
                case AppointmentStatus.ACTIVE:
                    awaiting_confirmation.append(appointment)
                case AppointmentStatus.COMPLETED:
                    completed.append(appointment)
                case AppointmentStatus.CANCELLED:
                    cancelled.append(appointment)
                case _:
                    assert_never(appointment.status)

        return DailyAgendaResponse(
            day=day,
            counts=AgendaCounts(
                scheduled=len(scheduled),
                awaiting_confirmation=len(awaiting_confirmation),
                completed=len(completed),
                cancelled=len(cancelled),
            ),
            scheduled=scheduled,
            awaiting_confirmation=awaiting_confirmation,
            completed=completed,
            cancelled=cancelled,
        )

    async def _get_own_appointment(self, session: Session, appointment_id: str) -> Appointment:
        """Fetch an appointment assigned to the doctor."""
        appointment = await self.clinic.get_appointment(appointment_id)

        if appointment.provider_id != session.user_id:
            raise ForbiddenException("Access denied to this appointment")

        return appointment

    async def get_appointment(self, session: Session, appointment_id: str) -> AgendaAppointment:
        """
        Get an appointment detail with its provisional diagnosis, if any.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If it is assigned to another doctor
        """
        appointment = await self._get_own_appointment(session, appointment_id)

        draft = None
        if appointment.status == AppointmentStatus.SCHEDULED:
            draft = self._load_draft(appointment.id)

        return AgendaAppointment(appointment=appointment, draft=draft)

    def _load_draft(self, appointment_id: str) -> DiagnosisDraft | None:
        cached = self.cache.get_json(self._draft_cache_key(appointment_id))
        if cached is None:
            return None
        return DiagnosisDraft.model_validate(cached)

    async def get_draft(self, session: Session, appointment_id: str) -> DiagnosisDraft:
        """Get the saved draft, or an empty one."""
        appointment = await self._get_own_appointment(session, appointment_id)
        return self._load_draft(appointment.id) or DiagnosisDraft()

    async def save_draft(
        self,
        session: Session,
        appointment_id: str,
        draft: DiagnosisDraft,
    ) -> DiagnosisDraft:
        """
        Save provisional diagnosis notes.

        Diagnosis fields are read-only once the appointment is closed.

        Raises:
            InvalidTransitionException: If the appointment is no longer scheduled
            ServiceUnavailableException: If Redis did not store the draft
        """
        appointment = await self._get_own_appointment(session, appointment_id)

        if appointment.status != AppointmentStatus.SCHEDULED:
            raise InvalidTransitionException(
                f"Appointment is {appointment.status.value} and can no longer be edited"
            )

        stored = draft.model_copy(update={"updated_at": datetime.now(UTC)})
        saved = self.cache.set_json(
            self._draft_cache_key(appointment.id),
            stored.model_dump(mode="json"),
            ttl=settings.diagnosis_draft_ttl_seconds,
        )
        if not saved:
            logger.error("diagnosis_draft_not_stored", appointment_id=appointment.id)
            raise ServiceUnavailableException("Diagnosis draft could not be saved, try again")

        logger.info("diagnosis_draft_saved", appointment_id=appointment.id)

        return stored

    async def complete_appointment(
        self,
        session: Session,
        appointment_id: str,
        data: AppointmentComplete,
    ) -> Appointment:
        """
        Record the diagnosis and mark the appointment as completed.

        Raises:
            ValidationException: If the diagnosis is blank
            InvalidTransitionException: If the appointment is not scheduled
            ConflictException: If the clinic API saw a concurrent change
        """
        current = await self._get_own_appointment(session, appointment_id)
        completed = lifecycle.complete(current, data.diagnosis, data.recommendations)

        stored = await self.clinic.update_status(completed, expected_status=current.status)
        self.cache.delete(self._draft_cache_key(current.id))

        logger.info(
            "appointment_completed",
            appointment_id=stored.id,
            provider_id=session.user_id,
        )
        return stored
