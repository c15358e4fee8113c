"""Appointment schemas for request/response validation."""

from datetime import UTC, date, datetime
from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from clinic_gateway.config import settings


class AppointmentStatus(str, Enum):
    """Appointment status enumeration.

    ``ACTIVE`` is what patient-facing clients call a scheduled appointment
    that has not been confirmed yet; it is treated as ``SCHEDULED`` wherever
    cancellation or filtering is concerned.
    """

    SCHEDULED = "scheduled"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def _missing_(cls, value: object) -> "AppointmentStatus | None":
        # Clinic API sends upper-case values
        if isinstance(value, str):
            lowered = value.lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None


class Specialty(str, Enum):
    """Medical specialties offered for booking."""

    GENERAL = "general"
    CARDIOLOGIA = "cardiologia"
    DERMATOLOGIA = "dermatologia"
    PEDIATRIA = "pediatria"

    @property
    def label(self) -> str:
        """Human readable name."""
        return _SPECIALTY_LABELS[self]


_SPECIALTY_LABELS = {
    Specialty.GENERAL: "Medicina General",
    Specialty.CARDIOLOGIA: "Cardiología",
    Specialty.DERMATOLOGIA: "Dermatología",
    Specialty.PEDIATRIA: "Pediatría",
}


def _as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class Appointment(BaseModel):
    """An appointment as reported by the clinic API.

    Values are immutable; lifecycle transitions return new instances.
    """

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    id: str
    patient_name: str = Field(
        default="",
        validation_alias=AliasChoices("patient_name", "patientName"),
    )
    specialty: str
    assigned_provider: str = Field(
        validation_alias=AliasChoices("assigned_provider", "assignedProvider"),
    )
    scheduled_at: datetime = Field(
        validation_alias=AliasChoices("scheduled_at", "scheduledAt"),
    )
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    patient_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("patient_id", "patientId"),
    )
    provider_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("provider_id", "providerId"),
    )
    diagnosis: str | None = None
    recommendations: str | None = None

    @field_validator("scheduled_at")
    @classmethod
    def normalize_timezone(cls, v: datetime) -> datetime:
        """Attach UTC to naive timestamps."""
        return _as_utc(v)


class PatientAppointment(Appointment):
    """Appointment annotated for the patient's list view."""

    cancellable: bool
    hours_remaining: int | None = None


class AppointmentListResponse(BaseModel):
    """Schema for appointment list response."""

    total: int
    items: list[PatientAppointment]


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    day: date | None = None
    status: AppointmentStatus | None = None


class AvailabilitySlot(BaseModel):
    """A bookable time slot offered by the clinic API."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    scheduled_at: datetime = Field(
        validation_alias=AliasChoices("scheduled_at", "scheduledAt"),
    )
    specialty: Specialty
    assigned_provider: str = Field(
        validation_alias=AliasChoices("assigned_provider", "assignedProvider"),
    )
    provider_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("provider_id", "providerId"),
    )
    duration_minutes: int = Field(
        default_factory=lambda: settings.appointment_duration_minutes,
        validation_alias=AliasChoices("duration_minutes", "durationMinutes"),
    )

    @field_validator("scheduled_at")
    @classmethod
    def normalize_timezone(cls, v: datetime) -> datetime:
        """Attach UTC to naive timestamps."""
        return _as_utc(v)


class AvailabilityResponse(BaseModel):
    """Slots available on a given day for a specialty."""

    day: date
    specialty: Specialty
    specialty_label: str
    slots: list[AvailabilitySlot]


class AppointmentCreate(BaseModel):
    """Schema for confirming a proposed slot as a new appointment."""

    scheduled_at: datetime
    specialty: Specialty
    assigned_provider: str = Field(..., min_length=1, max_length=200)
    provider_id: str | None = Field(None, max_length=100)

    @field_validator("scheduled_at")
    @classmethod
    def normalize_timezone(cls, v: datetime) -> datetime:
        """Attach UTC to naive timestamps."""
        return _as_utc(v)


class AppointmentComplete(BaseModel):
    """Schema for completing an appointment with a diagnosis.

    An empty diagnosis is accepted here and rejected by the lifecycle rules
    so that the caller gets the domain error instead of a schema error.
    """

    diagnosis: str = Field(default="", max_length=4000)
    recommendations: str | None = Field(None, max_length=4000)


class DiagnosisDraft(BaseModel):
    """Provisional diagnosis notes kept until the appointment is completed."""

    diagnosis: str = Field(default="", max_length=4000)
    recommendations: str = Field(default="", max_length=4000)
    updated_at: datetime | None = None


class AgendaAppointment(BaseModel):
    """Appointment detail for the doctor, with any saved draft."""

    appointment: Appointment
    draft: DiagnosisDraft | None = None


class AgendaCounts(BaseModel):
    """Number of appointments per status group."""

    scheduled: int = 0
    awaiting_confirmation: int = 0
    completed: int = 0
    cancelled: int = 0


class DailyAgendaResponse(BaseModel):
    """A doctor's appointments for one day grouped by status.

    ``scheduled`` appointments accept drafts and completion. ACTIVE ones are
    listed under ``awaiting_confirmation`` and stay read-only until confirmed.
    """

    day: date
    counts: AgendaCounts
    scheduled: list[Appointment]
    awaiting_confirmation: list[Appointment]
    completed: list[Appointment]
    cancelled: list[Appointment]
