"""Async client for the external clinic API.

The clinic API owns identity, availability and appointment storage. Calls
are made once with a timeout; failures are mapped onto application
exceptions and never retried.
"""

from datetime import date
from typing import Any

import httpx
import structlog

from clinic_gateway.config import settings
from clinic_gateway.core.exceptions import (
    AppException,
    BadRequestException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
    UnauthorizedException,
    UpstreamServiceException,
)
from clinic_gateway.schemas.appointments import (
    Appointment,
    AppointmentStatus,
    AvailabilitySlot,
    Specialty,
)
from clinic_gateway.schemas.auth import ClinicIdentity

logger = structlog.get_logger()

_STATUS_ERRORS: dict[int, type[AppException]] = {
    400: BadRequestException,
    401: UnauthorizedException,
    403: ForbiddenException,
    404: NotFoundException,
    409: ConflictException,
    422: BadRequestException,
}


class ClinicApiClient:
    """Thin typed wrapper over the clinic API HTTP contract."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize client; ``transport`` lets tests plug in a fake backend."""
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """
        Send a request and decode the JSON body.

        Raises:
            AppException: Subclass matching the clinic API error status
            UpstreamServiceException: On transport errors or 5xx responses
        """
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error("clinic_api_unreachable", method=method, path=path, error=str(e))
            raise UpstreamServiceException(f"Clinic service unreachable: {e!s}") from e

        if response.is_success:
            if not response.content:
                return None
            try:
                return response.json()
            except ValueError as e:
                raise UpstreamServiceException("Clinic service returned invalid JSON") from e

        message = _error_message(response)
        logger.warning(
            "clinic_api_error",
            method=method,
            path=path,
            status_code=response.status_code,
            message=message,
        )

        exc_class = _STATUS_ERRORS.get(response.status_code)
        if exc_class is None:
            raise UpstreamServiceException(f"Clinic service error: {message}")
        raise exc_class(message)

    async def login(self, email: str, password: str) -> ClinicIdentity:
        """Verify credentials and return the account identity."""
        data = await self._request("POST", "/login", json={"email": email, "password": password})
        return ClinicIdentity.model_validate(data)

    async def register(self, email: str, password: str) -> None:
        """Create a patient account."""
        await self._request("POST", "/register", json={"email": email, "password": password})

    async def search_availability(self, specialty: Specialty, day: date) -> list[AvailabilitySlot]:
        """List open slots for a specialty on a day."""
        data = await self._request(
            "GET",
            "/availability",
            params={"specialty": specialty.value, "date": day.isoformat()},
        )
        return [AvailabilitySlot.model_validate(slot) for slot in (data or {}).get("slots", [])]

    async def create_appointment(
        self,
        patient_id: str,
        slot: AvailabilitySlot,
    ) -> Appointment:
        """Book a slot for a patient."""
        payload = {
            "patientId": patient_id,
            "specialty": slot.specialty.value,
            "assignedProvider": slot.assigned_provider,
            "providerId": slot.provider_id,
            "scheduledAt": slot.scheduled_at.isoformat(),
        }
        data = await self._request("POST", "/appointments", json=payload)
        return Appointment.model_validate(data)

    async def get_appointment(self, appointment_id: str) -> Appointment:
        """Fetch a single appointment."""
        data = await self._request("GET", f"/appointments/{appointment_id}")
        return Appointment.model_validate(data)

    async def list_patient_appointments(self, patient_id: str) -> list[Appointment]:
        """All appointments belonging to a patient."""
        data = await self._request("GET", "/appointments", params={"patientId": patient_id})
        return _parse_items(data)

    async def list_provider_appointments(self, provider_id: str, day: date) -> list[Appointment]:
        """A provider's appointments on a given day."""
        data = await self._request(
            "GET",
            "/appointments",
            params={"providerId": provider_id, "date": day.isoformat()},
        )
        return _parse_items(data)

    async def update_status(
        self,
        updated: Appointment,
        expected_status: AppointmentStatus,
    ) -> Appointment:
        """
        Persist a status transition.

        ``expected_status`` is the status the transition was validated
        against; the clinic API answers 409 if it has changed meanwhile.
        """
        payload: dict[str, Any] = {
            "status": updated.status.value,
            "expectedStatus": expected_status.value,
        }
        if updated.status == AppointmentStatus.COMPLETED:
            payload["diagnosis"] = updated.diagnosis
            payload["recommendations"] = updated.recommendations

        data = await self._request("PATCH", f"/appointments/{updated.id}", json=payload)
        return Appointment.model_validate(data)

    async def check_connection(self) -> bool:
        """Whether the clinic API answers at all."""
        try:
            response = await self._http.get("/health")
        except httpx.HTTPError:
            return False
        return response.status_code < 500


def _parse_items(data: Any) -> list[Appointment]:
    """Decode an ``{"items": [...]}`` envelope."""
    return [Appointment.model_validate(item) for item in (data or {}).get("items", [])]


def _error_message(response: httpx.Response) -> str:
    """Best-effort error text from a clinic API response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase

    if isinstance(body, dict):
        for key in ("message", "detail", "error"):
            if isinstance(body.get(key), str):
                return body[key]
    return response.reason_phrase


# Global client instance
_clinic_client: ClinicApiClient | None = None


def get_clinic_client() -> ClinicApiClient:
    """Get or create the shared clinic API client."""
    global _clinic_client

    if _clinic_client is None:
        _clinic_client = ClinicApiClient(
            base_url=settings.clinic_api_base_url,
            timeout=settings.clinic_api_timeout_seconds,
        )

    return _clinic_client


async def close_clinic_client() -> None:
    """Close the shared clinic API client."""
    global _clinic_client

    if _clinic_client is not None:
        await _clinic_client.aclose()
        _clinic_client = None
