import json
import os
from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import MagicMock

# Settings are read at import time
os.environ.setdefault("CLINIC_API_BASE_URL", "http://clinic.test/api")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-unit-tests")
os.environ.setdefault("LOG_FORMAT", "console")

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from clinic_gateway.config import settings
from clinic_gateway.core.clinic_api import ClinicApiClient, get_clinic_client
from clinic_gateway.core.redis_client import get_redis_client
from clinic_gateway.core.security import create_access_token, session_claims
from clinic_gateway.dependencies import get_now
from clinic_gateway.main import app
from clinic_gateway.schemas.auth import Role, Session

# Monday 10 June 2024, 09:00 UTC
FIXED_NOW = datetime(2024, 6, 10, 9, 0, tzinfo=UTC)

PATIENT_ID = "1"
OTHER_PATIENT_ID = "2"
DOCTOR_ID = "7"
OTHER_DOCTOR_ID = "8"


class FakeClinicBackend:
    """In-memory stand-in for the clinic API, served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.users: dict[str, dict[str, Any]] = {
            "ana@example.com": {
                "ID": 1,
                "email": "ana@example.com",
                "password": "secret",
                "role": "user",
                "Estado": "activo",
                "Tipo": "paciente",
                "name": "Ana Martínez",
            },
            "luis@example.com": {
                "ID": 2,
                "email": "luis@example.com",
                "password": "secret",
                "role": "user",
                "Estado": "activo",
                "Tipo": "paciente",
                "name": "Luis Sánchez",
            },
            "garcia@example.com": {
                "ID": 7,
                "email": "garcia@example.com",
                "password": "secret",
                "role": "doc",
                "Estado": "activo",
                "Tipo": "medico",
                "name": "Dr. García",
            },
        }
        self.appointments: dict[str, dict[str, Any]] = {}
        self.requests: list[httpx.Request] = []
        self.fail_with: int | None = None
        self.conflict_on_update = False
        self._next_id = 100

    def add_appointment(
        self,
        scheduled_at: datetime,
        status: str = "scheduled",
        patient_id: int = 1,
        provider_id: int = 7,
        **extra: Any,
    ) -> dict[str, Any]:
        self._next_id += 1
        record = {
            "id": self._next_id,
            "patientName": self._name_of(patient_id),
            "patientId": patient_id,
            "providerId": provider_id,
            "specialty": "Cardiología",
            "assignedProvider": self._name_of(provider_id),
            "scheduledAt": scheduled_at.isoformat(),
            "status": status,
            "diagnosis": None,
            "recommendations": None,
        }
        record.update(extra)
        self.appointments[str(record["id"])] = record
        return record

    def _name_of(self, user_id: Any) -> str:
        for user in self.users.values():
            if str(user["ID"]) == str(user_id):
                return user["name"]
        return "Desconocido"

    def requests_to(self, method: str, path_prefix: str) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.method == method and r.url.path.removeprefix("/api").startswith(path_prefix)
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if self.fail_with is not None:
            return httpx.Response(self.fail_with, json={"message": "Clinic backend failure"})

        path = request.url.path.removeprefix("/api")
        method = request.method

        if method == "GET" and path == "/health":
            return httpx.Response(200, json={"status": "ok"})
        if method == "POST" and path == "/login":
            return self._login(request)
        if method == "POST" and path == "/register":
            return self._register(request)
        if method == "GET" and path == "/availability":
            return self._availability(request)
        if method == "POST" and path == "/appointments":
            return self._create(request)
        if method == "GET" and path == "/appointments":
            return self._list(request)
        if path.startswith("/appointments/"):
            appointment_id = path.rsplit("/", 1)[1]
            record = self.appointments.get(appointment_id)
            if record is None:
                return httpx.Response(404, json={"message": "Appointment not found"})
            if method == "GET":
                return httpx.Response(200, json=record)
            if method == "PATCH":
                return self._update(request, record)

        return httpx.Response(404, json={"message": "Not found"})

    def _login(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        user = self.users.get(body["email"])
        if user is None or user["password"] != body["password"]:
            return httpx.Response(401, json={"message": "Invalid credentials"})
        identity = {key: user[key] for key in ("ID", "email", "role", "Estado", "Tipo")}
        return httpx.Response(200, json=identity)

    def _register(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if body["email"] in self.users:
            return httpx.Response(409, json={"message": "Email already registered"})
        self.users[body["email"]] = {
            "ID": len(self.users) + 10,
            "email": body["email"],
            "password": body["password"],
            "role": "user",
            "Estado": "activo",
            "Tipo": "paciente",
            "name": body["email"],
        }
        return httpx.Response(201, json={"message": "created"})

    def _availability(self, request: httpx.Request) -> httpx.Response:
        day = request.url.params["date"]
        specialty = request.url.params["specialty"]
        slots = [
            {
                "scheduledAt": f"{day}T{hour}:00+00:00",
                "specialty": specialty,
                "assignedProvider": "Dr. García",
                "providerId": 7,
                "durationMinutes": 20,
            }
            for hour in ("10:20", "08:00", "10:00")
        ]
        return httpx.Response(200, json={"slots": slots})

    def _create(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        record = self.add_appointment(
            scheduled_at=datetime.fromisoformat(body["scheduledAt"]),
            patient_id=body["patientId"],
            provider_id=body.get("providerId") or 7,
            specialty=body["specialty"],
            assignedProvider=body["assignedProvider"],
        )
        return httpx.Response(201, json=record)

    def _list(self, request: httpx.Request) -> httpx.Response:
        params = request.url.params
        items = list(self.appointments.values())
        if "patientId" in params:
            items = [a for a in items if str(a["patientId"]) == params["patientId"]]
        if "providerId" in params:
            items = [a for a in items if str(a["providerId"]) == params["providerId"]]
        if "date" in params:
            items = [a for a in items if a["scheduledAt"][:10] == params["date"]]
        return httpx.Response(200, json={"items": items})

    def _update(self, request: httpx.Request, record: dict[str, Any]) -> httpx.Response:
        body = json.loads(request.content)
        if self.conflict_on_update or body.get("expectedStatus") != record["status"]:
            return httpx.Response(409, json={"message": "Appointment was modified"})
        record["status"] = body["status"]
        if "diagnosis" in body:
            record["diagnosis"] = body["diagnosis"]
            record["recommendations"] = body.get("recommendations")
        return httpx.Response(200, json=record)


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def clinic_backend() -> FakeClinicBackend:
    return FakeClinicBackend()


@pytest_asyncio.fixture
async def clinic_client(
    clinic_backend: FakeClinicBackend,
) -> AsyncGenerator[ClinicApiClient, None]:
    client = ClinicApiClient(
        base_url=settings.clinic_api_base_url,
        transport=httpx.MockTransport(clinic_backend),
    )
    yield client
    await client.aclose()


@pytest.fixture
def fake_redis() -> MagicMock:
    """Dict-backed Redis double."""
    store: dict[str, str] = {}
    mock = MagicMock()
    mock.store = store
    mock.get.side_effect = store.get
    mock.set.side_effect = lambda key, value: store.__setitem__(key, value)
    mock.setex.side_effect = lambda key, ttl, value: store.__setitem__(key, value)
    mock.delete.side_effect = lambda *keys: sum(store.pop(k, None) is not None for k in keys)
    mock.exists.side_effect = lambda key: int(key in store)
    return mock


@pytest_asyncio.fixture
async def client(
    clinic_client: ClinicApiClient,
    fake_redis: MagicMock,
    now: datetime,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""
    app.dependency_overrides[get_clinic_client] = lambda: clinic_client
    app.dependency_overrides[get_redis_client] = lambda: fake_redis
    app.dependency_overrides[get_now] = lambda: now

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


def _headers_for(session: Session) -> dict[str, str]:
    token = create_access_token(data=session_claims(session), expires_delta=timedelta(minutes=30))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def patient_session() -> Session:
    return Session(user_id=PATIENT_ID, email="ana@example.com", role=Role.PATIENT)


@pytest.fixture
def doctor_session() -> Session:
    return Session(user_id=DOCTOR_ID, email="garcia@example.com", role=Role.DOCTOR)


@pytest.fixture
def patient_headers(patient_session: Session) -> dict[str, str]:
    return _headers_for(patient_session)


@pytest.fixture
def doctor_headers(doctor_session: Session) -> dict[str, str]:
    return _headers_for(doctor_session)


@pytest.fixture
def other_doctor_headers() -> dict[str, str]:
    return _headers_for(
        Session(user_id=OTHER_DOCTOR_ID, email="ruiz@example.com", role=Role.DOCTOR)
    )


@pytest.fixture
def in_hours(now: datetime) -> Callable[[float], datetime]:
    """Timestamp a number of hours after the fixed clock."""
    return lambda hours: now + timedelta(hours=hours)
