"""Tests for appointment lifecycle rules."""

from datetime import UTC, date, datetime, timedelta

import pytest

from clinic_gateway.core import lifecycle
from clinic_gateway.core.exceptions import (
    IneligibleCancellationException,
    InvalidTransitionException,
    ValidationException,
)
from clinic_gateway.schemas.appointments import Appointment, AppointmentStatus

NOW = datetime(2024, 6, 10, 9, 0, tzinfo=UTC)


def make_appointment(
    hours_ahead: float = 48,
    status: AppointmentStatus = AppointmentStatus.SCHEDULED,
) -> Appointment:
    return Appointment(
        id="42",
        patient_name="Juan Pérez",
        specialty="Cardiología",
        assigned_provider="Dr. García",
        scheduled_at=NOW + timedelta(hours=hours_ahead),
        status=status,
    )


class TestBookingWindow:
    def test_just_before_one_day_is_rejected(self) -> None:
        candidate = NOW + timedelta(days=1) - timedelta(seconds=1)
        assert lifecycle.is_booking_window_valid(candidate, NOW) is False

    def test_just_after_one_day_is_accepted(self) -> None:
        candidate = NOW + timedelta(days=1) + timedelta(seconds=1)
        assert lifecycle.is_booking_window_valid(candidate, NOW) is True

    def test_just_after_thirty_days_is_rejected(self) -> None:
        candidate = NOW + timedelta(days=30) + timedelta(seconds=1)
        assert lifecycle.is_booking_window_valid(candidate, NOW) is False

    def test_exact_bounds_are_accepted(self) -> None:
        assert lifecycle.is_booking_window_valid(NOW + timedelta(days=1), NOW) is True
        assert lifecycle.is_booking_window_valid(NOW + timedelta(days=30), NOW) is True

    def test_past_dates_are_rejected(self) -> None:
        assert lifecycle.is_booking_window_valid(NOW - timedelta(days=2), NOW) is False

    def test_ensure_raises_validation_error(self) -> None:
        with pytest.raises(ValidationException) as exc_info:
            lifecycle.ensure_booking_window(NOW + timedelta(hours=3), NOW)
        assert exc_info.value.status_code == 422

    def test_ensure_accepts_valid_candidate(self) -> None:
        lifecycle.ensure_booking_window(NOW + timedelta(days=5), NOW)

    @pytest.mark.parametrize(
        ("day", "expected"),
        [
            (date(2024, 6, 10), False),
            (date(2024, 6, 11), True),
            (date(2024, 7, 10), True),
            (date(2024, 7, 11), False),
        ],
    )
    def test_booking_day_open(self, day: date, expected: bool) -> None:
        assert lifecycle.is_booking_day_open(day, NOW) is expected


class TestCancellation:
    def test_twenty_five_hours_ahead_is_cancellable(self) -> None:
        appointment = make_appointment(hours_ahead=25)

        assert lifecycle.is_cancellable(appointment, NOW, threshold_hours=24) is True

        cancelled = lifecycle.cancel(appointment, NOW, threshold_hours=24)
        assert cancelled.status == AppointmentStatus.CANCELLED
        assert appointment.status == AppointmentStatus.SCHEDULED

        with pytest.raises(IneligibleCancellationException):
            lifecycle.cancel(cancelled, NOW, threshold_hours=24)

    def test_exactly_threshold_is_not_cancellable(self) -> None:
        appointment = make_appointment(hours_ahead=24)

        assert lifecycle.is_cancellable(appointment, NOW) is False
        with pytest.raises(IneligibleCancellationException):
            lifecycle.cancel(appointment, NOW)

    def test_partial_hour_over_threshold_is_not_cancellable(self) -> None:
        appointment = make_appointment(hours_ahead=24.5)

        assert lifecycle.hours_until(appointment, NOW) == 24
        assert lifecycle.is_cancellable(appointment, NOW) is False
        with pytest.raises(IneligibleCancellationException):
            lifecycle.cancel(appointment, NOW)

    def test_within_threshold_is_not_cancellable(self) -> None:
        assert lifecycle.is_cancellable(make_appointment(hours_ahead=12), NOW) is False

    @pytest.mark.parametrize("hours_ahead", [-5, 1, 25, 24 * 20])
    def test_cancelled_is_never_cancellable(self, hours_ahead: float) -> None:
        appointment = make_appointment(hours_ahead, AppointmentStatus.CANCELLED)
        assert lifecycle.is_cancellable(appointment, NOW) is False

    def test_completed_is_not_cancellable(self) -> None:
        appointment = make_appointment(100, AppointmentStatus.COMPLETED)

        assert lifecycle.is_cancellable(appointment, NOW) is False
        with pytest.raises(IneligibleCancellationException):
            lifecycle.cancel(appointment, NOW)

    def test_active_counts_as_scheduled(self) -> None:
        appointment = make_appointment(72, AppointmentStatus.ACTIVE)

        assert lifecycle.is_cancellable(appointment, NOW) is True
        assert lifecycle.cancel(appointment, NOW).status == AppointmentStatus.CANCELLED

    def test_threshold_override(self) -> None:
        appointment = make_appointment(hours_ahead=13)

        assert lifecycle.is_cancellable(appointment, NOW, threshold_hours=12) is True
        assert lifecycle.is_cancellable(appointment, NOW, threshold_hours=24) is False

    def test_hours_until_truncates(self) -> None:
        assert lifecycle.hours_until(make_appointment(hours_ahead=25.5), NOW) == 25
        assert lifecycle.hours_until(make_appointment(hours_ahead=0.9), NOW) == 0


class TestCompletion:
    @pytest.mark.parametrize("status", list(AppointmentStatus))
    def test_empty_diagnosis_always_fails(self, status: AppointmentStatus) -> None:
        with pytest.raises(ValidationException, match="Diagnosis required"):
            lifecycle.complete(make_appointment(status=status), "", "x")

    def test_whitespace_diagnosis_fails(self) -> None:
        with pytest.raises(ValidationException):
            lifecycle.complete(make_appointment(), "   \n", None)

    def test_complete_scheduled(self) -> None:
        appointment = make_appointment()

        completed = lifecycle.complete(appointment, "flu", "rest")

        assert completed.status == AppointmentStatus.COMPLETED
        assert completed.diagnosis == "flu"
        assert completed.recommendations == "rest"
        assert appointment.status == AppointmentStatus.SCHEDULED
        assert appointment.diagnosis is None

    def test_completing_twice_fails(self) -> None:
        completed = lifecycle.complete(make_appointment(), "flu", "rest")

        with pytest.raises(InvalidTransitionException):
            lifecycle.complete(completed, "flu", "rest")

    def test_cancelled_cannot_be_completed(self) -> None:
        with pytest.raises(InvalidTransitionException):
            lifecycle.complete(make_appointment(status=AppointmentStatus.CANCELLED), "flu", None)

    def test_text_is_trimmed(self) -> None:
        completed = lifecycle.complete(make_appointment(), "  Dermatitis atópica ", "  ")

        assert completed.diagnosis == "Dermatitis atópica"
        assert completed.recommendations is None


class TestStatus:
    def test_open_statuses(self) -> None:
        assert lifecycle.is_open(AppointmentStatus.SCHEDULED)
        assert lifecycle.is_open(AppointmentStatus.ACTIVE)
        assert not lifecycle.is_open(AppointmentStatus.COMPLETED)
        assert not lifecycle.is_open(AppointmentStatus.CANCELLED)

    def test_wire_format_is_accepted(self) -> None:
        appointment = Appointment.model_validate(
            {
                "id": 5,
                "patientName": "María García",
                "specialty": "Dermatología",
                "assignedProvider": "Dra. Ana García",
                "scheduledAt": "2024-06-15T10:00:00",
                "status": "COMPLETED",
                "patientId": 3,
            }
        )

        assert appointment.id == "5"
        assert appointment.patient_id == "3"
        assert appointment.status == AppointmentStatus.COMPLETED
        assert appointment.scheduled_at.tzinfo is not None
