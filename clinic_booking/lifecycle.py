"""State machine for the appointment lifecycle."""

import logging
from datetime import datetime, timedelta

from clinic_booking.availability import require_naive
from clinic_booking.database.appointment_repository import (
    Appointment,
    AppointmentRepository,
    AppointmentStatus,
)
from clinic_booking.database.connection import transaction
from clinic_booking.errors import InvalidReference, InvalidTransition, LatePolicyViolation
from clinic_booking.settings import ClinicSettings, get_settings

logger = logging.getLogger(__name__)


# Allowed next states for each status
TRANSITIONS = {
    AppointmentStatus.SCHEDULED: {
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    },
    AppointmentStatus.COMPLETED: set(),
    AppointmentStatus.CANCELLED: set(),
    AppointmentStatus.NO_SHOW: set(),
}


def is_terminal(status: AppointmentStatus) -> bool:
    """Check if no further transition is allowed from a status."""
    return not TRANSITIONS[status]


def can_transition(current: AppointmentStatus, new_status: AppointmentStatus) -> bool:
    return new_status in TRANSITIONS[current]


class LifecycleManager:
    """Moves appointments between statuses and applies the cancellation policy."""

    def __init__(
        self,
        settings: ClinicSettings | None = None,
        appointments: AppointmentRepository | None = None,
    ):
        self._settings = settings
        self.appointments = appointments or AppointmentRepository()

    @property
    def settings(self) -> ClinicSettings:
        return self._settings or get_settings()

    def transition(
        self,
        appointment_id: str,
        new_status: AppointmentStatus | str,
        now: datetime | None = None,
    ) -> Appointment:
        """Move an appointment to new_status.

        Raises InvalidReference for an unknown appointment, InvalidTransition
        for a move out of a terminal status, and LatePolicyViolation for a late
        cancellation when the policy is enforced.
        """
        try:
            new_status = AppointmentStatus(new_status)
        except ValueError:
            raise InvalidTransition(f"Unknown appointment status: {new_status}") from None

        now = require_naive(now or datetime.now(), "now")
        settings = self.settings

        with transaction() as conn:
            appointment = self.appointments.get_by_id(appointment_id, conn=conn)
            if appointment is None:
                raise InvalidReference(f"Appointment {appointment_id} does not exist")

            if not can_transition(appointment.status, new_status):
                raise InvalidTransition(
                    f"Appointment {appointment_id} cannot go from "
                    f"{appointment.status.value} to {new_status.value}"
                )

            if new_status == AppointmentStatus.CANCELLED:
                self._check_cancellation_notice(appointment, now, settings)

            self.appointments.update_status(conn, appointment_id, new_status)

        logger.info(
            "Appointment %s: %s -> %s", appointment_id, appointment.status.value, new_status.value
        )
        appointment.status = new_status
        return appointment

    def complete(self, appointment_id: str) -> Appointment:
        return self.transition(appointment_id, AppointmentStatus.COMPLETED)

    def cancel(self, appointment_id: str, now: datetime | None = None) -> Appointment:
        return self.transition(appointment_id, AppointmentStatus.CANCELLED, now=now)

    def mark_no_show(self, appointment_id: str) -> Appointment:
        return self.transition(appointment_id, AppointmentStatus.NO_SHOW)

    def _check_cancellation_notice(
        self, appointment: Appointment, now: datetime, settings: ClinicSettings
    ) -> None:
        """Raise or warn when a cancellation gives less notice than the policy requires."""
        deadline = appointment.scheduled_datetime - timedelta(hours=settings.cancellation_policy)
        if now <= deadline:
            return

        message = (
            f"Appointment {appointment.id} cancelled after the deadline {deadline:%Y-%m-%d %H:%M} "
            f"({settings.cancellation_policy}h notice required)"
        )
        if settings.enforce_cancellation_policy:
            raise LatePolicyViolation(message)
        logger.warning(message)
