import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Set, Tuple

from ..ports.appointments_repo import AppointmentsRepository, AppointmentDto
from ..ports.notifier import APPOINTMENT_REMINDER, Notifier, personal_room
from ..ports.user_repo import UserRepository

logger = logging.getLogger(__name__)

ONE_HOUR = "1-hour"
ONE_DAY = "24-hour"


@dataclass
class Reminder:
    appointment_id: str
    window: str
    patient_id: str
    doctor_id: str
    patient_name: str
    doctor_name: str
    starts_at: datetime


def reminder_window(hours_until: float) -> Optional[str]:
    if 0 < hours_until <= 1:
        return ONE_HOUR
    if 1 < hours_until <= 24:
        return ONE_DAY
    return None


@dataclass
class ReminderService:
    repo: AppointmentsRepository
    user_repo: UserRepository
    notifier: Optional[Notifier] = None
    # (appointment_id, window) pairs already pushed; shared across sweeps by the caller
    pushed: Set[Tuple[str, str]] = field(default_factory=set)

    def sweep(self, now: Optional[datetime] = None) -> List[Reminder]:
        """Log a reminder for every confirmed appointment starting within the next 24 hours.

        The log lines repeat on every sweep; the realtime push goes out once per window.
        """
        now = now or datetime.now()
        reminders = []
        in_window = set()
        for appt in self.repo.list_confirmed():
            hours_until = (appt.starts_at - now).total_seconds() / 3600
            window = reminder_window(hours_until)
            if window is None:
                continue
            reminder = self._build(appt, window)
            self._announce(reminder)
            key = (reminder.appointment_id, reminder.window)
            in_window.add(key)
            if key not in self.pushed:
                self._push(reminder)
                self.pushed.add(key)
            reminders.append(reminder)
        # Forget windows that were left so a rescheduled appointment is reminded again
        self.pushed.intersection_update(in_window)
        return reminders

    def _build(self, appt: AppointmentDto, window: str) -> Reminder:
        patient = self.user_repo.get_by_id(appt.patient_id)
        doctor = self.user_repo.get_by_id(appt.doctor_id)
        return Reminder(
            appointment_id=appt.id,
            window=window,
            patient_id=appt.patient_id,
            doctor_id=appt.doctor_id,
            patient_name=patient.name if patient else "Unknown Patient",
            doctor_name=doctor.name if doctor else "Unknown Doctor",
            starts_at=appt.starts_at,
        )

    def _announce(self, reminder: Reminder) -> None:
        when = reminder.starts_at.strftime("%a %b %d %Y %H:%M")
        logger.info(
            f"{reminder.window} reminder for patient {reminder.patient_name}: "
            f"Appointment with Dr. {reminder.doctor_name} at {when}"
        )
        logger.info(
            f"{reminder.window} reminder for doctor {reminder.doctor_name}: "
            f"Appointment with patient {reminder.patient_name} at {when}"
        )

    def _push(self, reminder: Reminder) -> None:
        if self.notifier is None:
            return
        payload = {"appointment_id": reminder.appointment_id, "window": reminder.window, "starts_at": reminder.starts_at}
        for user_id in (reminder.patient_id, reminder.doctor_id):
            self.notifier.emit_to_room(personal_room(user_id), APPOINTMENT_REMINDER, payload)
