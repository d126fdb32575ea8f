"""
Scheduling service

A doctor publishes a weekly template of hourly slots (1..12 covering
09:00-21:00). Patients book a slot on a concrete date inside the booking
horizon; a slot on a date stays taken while any non-cancelled
appointment holds it.
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...config import Settings, get_settings
from ...errors import (
    DoctorNotFound,
    InvalidStatusTransition,
    NotAPatient,
    NotAuthorized,
    NotFound,
    SlotUnavailable,
    ValidationError,
)
from ...models import WEEKDAYS, Account, Appointment, Doctor, ScheduleSlot
from ...shared.timeutils import utcnow, utctoday
from ..accounts.repository import AccountRepository
from .repository import AppointmentRepository, ScheduleRepository
from .schemas import (
    AppointmentDetailsUpdate,
    AppointmentStatusUpdate,
    BookAppointmentRequest,
    SetScheduleRequest,
    SlotResponse,
)
from .slots import slot_bounds, weekday_name, within_horizon

logger = logging.getLogger(__name__)

# Appointment status state machine. Rescheduled is terminal and releases the
# slot, so the new time is booked as a fresh appointment.
STATUS_TRANSITIONS = {
    "pending": {"scheduled", "cancelled"},
    "scheduled": {"completed", "cancelled", "rescheduled"},
    "completed": set(),
    "cancelled": set(),
    "rescheduled": set(),
}

# Wire name -> column name, per role
DETAIL_FIELDS_BY_ROLE = {
    "patient": {"reason": "reason"},
    "doctor": {"doctorComment": "doctor_comment", "notes": "notes"},
}


def _slot_response(slot_number: int, is_available: bool = True) -> SlotResponse:
    start, end = slot_bounds(slot_number)
    return SlotResponse(slotNumber=slot_number, startTime=start, endTime=end, isAvailable=is_available)


class ScheduleService:
    """Weekly templates and per-date availability"""

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()
        self.repo = ScheduleRepository()
        self.appointments = AppointmentRepository()

    def _get_doctor(self, doctor_id: int, active_only: bool = False) -> Doctor:
        doctor = AccountRepository.get_by_id_and_role(self.db, doctor_id, "doctor")
        if doctor is None or (active_only and not doctor.is_active):
            raise DoctorNotFound()
        return doctor

    def get_schedule(self, doctor_id: int) -> dict[str, list[SlotResponse]]:
        self._get_doctor(doctor_id)
        schedule = {day: [] for day in WEEKDAYS}
        for slot in self.repo.get_slots(self.db, doctor_id):
            schedule[slot.day_of_week].append(_slot_response(slot.slot_number, slot.is_available))
        for slots in schedule.values():
            slots.sort(key=lambda s: s.slotNumber)
        return schedule

    def set_schedule(
        self, actor: Account, doctor_id: int, data: SetScheduleRequest
    ) -> dict[str, list[SlotResponse]]:
        """Replace the doctor's template; only available slots are stored"""
        if actor.role != "doctor" or actor.id != doctor_id:
            raise NotAuthorized("Doctors can only edit their own schedule")
        doctor = self._get_doctor(doctor_id)

        new_slots = []
        for day in data.schedule:
            for slot_number in sorted({s.slotNumber for s in day.slots if s.isAvailable}):
                start, end = slot_bounds(slot_number)
                new_slots.append(
                    ScheduleSlot(
                        day_of_week=day.day,
                        slot_number=slot_number,
                        start_time=start,
                        end_time=end,
                        is_available=True,
                    )
                )

        # delete-orphan on the relationship removes the old rows
        doctor.schedule_slots = []
        self.db.flush()
        doctor.schedule_slots = new_slots
        self.db.commit()
        logger.info(f"📅 Doctor {doctor_id} schedule replaced with {len(new_slots)} slot(s)")
        return self.get_schedule(doctor_id)

    def get_available_slots(
        self, doctor_id: int, day: date, today: Optional[date] = None
    ) -> list[SlotResponse]:
        self._get_doctor(doctor_id, active_only=True)
        horizon = self.settings.booking_horizon_days
        if not within_horizon(day, today or utctoday(), horizon):
            raise ValidationError(
                f"Appointments can only be booked within the next {horizon} days"
            )

        template = self.repo.get_available_slots_for_day(self.db, doctor_id, weekday_name(day))
        taken = self.appointments.get_taken_slot_numbers(self.db, doctor_id, day)
        return [_slot_response(s.slot_number) for s in template if s.slot_number not in taken]


class AppointmentService:
    """Booking, status transitions and party-only appointment access"""

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()
        self.repo = AppointmentRepository()
        self.schedule = ScheduleService(db, self.settings)

    def book(
        self, actor: Account, data: BookAppointmentRequest, today: Optional[date] = None
    ) -> Appointment:
        if actor.role != "patient":
            raise NotAPatient()

        available = self.schedule.get_available_slots(data.doctorId, data.date, today)
        if data.slotNumber not in {s.slotNumber for s in available}:
            logger.info(
                f"⛔ Slot {data.slotNumber} on {data.date} unavailable for doctor {data.doctorId}"
            )
            raise SlotUnavailable()

        start, end = slot_bounds(data.slotNumber)
        appointment = Appointment(
            doctor_id=data.doctorId,
            patient_id=actor.id,
            date=data.date,
            slot_number=data.slotNumber,
            start_time=start,
            end_time=end,
            status="pending",
            reason=data.reason,
        )
        self.db.add(appointment)
        try:
            self.db.commit()
        except IntegrityError as e:
            # Another booking took the slot between the check and the insert
            self.db.rollback()
            raise SlotUnavailable() from e

        logger.info(
            f"📌 Patient {actor.id} booked doctor {data.doctorId} on {data.date} slot {data.slotNumber}"
        )
        return self.repo.get_by_id(self.db, appointment.id)

    def list_mine(self, actor: Account) -> list[Appointment]:
        return self.repo.get_for_account(self.db, actor.id)

    def get(self, appointment_id: int, actor: Account) -> Appointment:
        appointment = self.repo.get_by_id(self.db, appointment_id)
        if appointment is None:
            raise NotFound("Appointment not found")
        if actor.id not in (appointment.doctor_id, appointment.patient_id):
            logger.warning(f"🚫 Account {actor.id} denied access to appointment {appointment_id}")
            raise NotAuthorized("Not authorized to access this appointment")
        return appointment

    def update_status(
        self, appointment_id: int, actor: Account, data: AppointmentStatusUpdate
    ) -> Appointment:
        appointment = self.get(appointment_id, actor)

        if actor.id == appointment.patient_id and data.status != "cancelled":
            raise NotAuthorized("Patients can only cancel appointments")

        if data.status not in STATUS_TRANSITIONS[appointment.status]:
            raise InvalidStatusTransition(appointment.status, data.status)

        previous = appointment.status
        appointment.status = data.status
        if data.status == "cancelled":
            appointment.cancelled_at = utcnow()
            appointment.cancellation_reason = data.cancellationReason or (
                f"Cancelled by {actor.role}"
            )
        self.db.commit()
        self.db.refresh(appointment)
        logger.info(f"🔄 Appointment {appointment_id}: {previous} -> {data.status} by {actor.role}")
        return appointment

    def update_details(
        self, appointment_id: int, actor: Account, data: AppointmentDetailsUpdate
    ) -> Appointment:
        appointment = self.get(appointment_id, actor)
        role = "doctor" if actor.id == appointment.doctor_id else "patient"
        allowed = DETAIL_FIELDS_BY_ROLE[role]

        sent = data.model_dump(exclude_unset=True)
        rejected = sorted(set(sent) - set(allowed))
        if rejected:
            raise NotAuthorized(f"A {role} cannot change: {', '.join(rejected)}")

        for key, value in sent.items():
            setattr(appointment, allowed[key], value)
        self.db.commit()
        self.db.refresh(appointment)
        return appointment

    def delete(self, appointment_id: int, actor: Account) -> None:
        appointment = self.get(appointment_id, actor)
        self.db.delete(appointment)
        self.db.commit()
        logger.info(f"🗑️ Appointment {appointment_id} deleted by account {actor.id}")
