"""Scheduling repository - Weekly slot templates and appointments"""

from datetime import date
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from ...models import SLOT_RELEASING_STATUSES, Appointment, ScheduleSlot


class ScheduleRepository:
    """Repository for a doctor's weekly slot template"""

    @staticmethod
    def get_slots(db: Session, doctor_id: int) -> list[ScheduleSlot]:
        return (
            db.query(ScheduleSlot)
            .filter(ScheduleSlot.doctor_id == doctor_id)
            .order_by(ScheduleSlot.day_of_week, ScheduleSlot.slot_number)
            .all()
        )

    @staticmethod
    def get_available_slots_for_day(
        db: Session, doctor_id: int, day_of_week: str
    ) -> list[ScheduleSlot]:
        return (
            db.query(ScheduleSlot)
            .filter(
                ScheduleSlot.doctor_id == doctor_id,
                ScheduleSlot.day_of_week == day_of_week,
                ScheduleSlot.is_available.is_(True),
            )
            .order_by(ScheduleSlot.slot_number)
            .all()
        )


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_by_id(db: Session, appointment_id: int) -> Optional[Appointment]:
        return (
            db.query(Appointment)
            .options(joinedload(Appointment.doctor), joinedload(Appointment.patient))
            .filter(Appointment.id == appointment_id)
            .first()
        )

    @staticmethod
    def get_for_account(db: Session, account_id: int) -> list[Appointment]:
        return (
            db.query(Appointment)
            .options(joinedload(Appointment.doctor), joinedload(Appointment.patient))
            .filter(
                or_(Appointment.doctor_id == account_id, Appointment.patient_id == account_id)
            )
            .order_by(Appointment.date.asc(), Appointment.start_time.asc())
            .all()
        )

    @staticmethod
    def get_taken_slot_numbers(db: Session, doctor_id: int, day: date) -> set[int]:
        rows = (
            db.query(Appointment.slot_number)
            .filter(
                Appointment.doctor_id == doctor_id,
                Appointment.date == day,
                Appointment.status.notin_(SLOT_RELEASING_STATUSES),
            )
            .all()
        )
        return {row[0] for row in rows}

    @staticmethod
    def cancel_upcoming_for_doctor(
        db: Session, doctor_id: int, from_date: date, reason: str, cancelled_at
    ) -> int:
        """Bulk-cancel pending/scheduled appointments on or after from_date; caller commits"""
        return (
            db.query(Appointment)
            .filter(
                Appointment.doctor_id == doctor_id,
                Appointment.date >= from_date,
                Appointment.status.in_(("pending", "scheduled")),
            )
            .update(
                {
                    Appointment.status: "cancelled",
                    Appointment.cancellation_reason: reason,
                    Appointment.cancelled_at: cancelled_at,
                },
                synchronize_session=False,
            )
        )

    @staticmethod
    def count(db: Session, on_date: Optional[date] = None) -> int:
        query = db.query(func.count(Appointment.id))
        if on_date is not None:
            query = query.filter(Appointment.date == on_date)
        return query.scalar() or 0
