"""Scheduling domain schemas - Weekly templates, slots and appointments"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import APPOINTMENT_STATUSES, WEEKDAYS, Appointment
from .slots import SLOT_COUNT


class SlotInput(BaseModel):
    slotNumber: int = Field(ge=1, le=SLOT_COUNT)
    isAvailable: bool = True


class DaySchedule(BaseModel):
    day: str
    slots: list[SlotInput] = []

    @field_validator("day")
    @classmethod
    def validate_day(cls, v):
        value = v.strip().lower()
        if value not in WEEKDAYS:
            raise ValueError(f"Day must be one of: {', '.join(WEEKDAYS)}")
        return value


class SetScheduleRequest(BaseModel):
    """Replaces the whole weekly template; days not listed end up empty"""

    schedule: list[DaySchedule]

    @field_validator("schedule")
    @classmethod
    def validate_unique_days(cls, v):
        days = [d.day for d in v]
        if len(days) != len(set(days)):
            raise ValueError("Each day may only appear once")
        return v


class SlotResponse(BaseModel):
    slotNumber: int
    startTime: str
    endTime: str
    isAvailable: bool = True


class WeeklyScheduleResponse(BaseModel):
    success: bool = True
    doctorId: int
    schedule: dict[str, list[SlotResponse]]


class AvailableSlotsResponse(BaseModel):
    success: bool = True
    doctorId: int
    date: date
    dayOfWeek: str
    slots: list[SlotResponse]


class BookAppointmentRequest(BaseModel):
    doctorId: int
    date: date
    slotNumber: int = Field(ge=1, le=SLOT_COUNT)
    reason: Optional[str] = Field(None, max_length=2000)


class AppointmentStatusUpdate(BaseModel):
    status: str
    cancellationReason: Optional[str] = Field(None, max_length=2000)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in APPOINTMENT_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(APPOINTMENT_STATUSES)}")
        return v


class AppointmentDetailsUpdate(BaseModel):
    reason: Optional[str] = Field(None, max_length=2000)
    doctorComment: Optional[str] = Field(None, max_length=2000)
    notes: Optional[str] = Field(None, max_length=5000)


class AppointmentResponse(BaseModel):
    id: int
    doctorId: int
    doctorName: Optional[str] = None
    patientId: int
    patientName: Optional[str] = None
    date: date
    slotNumber: int
    startTime: str
    endTime: str
    status: str
    reason: Optional[str] = None
    doctorComment: Optional[str] = None
    notes: Optional[str] = None
    cancellationReason: Optional[str] = None
    cancelledAt: Optional[datetime] = None
    createdAt: datetime

    @classmethod
    def from_appointment(cls, appointment: Appointment) -> "AppointmentResponse":
        return cls(
            id=appointment.id,
            doctorId=appointment.doctor_id,
            doctorName=appointment.doctor.name if appointment.doctor else None,
            patientId=appointment.patient_id,
            patientName=appointment.patient.name if appointment.patient else None,
            date=appointment.date,
            slotNumber=appointment.slot_number,
            startTime=appointment.start_time,
            endTime=appointment.end_time,
            status=appointment.status,
            reason=appointment.reason,
            doctorComment=appointment.doctor_comment,
            notes=appointment.notes,
            cancellationReason=appointment.cancellation_reason,
            cancelledAt=appointment.cancelled_at,
            createdAt=appointment.created_at,
        )


class AppointmentEnvelope(BaseModel):
    success: bool = True
    data: AppointmentResponse


class AppointmentListEnvelope(BaseModel):
    success: bool = True
    data: list[AppointmentResponse]
