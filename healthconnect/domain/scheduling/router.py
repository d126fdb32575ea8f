"""Scheduling router - Doctor schedules, slot availability and appointments"""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...auth import get_current_account, get_current_doctor
from ...database import get_db
from ...models import Account
from ...schemas import MessageResponse
from .schemas import (
    AppointmentDetailsUpdate,
    AppointmentEnvelope,
    AppointmentListEnvelope,
    AppointmentResponse,
    AppointmentStatusUpdate,
    AvailableSlotsResponse,
    BookAppointmentRequest,
    SetScheduleRequest,
    WeeklyScheduleResponse,
)
from .service import AppointmentService, ScheduleService
from .slots import weekday_name

router = APIRouter(tags=["Scheduling"])


def get_schedule_service(db: Session = Depends(get_db)) -> ScheduleService:
    """Dependency injection for ScheduleService"""
    return ScheduleService(db)


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)


# ============================================================================
# SCHEDULES & AVAILABILITY
# ============================================================================


@router.get("/doctors/{doctor_id}/schedule", response_model=WeeklyScheduleResponse)
async def get_schedule(doctor_id: int, service: ScheduleService = Depends(get_schedule_service)):
    return WeeklyScheduleResponse(doctorId=doctor_id, schedule=service.get_schedule(doctor_id))


@router.put("/doctors/{doctor_id}/schedule", response_model=WeeklyScheduleResponse)
async def set_schedule(
    doctor_id: int,
    data: SetScheduleRequest,
    doctor: Account = Depends(get_current_doctor),
    service: ScheduleService = Depends(get_schedule_service),
):
    schedule = service.set_schedule(doctor, doctor_id, data)
    return WeeklyScheduleResponse(doctorId=doctor_id, schedule=schedule)


@router.get("/doctors/{doctor_id}/slots", response_model=AvailableSlotsResponse)
async def get_available_slots(
    doctor_id: int,
    day: date = Query(..., alias="date"),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Bookable slots for one date within the booking horizon"""
    slots = service.get_available_slots(doctor_id, day)
    return AvailableSlotsResponse(
        doctorId=doctor_id, date=day, dayOfWeek=weekday_name(day), slots=slots
    )


# ============================================================================
# APPOINTMENTS
# ============================================================================


@router.post("/appointments", response_model=AppointmentEnvelope, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    data: BookAppointmentRequest,
    account: Account = Depends(get_current_account),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.book(account, data)
    return AppointmentEnvelope(data=AppointmentResponse.from_appointment(appointment))


@router.get("/appointments", response_model=AppointmentListEnvelope)
async def list_my_appointments(
    account: Account = Depends(get_current_account),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointments = service.list_mine(account)
    return AppointmentListEnvelope(
        data=[AppointmentResponse.from_appointment(a) for a in appointments]
    )


@router.get("/appointments/{appointment_id}", response_model=AppointmentEnvelope)
async def get_appointment(
    appointment_id: int,
    account: Account = Depends(get_current_account),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.get(appointment_id, account)
    return AppointmentEnvelope(data=AppointmentResponse.from_appointment(appointment))


@router.patch("/appointments/{appointment_id}", response_model=AppointmentEnvelope)
async def update_appointment_details(
    appointment_id: int,
    data: AppointmentDetailsUpdate,
    account: Account = Depends(get_current_account),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.update_details(appointment_id, account, data)
    return AppointmentEnvelope(data=AppointmentResponse.from_appointment(appointment))


@router.patch("/appointments/{appointment_id}/status", response_model=AppointmentEnvelope)
async def update_appointment_status(
    appointment_id: int,
    data: AppointmentStatusUpdate,
    account: Account = Depends(get_current_account),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.update_status(appointment_id, account, data)
    return AppointmentEnvelope(data=AppointmentResponse.from_appointment(appointment))


@router.delete("/appointments/{appointment_id}", response_model=MessageResponse)
async def delete_appointment(
    appointment_id: int,
    account: Account = Depends(get_current_account),
    service: AppointmentService = Depends(get_appointment_service),
):
    service.delete(appointment_id, account)
    return MessageResponse(message="Appointment deleted")
