"""Account router - Doctor directory and profile endpoints"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_account, get_current_doctor, get_current_patient, require_roles
from ...database import get_db
from ...models import Account
from ...schemas import MessageResponse
from .schemas import (
    AccountEnvelope,
    AccountListEnvelope,
    AccountResponse,
    DoctorProfileUpdate,
    MedicalHistoryUpdate,
    PatientProfileUpdate,
)
from .service import AccountService

router = APIRouter(tags=["Accounts"])

get_staff_account = require_roles("doctor", "admin")


def get_account_service(db: Session = Depends(get_db)) -> AccountService:
    """Dependency injection for AccountService"""
    return AccountService(db)


# ============================================================================
# DOCTORS
# ============================================================================


@router.get("/doctors", response_model=AccountListEnvelope)
async def list_doctors(
    specialization: Optional[str] = Query(None),
    service: AccountService = Depends(get_account_service),
):
    """Public doctor directory"""
    doctors = service.list_doctors(specialization)
    return AccountListEnvelope(data=[AccountResponse.from_account(d) for d in doctors])


@router.patch("/doctors/me", response_model=AccountEnvelope)
async def update_my_doctor_profile(
    data: DoctorProfileUpdate,
    doctor: Account = Depends(get_current_doctor),
    service: AccountService = Depends(get_account_service),
):
    updated = service.update_doctor_profile(doctor, data)
    return AccountEnvelope(data=AccountResponse.from_account(updated))


@router.get("/doctors/{doctor_id}", response_model=AccountEnvelope)
async def get_doctor(doctor_id: int, service: AccountService = Depends(get_account_service)):
    return AccountEnvelope(data=AccountResponse.from_account(service.get_doctor(doctor_id)))


# ============================================================================
# PATIENTS
# ============================================================================


@router.get("/patients", response_model=AccountListEnvelope)
async def list_patients(
    _: Account = Depends(get_staff_account),
    service: AccountService = Depends(get_account_service),
):
    patients = service.list_patients()
    return AccountListEnvelope(data=[AccountResponse.from_account(p) for p in patients])


@router.patch("/patients/me", response_model=AccountEnvelope)
async def update_my_patient_profile(
    data: PatientProfileUpdate,
    patient: Account = Depends(get_current_patient),
    service: AccountService = Depends(get_account_service),
):
    updated = service.update_patient_profile(patient, data)
    return AccountEnvelope(data=AccountResponse.from_account(updated))


@router.put("/patients/me/medical-history", response_model=AccountEnvelope)
async def update_my_medical_history(
    data: MedicalHistoryUpdate,
    patient: Account = Depends(get_current_patient),
    service: AccountService = Depends(get_account_service),
):
    updated = service.update_medical_history(patient, data)
    return AccountEnvelope(data=AccountResponse.from_account(updated))


@router.get("/patients/{patient_id}", response_model=AccountEnvelope)
async def get_patient(
    patient_id: int,
    _: Account = Depends(get_staff_account),
    service: AccountService = Depends(get_account_service),
):
    return AccountEnvelope(data=AccountResponse.from_account(service.get_patient(patient_id)))


@router.delete("/patients/{patient_id}", response_model=MessageResponse)
async def delete_patient(
    patient_id: int,
    account: Account = Depends(get_current_account),
    service: AccountService = Depends(get_account_service),
):
    service.delete_patient(account, patient_id)
    return MessageResponse(message="Account deleted successfully")
