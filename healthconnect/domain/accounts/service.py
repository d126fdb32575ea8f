"""Account service - Profiles for doctors and patients, admin seeding"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...errors import DoctorNotFound, DuplicateAccount, NotAuthorized, NotFound
from ...models import Account, Admin, Doctor, Patient
from ...security_utils import hash_password
from ...shared.validators import normalize_email, validate_password
from .repository import AccountRepository
from .schemas import DoctorProfileUpdate, MedicalHistoryUpdate, PatientProfileUpdate

logger = logging.getLogger(__name__)

# Wire name -> column name; anything not listed here cannot be changed by the owner
DOCTOR_PROFILE_FIELDS = {
    "name": "name",
    "avatar": "avatar",
    "contactNumber": "contact_number",
    "specialization": "specialization",
    "qualification": "qualification",
    "experience": "experience",
    "about": "about",
}
PATIENT_PROFILE_FIELDS = {
    "name": "name",
    "avatar": "avatar",
    "contactNumber": "contact_number",
    "dateOfBirth": "date_of_birth",
    "gender": "gender",
    "bloodGroup": "blood_group",
    "allergies": "allergies",
    "emergencyContacts": "emergency_contacts",
}


def _allowed_updates(data, allowed: dict[str, str]) -> dict:
    return {
        allowed[key]: value
        for key, value in data.model_dump(exclude_unset=True).items()
        if key in allowed
    }


class AccountService:
    """Service layer for account profiles"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AccountRepository()

    # ------------------------------------------------------------------
    # Doctors
    # ------------------------------------------------------------------

    def list_doctors(self, specialization: Optional[str] = None) -> list[Doctor]:
        return self.repo.list_doctors(self.db, specialization)

    def get_doctor(self, doctor_id: int) -> Doctor:
        doctor = self.repo.get_by_id_and_role(self.db, doctor_id, "doctor")
        if not doctor:
            raise DoctorNotFound()
        return doctor

    def update_doctor_profile(self, doctor: Doctor, data: DoctorProfileUpdate) -> Doctor:
        updates = _allowed_updates(data, DOCTOR_PROFILE_FIELDS)
        logger.info(f"📝 Doctor {doctor.id} updating profile fields: {sorted(updates)}")
        return self.repo.update(self.db, doctor, **updates)

    # ------------------------------------------------------------------
    # Patients
    # ------------------------------------------------------------------

    def list_patients(self) -> list[Patient]:
        return self.repo.list_patients(self.db)

    def get_patient(self, patient_id: int) -> Patient:
        patient = self.repo.get_by_id_and_role(self.db, patient_id, "patient")
        if not patient:
            raise NotFound("Patient not found")
        return patient

    def update_patient_profile(self, patient: Patient, data: PatientProfileUpdate) -> Patient:
        updates = _allowed_updates(data, PATIENT_PROFILE_FIELDS)
        logger.info(f"📝 Patient {patient.id} updating profile fields: {sorted(updates)}")
        return self.repo.update(self.db, patient, **updates)

    def update_medical_history(self, patient: Patient, data: MedicalHistoryUpdate) -> Patient:
        """Lists that are not sent keep their previous value"""
        current = dict(patient.medical_history or {})
        history = {
            "conditions": current.get("conditions", []),
            "allergies": current.get("allergies", []),
            "medications": current.get("medications", []),
        }
        for key, value in data.model_dump(exclude_none=True).items():
            history[key] = value
        return self.repo.update(self.db, patient, medical_history=history)

    def delete_patient(self, actor: Account, patient_id: int) -> None:
        """Self-service only: a patient may delete their own account"""
        if actor.role != "patient" or actor.id != patient_id:
            logger.warning(f"🚫 {actor.role} {actor.id} tried to delete patient {patient_id}")
            raise NotAuthorized("You can only delete your own account")
        patient = self.get_patient(patient_id)
        self.repo.delete(self.db, patient)
        logger.info(f"🗑️ Patient {patient_id} deleted their account")

    # ------------------------------------------------------------------
    # Admins
    # ------------------------------------------------------------------

    def create_admin(
        self, name: str, email: str, password: str, level: str = "admin"
    ) -> Admin:
        email = normalize_email(email)
        validate_password(password)
        if self.repo.get_by_email(self.db, email):
            raise DuplicateAccount("An account already exists with this email")

        admin = self.repo.add(
            self.db,
            "admin",
            name=name,
            email=email,
            password_hash=hash_password(password),
            is_email_verified=True,
            admin_level=level,
            permissions=[],
        )
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateAccount("An account already exists with this email") from e
        self.db.refresh(admin)
        logger.info(f"👤 Admin account created: {email} ({level})")
        return admin
