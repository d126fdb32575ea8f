"""Account domain schemas - Pydantic models for profiles"""

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from ...models import Account
from ...shared.validators import validate_phone

GENDERS = ("male", "female", "other")
BLOOD_GROUPS = ("A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-")


def _require_name(v):
    # name is NOT NULL; an explicit null must not reach the column
    if v is None or not v.strip():
        raise ValueError("Name cannot be empty")
    return v.strip()


class EmergencyContact(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    phone: str
    relation: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return validate_phone(v)


class DoctorProfileUpdate(BaseModel):
    """Fields a doctor may change on their own profile"""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    avatar: Optional[str] = None
    contactNumber: Optional[str] = None
    specialization: Optional[str] = None
    qualification: Optional[str] = None
    experience: Optional[int] = Field(None, ge=0, le=70)
    about: Optional[str] = None

    @field_validator("contactNumber")
    @classmethod
    def validate_contact(cls, v):
        return validate_phone(v)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _require_name(v)


class PatientProfileUpdate(BaseModel):
    """Fields a patient may change on their own profile"""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    avatar: Optional[str] = None
    contactNumber: Optional[str] = None
    dateOfBirth: Optional[date] = None
    gender: Optional[str] = None
    bloodGroup: Optional[str] = None
    allergies: Optional[str] = None
    emergencyContacts: Optional[list[EmergencyContact]] = None

    @field_validator("contactNumber")
    @classmethod
    def validate_contact(cls, v):
        return validate_phone(v)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _require_name(v)

    @field_validator("gender")
    @classmethod
    def validate_gender(cls, v):
        if v is not None and v.lower() not in GENDERS:
            raise ValueError(f"Gender must be one of: {', '.join(GENDERS)}")
        return v.lower() if v else v

    @field_validator("bloodGroup")
    @classmethod
    def validate_blood_group(cls, v):
        if v is not None and v.upper() not in BLOOD_GROUPS:
            raise ValueError(f"Blood group must be one of: {', '.join(BLOOD_GROUPS)}")
        return v.upper() if v else v

    @field_validator("dateOfBirth")
    @classmethod
    def validate_dob(cls, v):
        if v and v > date.today():
            raise ValueError("Date of birth cannot be in the future")
        return v


class MedicalHistoryUpdate(BaseModel):
    conditions: Optional[list[str]] = None
    allergies: Optional[list[str]] = None
    medications: Optional[list[str]] = None


class AccountResponse(BaseModel):
    """Profile view; role-specific fields are null for other roles"""

    id: int
    role: str
    name: str
    email: str
    avatar: Optional[str] = None
    contactNumber: Optional[str] = None
    isActive: bool
    isEmailVerified: bool
    verificationStatus: Optional[str] = None
    lastLogin: Optional[datetime] = None
    createdAt: datetime

    # Doctor
    specialization: Optional[str] = None
    qualification: Optional[str] = None
    experience: Optional[int] = None
    about: Optional[str] = None

    # Patient
    dateOfBirth: Optional[date] = None
    gender: Optional[str] = None
    bloodGroup: Optional[str] = None
    allergies: Optional[str] = None
    emergencyContacts: Optional[list[dict[str, Any]]] = None
    medicalHistory: Optional[dict[str, Any]] = None

    # Admin
    adminLevel: Optional[str] = None

    @classmethod
    def from_account(cls, account: Account) -> "AccountResponse":
        return cls(
            id=account.id,
            role=account.role,
            name=account.name,
            email=account.email,
            avatar=account.avatar,
            contactNumber=account.contact_number,
            isActive=account.is_active,
            isEmailVerified=account.is_email_verified,
            verificationStatus=account.verification_status,
            lastLogin=account.last_login,
            createdAt=account.created_at,
            specialization=getattr(account, "specialization", None),
            qualification=getattr(account, "qualification", None),
            experience=getattr(account, "experience", None),
            about=getattr(account, "about", None),
            dateOfBirth=getattr(account, "date_of_birth", None),
            gender=getattr(account, "gender", None),
            bloodGroup=getattr(account, "blood_group", None),
            allergies=getattr(account, "allergies", None),
            emergencyContacts=getattr(account, "emergency_contacts", None),
            medicalHistory=getattr(account, "medical_history", None),
            adminLevel=getattr(account, "admin_level", None),
        )


class AccountEnvelope(BaseModel):
    success: bool = True
    data: AccountResponse


class AccountListEnvelope(BaseModel):
    success: bool = True
    data: list[AccountResponse]
