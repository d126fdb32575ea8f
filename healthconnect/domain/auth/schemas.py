"""Authentication schemas - Registration, OTP and password flows"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...models import OTP_PURPOSES, ROLES
from ...shared.validators import normalize_email, validate_password, validate_phone
from ..accounts.schemas import AccountResponse

LOGIN_ROLES = ROLES
REGISTRATION_ROLES = ("doctor", "patient")


class EmailRoleBase(BaseModel):
    email: str
    role: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        return normalize_email(v)

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        if v not in LOGIN_ROLES:
            raise ValueError(f"Role must be one of: {', '.join(LOGIN_ROLES)}")
        return v


class RegisterRequest(EmailRoleBase):
    name: str = Field(min_length=1, max_length=255)
    password: str
    contactNumber: Optional[str] = None

    # Doctor
    specialization: Optional[str] = None
    qualification: Optional[str] = None
    experience: Optional[int] = Field(None, ge=0, le=70)
    about: Optional[str] = None

    # Patient
    dateOfBirth: Optional[date] = None
    gender: Optional[str] = None

    @field_validator("role")
    @classmethod
    def validate_registration_role(cls, v):
        if v not in REGISTRATION_ROLES:
            raise ValueError("Role must be doctor or patient")
        return v

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, v):
        return validate_password(v)

    @field_validator("contactNumber")
    @classmethod
    def validate_contact(cls, v):
        return validate_phone(v)

    @model_validator(mode="after")
    def require_doctor_fields(self):
        if self.role == "doctor" and (
            not self.specialization or not self.qualification or self.experience is None
        ):
            raise ValueError("Doctors must provide specialization, qualification and experience")
        return self


class LoginRequest(EmailRoleBase):
    password: str = Field(min_length=1)


class VerifyOtpRequest(EmailRoleBase):
    otp: str = Field(min_length=1, max_length=10)
    purpose: str

    @field_validator("purpose")
    @classmethod
    def validate_purpose(cls, v):
        if v not in OTP_PURPOSES:
            raise ValueError(f"Purpose must be one of: {', '.join(OTP_PURPOSES)}")
        return v


class ResendOtpRequest(EmailRoleBase):
    purpose: str

    @field_validator("purpose")
    @classmethod
    def validate_purpose(cls, v):
        if v not in OTP_PURPOSES:
            raise ValueError(f"Purpose must be one of: {', '.join(OTP_PURPOSES)}")
        return v


class ForgotPasswordRequest(EmailRoleBase):
    pass


class ResetPasswordRequest(EmailRoleBase):
    otp: str = Field(min_length=1, max_length=10)
    password: str
    confirmPassword: str


class ResetPasswordWithTokenRequest(BaseModel):
    password: str
    confirmPassword: str


class ChangePasswordRequest(BaseModel):
    currentPassword: str = Field(min_length=1)
    newPassword: str
    confirmPassword: str


class RegisterResponse(BaseModel):
    success: bool = True
    message: str
    email: str
    role: str
    requiresVerification: bool = True


class LoginResponse(BaseModel):
    success: bool = True
    message: str
    email: str
    requiresOTP: bool = True


class LoginInfo(BaseModel):
    previousLogin: Optional[datetime] = None
    previousDeviceLoggedOut: bool = False


class VerifyOtpResponse(BaseModel):
    success: bool = True
    message: str
    data: Optional[AccountResponse] = None
    token: Optional[str] = None
    loginInfo: Optional[LoginInfo] = None
