from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
    text,
)
from sqlalchemy.orm import relationship

from .database import Base
from .errors import InternalError
from .shared.timeutils import utcnow

ROLES = ("doctor", "patient", "admin")
VERIFICATION_STATUSES = ("pending", "verified", "rejected")
OTP_PURPOSES = ("registration", "login", "password-reset")
APPOINTMENT_STATUSES = ("pending", "scheduled", "cancelled", "completed", "rescheduled")
# Appointments in these states no longer hold their slot
SLOT_RELEASING_STATUSES = ("cancelled", "rescheduled")
WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
ADMIN_ACTION_TYPES = (
    "user_verification",
    "user_suspension",
    "user_activation",
    "role_change",
    "account_deletion",
    "password_reset",
    "profile_update",
)


class Account(Base):
    """Doctors, patients and admins share one table so email is unique across all of them"""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    role = Column(String(20), nullable=False, index=True)  # doctor, patient, admin
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    avatar = Column(String(500), nullable=True)
    contact_number = Column(String(50), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    is_email_verified = Column(Boolean, default=False, nullable=False)
    verification_status = Column(String(20), nullable=True)  # doctors/patients only
    verified_by = Column(Integer, nullable=True)
    verified_at = Column(DateTime, nullable=True)

    suspension_reason = Column(Text, nullable=True)
    suspended_at = Column(DateTime, nullable=True)
    suspended_by = Column(Integer, nullable=True)

    password_reset_token = Column(String(64), nullable=True, index=True)  # sha256 hex
    password_reset_expires = Column(DateTime, nullable=True)
    password_reset_count = Column(Integer, default=0, nullable=False)
    password_reset_used_at = Column(DateTime, nullable=True)
    password_changed_at = Column(DateTime, nullable=True)

    last_login = Column(DateTime, nullable=True)
    last_logout = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    sessions = relationship(
        "LoginSession", back_populates="account", cascade="all, delete"
    )

    __mapper_args__ = {"polymorphic_on": role}


class Doctor(Account):
    specialization = Column(String(255), nullable=True)
    qualification = Column(String(255), nullable=True)
    experience = Column(Integer, nullable=True)  # years
    about = Column(Text, nullable=True)

    schedule_slots = relationship(
        "ScheduleSlot",
        back_populates="doctor",
        cascade="all, delete-orphan",
        order_by="ScheduleSlot.slot_number",
    )
    appointments = relationship(
        "Appointment",
        back_populates="doctor",
        foreign_keys="Appointment.doctor_id",
    )

    __mapper_args__ = {"polymorphic_identity": "doctor"}


class Patient(Account):
    date_of_birth = Column(Date, nullable=True)
    gender = Column(String(20), nullable=True)
    blood_group = Column(String(5), nullable=True)
    allergies = Column(Text, nullable=True)
    emergency_contacts = Column(JSON, default=list, nullable=True)  # [{"name", "phone", "relation"}]
    medical_history = Column(JSON, default=dict, nullable=True)  # conditions/allergies/medications

    appointments = relationship(
        "Appointment",
        back_populates="patient",
        foreign_keys="Appointment.patient_id",
        cascade="all, delete",
    )

    __mapper_args__ = {"polymorphic_identity": "patient"}


class Admin(Account):
    admin_level = Column(String(20), default="admin", nullable=True)  # admin, super_admin
    permissions = Column(JSON, default=list, nullable=True)

    __mapper_args__ = {"polymorphic_identity": "admin"}


class OneTimeCode(Base):
    __tablename__ = "one_time_codes"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False, index=True)
    purpose = Column(String(20), nullable=False)  # registration, login, password-reset
    code = Column(String(10), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    verified = Column(Boolean, default=False, nullable=False)
    attempts = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (Index("ix_one_time_codes_lookup", "email", "purpose", "created_at"),)


class LoginSession(Base):
    __tablename__ = "login_sessions"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False)
    role = Column(String(20), nullable=False)
    token = Column(String(512), unique=True, index=True, nullable=False)
    browser = Column(String(100), default="Unknown")
    os = Column(String(100), default="Unknown")
    device = Column(String(100), default="Unknown")
    ip_address = Column(String(64), nullable=False, default="unknown")
    last_activity = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    revoked_reason = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    account = relationship("Account", back_populates="sessions")

    __table_args__ = (
        Index("ix_login_sessions_account_active", "account_id", "is_active", "expires_at"),
    )


class ScheduleSlot(Base):
    """One available hour in a doctor's weekly template"""

    __tablename__ = "schedule_slots"

    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False)
    day_of_week = Column(String(10), nullable=False)  # monday..sunday
    slot_number = Column(Integer, nullable=False)  # 1..12
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)
    is_available = Column(Boolean, default=True, nullable=False)

    doctor = relationship("Doctor", back_populates="schedule_slots")

    __table_args__ = (
        UniqueConstraint("doctor_id", "day_of_week", "slot_number", name="uq_schedule_slot"),
    )


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False)
    patient_id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False, index=True)
    slot_number = Column(Integer, nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    status = Column(String(20), default="pending", nullable=False)
    reason = Column(Text, nullable=True)
    doctor_comment = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    doctor = relationship("Doctor", back_populates="appointments", foreign_keys=[doctor_id])
    patient = relationship("Patient", back_populates="appointments", foreign_keys=[patient_id])

    __table_args__ = (
        # A slot can only be held by one live appointment
        Index(
            "uq_appointments_live_slot",
            "doctor_id",
            "date",
            "slot_number",
            unique=True,
            sqlite_where=text("status NOT IN ('cancelled', 'rescheduled')"),
            postgresql_where=text("status NOT IN ('cancelled', 'rescheduled')"),
        ),
    )


class AdminActionLog(Base):
    __tablename__ = "admin_action_logs"

    id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    action_type = Column(String(50), nullable=False)
    target_user_id = Column(Integer, nullable=False, index=True)
    target_user_type = Column(String(20), nullable=False)
    previous_data = Column(JSON, nullable=True)
    new_data = Column(JSON, nullable=True)
    reason = Column(Text, nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    admin = relationship("Admin", foreign_keys=[admin_id])


@event.listens_for(AdminActionLog, "before_update")
def _reject_log_update(_mapper, _connection, target):
    raise InternalError(f"Admin action log {target.id} is append-only")


@event.listens_for(AdminActionLog, "before_delete")
def _reject_log_delete(_mapper, _connection, target):
    raise InternalError(f"Admin action log {target.id} is append-only")
