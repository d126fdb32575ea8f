"""Account repository - Database operations for doctors, patients and admins"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...models import Account, Admin, Doctor, Patient

ACCOUNT_CLASSES = {"doctor": Doctor, "patient": Patient, "admin": Admin}


class AccountRepository:
    """One repository over the polymorphic accounts table"""

    @staticmethod
    def get_by_id(db: Session, account_id: int) -> Optional[Account]:
        return db.query(Account).filter(Account.id == account_id).first()

    @staticmethod
    def get_by_email(db: Session, email: str) -> Optional[Account]:
        return db.query(Account).filter(Account.email == email).first()

    @staticmethod
    def get_by_email_and_role(db: Session, email: str, role: str) -> Optional[Account]:
        return db.query(Account).filter(Account.email == email, Account.role == role).first()

    @staticmethod
    def get_by_id_and_role(db: Session, account_id: int, role: str) -> Optional[Account]:
        return db.query(Account).filter(Account.id == account_id, Account.role == role).first()

    @staticmethod
    def get_by_reset_token(db: Session, token_hash: str) -> Optional[Account]:
        return db.query(Account).filter(Account.password_reset_token == token_hash).first()

    @staticmethod
    def add(db: Session, role: str, **fields) -> Account:
        """Stage a new account; caller commits"""
        account = ACCOUNT_CLASSES[role](**fields)
        db.add(account)
        return account

    @staticmethod
    def update(db: Session, account: Account, **updates) -> Account:
        for key, value in updates.items():
            if hasattr(account, key):
                setattr(account, key, value)
        db.commit()
        db.refresh(account)
        return account

    @staticmethod
    def delete(db: Session, account: Account) -> None:
        db.delete(account)
        db.commit()

    @staticmethod
    def list_doctors(db: Session, specialization: Optional[str] = None) -> list[Doctor]:
        query = db.query(Doctor).filter(Doctor.is_active.is_(True))
        if specialization:
            query = query.filter(func.lower(Doctor.specialization) == specialization.lower())
        return query.order_by(Doctor.name.asc()).all()

    @staticmethod
    def list_patients(db: Session) -> list[Patient]:
        return db.query(Patient).order_by(Patient.created_at.desc()).all()

    @staticmethod
    def search_users(
        db: Session,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
        verification_status: Optional[str] = None,
        search: Optional[str] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[Account], int]:
        """Doctors and patients matching the filters, newest first, plus the total"""
        query = db.query(Account).filter(Account.role.in_(("doctor", "patient")))
        if role:
            query = query.filter(Account.role == role)
        if is_active is not None:
            query = query.filter(Account.is_active.is_(is_active))
        if verification_status:
            query = query.filter(Account.verification_status == verification_status)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(
                or_(func.lower(Account.name).like(pattern), func.lower(Account.email).like(pattern))
            )

        total = query.count()
        rows = query.order_by(Account.created_at.desc()).offset(offset).limit(limit).all()
        return rows, total

    @staticmethod
    def count(
        db: Session,
        role: str,
        is_active: Optional[bool] = None,
        verification_status: Optional[str] = None,
        created_since: Optional[datetime] = None,
    ) -> int:
        query = db.query(func.count(Account.id)).filter(Account.role == role)
        if is_active is not None:
            query = query.filter(Account.is_active.is_(is_active))
        if verification_status:
            query = query.filter(Account.verification_status == verification_status)
        if created_since:
            query = query.filter(Account.created_at >= created_since)
        return query.scalar() or 0
