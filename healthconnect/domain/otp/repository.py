"""One-time code repository - Database operations for OTP rows"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import OneTimeCode


class OneTimeCodeRepository:
    """Repository for one-time code database operations"""

    @staticmethod
    def create(
        db: Session, email: str, purpose: str, code: str, expires_at: datetime, created_at: datetime
    ) -> OneTimeCode:
        row = OneTimeCode(
            email=email,
            purpose=purpose,
            code=code,
            expires_at=expires_at,
            created_at=created_at,
        )
        db.add(row)
        db.commit()
        db.refresh(row)
        return row

    @staticmethod
    def get_latest(
        db: Session, email: str, purpose: str, include_verified: bool = False
    ) -> Optional[OneTimeCode]:
        """Newest row for (email, purpose); stale older rows are ignored"""
        query = db.query(OneTimeCode).filter(
            OneTimeCode.email == email, OneTimeCode.purpose == purpose
        )
        if not include_verified:
            query = query.filter(OneTimeCode.verified.is_(False))
        return query.order_by(OneTimeCode.created_at.desc(), OneTimeCode.id.desc()).first()

    @staticmethod
    def get_issued_since(
        db: Session, email: str, purpose: str, since: datetime
    ) -> list[OneTimeCode]:
        return (
            db.query(OneTimeCode)
            .filter(
                OneTimeCode.email == email,
                OneTimeCode.purpose == purpose,
                OneTimeCode.created_at > since,
            )
            .order_by(OneTimeCode.created_at.asc())
            .all()
        )

    @staticmethod
    def delete(db: Session, row: OneTimeCode) -> None:
        db.delete(row)
        db.commit()

    @staticmethod
    def delete_for(db: Session, email: str, purpose: str) -> int:
        count = (
            db.query(OneTimeCode)
            .filter(OneTimeCode.email == email, OneTimeCode.purpose == purpose)
            .delete(synchronize_session=False)
        )
        db.commit()
        return count

    @staticmethod
    def delete_expired(db: Session, now: datetime) -> int:
        count = (
            db.query(OneTimeCode)
            .filter(OneTimeCode.expires_at <= now)
            .delete(synchronize_session=False)
        )
        db.commit()
        return count
