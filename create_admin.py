"""
Seed an admin account
Usage: python create_admin.py <email> <name> [--super]
The password is read from the ADMIN_PASSWORD environment variable or prompted for.
"""

import argparse
import getpass
import logging
import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from healthconnect import models  # noqa: F401
from healthconnect.database import Base, SessionLocal, engine
from healthconnect.domain.accounts.service import AccountService
from healthconnect.errors import AppError

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create a HealthConnect admin account")
    parser.add_argument("email")
    parser.add_argument("name")
    parser.add_argument("--super", action="store_true", help="Create a super_admin")
    args = parser.parse_args()

    password = os.getenv("ADMIN_PASSWORD") or getpass.getpass("Admin password: ")

    Base.metadata.create_all(bind=engine, checkfirst=True)
    db = SessionLocal()
    try:
        admin = AccountService(db).create_admin(
            args.name, args.email, password, "super_admin" if args.super else "admin"
        )
        logger.info(f"✅ Admin created: {admin.email} (id={admin.id}, level={admin.admin_level})")
    except (AppError, ValueError) as e:
        logger.error(f"❌ Could not create admin: {e}")
        sys.exit(1)
    finally:
        db.close()
