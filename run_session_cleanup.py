"""
Session & one-time code cleanup
Run out-of-band (cron): python run_session_cleanup.py [--days N]
"""

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from healthconnect.database import SessionLocal
from healthconnect.domain.otp.service import OtpService
from healthconnect.domain.sessions.service import SessionService

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


def run_cleanup(retention_days=None) -> dict:
    db = SessionLocal()
    try:
        sessions = SessionService(db)
        return {
            "expired_sessions": sessions.cleanup_expired(),
            "purged_sessions": sessions.purge_old(retention_days),
            "purged_codes": OtpService(db).purge_expired(),
        }
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Expire and purge login sessions and codes")
    parser.add_argument(
        "--days", type=int, default=None, help="Retention window for inactive sessions"
    )
    args = parser.parse_args()

    logger.info("🧹 Starting session cleanup...")
    try:
        result = run_cleanup(args.days)
    except Exception as e:
        logger.error(f"❌ Session cleanup failed: {e}")
        sys.exit(1)
    logger.info(f"✅ Cleanup finished: {result}")
