"""Throttling for one-time code issuance"""

import math
from abc import ABC, abstractmethod
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from ...errors import RateLimited
from .repository import OneTimeCodeRepository


class RateLimiter(ABC):
    """Decides whether another code may be issued for (email, purpose)"""

    @abstractmethod
    def check(self, email: str, purpose: str, now: datetime) -> None:
        """Raise RateLimited when issuing now is not allowed"""


class CodeIssueRateLimiter(RateLimiter):
    """
    Counts issued codes straight from the one_time_codes table.

    Two rules apply: a cooldown since the newest code, and a cap on how
    many codes may be issued within a sliding window.
    """

    def __init__(
        self,
        db: Session,
        cooldown_seconds: int = 60,
        max_per_window: int = 3,
        window_minutes: int = 15,
    ):
        self.db = db
        self.cooldown = timedelta(seconds=cooldown_seconds)
        self.max_per_window = max_per_window
        self.window = timedelta(minutes=window_minutes)
        self.repo = OneTimeCodeRepository()

    def check(self, email: str, purpose: str, now: datetime) -> None:
        issued = self.repo.get_issued_since(self.db, email, purpose, now - self.window)
        if not issued:
            return

        newest = issued[-1]
        if now - newest.created_at < self.cooldown:
            raise RateLimited(_seconds_until(newest.created_at + self.cooldown, now))

        if len(issued) >= self.max_per_window:
            # The window frees up when the oldest code in it ages out
            oldest = issued[-self.max_per_window]
            raise RateLimited(_seconds_until(oldest.created_at + self.window, now))


def _seconds_until(moment: datetime, now: datetime) -> int:
    return max(1, math.ceil((moment - now).total_seconds()))
