"""
Admission gate for starting a subscription purchase.

Purchases may only be initiated during one local hour (10:00–10:59 in
Asia/Kolkata by default).  With ``enforced=False`` the gate is always open.
"""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo


class AdmissionGate:
    def __init__(
        self,
        *,
        enforced: bool = True,
        timezone: str = "Asia/Kolkata",
        open_hour: int = 10,
    ) -> None:
        self.enforced = enforced
        self.timezone = ZoneInfo(timezone)
        self.open_hour = open_hour

    def is_open(self, now: datetime) -> bool:
        """Pure function of *now*; naive datetimes are taken as UTC."""
        if not self.enforced:
            return True
        if now.tzinfo is None:
            now = now.replace(tzinfo=ZoneInfo("UTC"))
        return now.astimezone(self.timezone).hour == self.open_hour

    def describe(self) -> str:
        end = (self.open_hour + 1) % 24
        return f"Payment allowed only between {self.open_hour:02d}:00–{end:02d}:00 {self.timezone.key}"
