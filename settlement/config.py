"""
Studio settings read from the environment.
"""

import os
from dataclasses import dataclass
from datetime import date
from zoneinfo import ZoneInfo


@dataclass(frozen=True)
class StudioSettings:
    timezone: str = "UTC"
    week_starts_on: int = 0  # 0 = Monday ... 6 = Sunday
    payout_anchor: date | None = None  # None = start of the current period's calendar year
    settlement_max_retries: int = 3

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @classmethod
    def from_env(cls) -> "StudioSettings":
        anchor = os.environ.get("PAYOUT_ANCHOR_DATE")
        return cls(
            timezone=os.environ.get("STUDIO_TIMEZONE", "UTC"),
            week_starts_on=int(os.environ.get("WEEK_STARTS_ON", 0)),
            payout_anchor=date.fromisoformat(anchor) if anchor else None,
            settlement_max_retries=int(os.environ.get("SETTLEMENT_MAX_RETRIES", 3)),
        )

    @classmethod
    def from_dict(cls, data: dict | None) -> "StudioSettings":
        """Per-request overrides on top of the environment defaults."""
        base = cls.from_env()
        if not data:
            return base
        anchor = data.get("payout_anchor")
        return cls(
            timezone=data.get("timezone", base.timezone),
            week_starts_on=data.get("week_starts_on", base.week_starts_on),
            payout_anchor=date.fromisoformat(anchor) if anchor else base.payout_anchor,
            settlement_max_retries=data.get("settlement_max_retries", base.settlement_max_retries),
        )
