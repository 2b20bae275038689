"""
View quota for match review.

Free accounts get a fixed number of match views; paid accounts are
unlimited. The quota is a plain value the caller loads, passes in, and
persists however it likes.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .config import Settings
from .logging import get_logger

logger = get_logger(__name__)

INITIAL_VIEW_COUNT = 100
PLANS = ("monthly", "yearly", "lifetime")


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class ViewQuota:
    remaining_views: int = INITIAL_VIEW_COUNT
    total_views: int = 0
    is_paid: bool = False
    plan: Optional[str] = None
    purchase_date: Optional[int] = None
    last_updated: int = field(default_factory=_now_ms)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ViewQuota":
        """Fresh free-tier quota sized by ``settings.initial_view_quota``."""
        settings = settings or Settings()
        return cls(remaining_views=settings.initial_view_quota)

    def can_view(self) -> bool:
        return self.is_paid or self.remaining_views > 0

    def consume(self) -> bool:
        """
        Record one match view.

        Returns:
            True if the view was allowed
        """
        if not self.can_view():
            return False

        if not self.is_paid:
            self.remaining_views -= 1
        self.total_views += 1
        self.last_updated = _now_ms()

        if not self.is_paid and self.remaining_views <= 10:
            logger.info(f"{self.remaining_views} match views remaining")
        return True

    def reset(self, views: int = INITIAL_VIEW_COUNT) -> None:
        self.remaining_views = views
        self.total_views = 0
        self.last_updated = _now_ms()

    def upgrade(self, plan: str) -> None:
        if plan not in PLANS:
            raise ValueError(f"Unknown plan '{plan}', expected one of {', '.join(PLANS)}")
        self.is_paid = True
        self.plan = plan
        self.purchase_date = _now_ms()
        self.last_updated = self.purchase_date
        logger.info(f"Account upgraded to {plan}")

    def downgrade(self) -> None:
        self.is_paid = False
        self.plan = None
        self.purchase_date = None
        self.last_updated = _now_ms()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "remaining_views": self.remaining_views,
            "total_views": self.total_views,
            "is_paid": self.is_paid,
            "plan": self.plan,
            "purchase_date": self.purchase_date,
            "last_updated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ViewQuota":
        """Rebuild a quota from ``to_dict`` output; missing keys take defaults."""
        defaults = cls()
        return cls(
            remaining_views=int(data.get("remaining_views", defaults.remaining_views)),
            total_views=int(data.get("total_views", defaults.total_views)),
            is_paid=bool(data.get("is_paid", defaults.is_paid)),
            plan=data.get("plan"),
            purchase_date=data.get("purchase_date"),
            last_updated=int(data.get("last_updated", defaults.last_updated)),
        )
