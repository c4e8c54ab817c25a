"""Admin dashboard figures computed from the current collections."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from azadi_cms.db.repositories import ContentRepositories, approved_totals, expense_total
from azadi_cms.db.schemas import DonationStatus

logger = logging.getLogger(__name__)


@dataclass
class DashboardStats:
    approved_total: int = 0
    approved_this_month: int = 0
    approved_this_year: int = 0
    pending_donations: int = 0
    people_count: int = 0
    event_count: int = 0
    expense_total: int = 0
    expense_this_month: int = 0
    degraded: bool = False
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


async def compute_dashboard(repositories: ContentRepositories, today: Optional[date] = None) -> DashboardStats:
    today = today or date.today()
    donations, expenses, leaders, members, events = await asyncio.gather(
        repositories.donations.list(),
        repositories.expenses.list(),
        repositories.leaders.list(),
        repositories.members.list(),
        repositories.events.list(),
    )
    errors = [r.error for r in (donations, expenses, leaders, members, events) if r.error]
    if errors:
        logger.warning("Dashboard computed from partial data: %s", "; ".join(errors))

    totals = approved_totals(donations.records, today)
    return DashboardStats(
        approved_total=sum(d.amount for d in donations.records if d.status == DonationStatus.APPROVED),
        approved_this_month=totals.month,
        approved_this_year=totals.year,
        pending_donations=sum(1 for d in donations.records if d.status == DonationStatus.PENDING),
        people_count=len(leaders.records) + len(members.records),
        event_count=len(events.records),
        expense_total=expense_total(expenses.records),
        expense_this_month=expense_total(expenses.records, month_of=today),
        degraded=bool(errors),
        errors=errors,
    )
