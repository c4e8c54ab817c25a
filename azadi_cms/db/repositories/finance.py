"""
Donation and expense repositories.

Donations are created ``pending`` by a public submission and decided exactly
once by an administrator. The decision is a partial update so no other field
of the stored donation is touched.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from azadi_cms.db.errors import InvalidStatusTransition
from azadi_cms.db.repositories.collections import CollectionRepository
from azadi_cms.db.schemas import Donation, DonationStatus, Expense, PaymentMethod
from azadi_cms.utils.ids import generate_record_id

logger = logging.getLogger(__name__)

_DECISIONS = {DonationStatus.APPROVED, DonationStatus.REJECTED}


def _parse_date(value: str) -> Optional[date]:
    try:
        return date.fromisoformat(value[:10])
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class DonationTotals:
    month: int
    year: int


class DonationRepository(CollectionRepository[Donation]):
    async def submit(
        self,
        *,
        donor_name: str,
        mobile: str,
        amount: int,
        method: PaymentMethod,
        trx_id: str = "",
        note: Optional[str] = None,
        is_anonymous: bool = False,
        today: Optional[date] = None,
    ) -> Donation:
        donation = Donation(
            id=generate_record_id("don"),
            donor_name=donor_name,
            mobile=mobile,
            amount=amount,
            method=method,
            trx_id=trx_id,
            note=note,
            is_anonymous=is_anonymous,
            date=(today or date.today()).isoformat(),
            status=DonationStatus.PENDING,
        )
        await self.save(donation)
        logger.info("donation_submitted id=%s amount=%s method=%s", donation.id, donation.amount, donation.method.value)
        return donation

    async def update_status(self, donation_id: str, status: DonationStatus) -> Donation:
        status = DonationStatus(status)
        donation = await self.require(donation_id)
        if status not in _DECISIONS or donation.status != DonationStatus.PENDING:
            raise InvalidStatusTransition(donation_id, donation.status.value, status.value)
        await self.patch(donation_id, {"status": status.value})
        donation.status = status
        logger.info("donation_status id=%s status=%s", donation_id, status.value)
        return donation


def approved_donations(donations: List[Donation]) -> List[Donation]:
    return [d for d in donations if d.status == DonationStatus.APPROVED]


def approved_totals(donations: List[Donation], today: Optional[date] = None) -> DonationTotals:
    today = today or date.today()
    month = year = 0
    for donation in approved_donations(donations):
        when = _parse_date(donation.date)
        if when is None or when.year != today.year:
            continue
        year += donation.amount
        if when.month == today.month:
            month += donation.amount
    return DonationTotals(month=month, year=year)


def recent_approved(donations: List[Donation], limit: int = 10) -> List[Donation]:
    """Newest approved donations first; undated ones sort last."""
    approved = approved_donations(donations)
    approved.sort(key=lambda d: _parse_date(d.date) or date.min, reverse=True)
    return approved[:limit]


class ExpenseRepository(CollectionRepository[Expense]):
    async def create(self, expense: Expense) -> Expense:
        if not expense.id:
            expense = expense.model_copy(update={"id": generate_record_id("exp")})
        return await self.save(expense)


def expense_total(expenses: List[Expense], *, month_of: Optional[date] = None) -> int:
    total = 0
    for expense in expenses:
        if month_of is not None:
            when = _parse_date(expense.date)
            if when is None or (when.year, when.month) != (month_of.year, month_of.month):
                continue
        total += expense.amount
    return total
