"""
Per-collection repositories over the document store.

``build_repositories`` wires one repository per collection root path
(``donations``, ``expenses``, ``leaders``, ``members``, ``events``,
``gallery``) plus the ``app_settings`` singleton onto a shared client.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from azadi_cms.db import seeds
from azadi_cms.db.document_client import BaseDocumentClient
from azadi_cms.db.schemas import Donation, Event, Expense, GalleryItem, Leader, Member

from .collections import BatchWriteConfig, BatchWriteResult, CollectionRepository, ListResult
from .finance import (
    DonationRepository,
    DonationTotals,
    ExpenseRepository,
    approved_totals,
    expense_total,
    recent_approved,
)
from .people import OrderedCollectionRepository, sort_by_order
from .settings import SETTINGS_PATH, SettingsRepository, SettingsResult, merge_settings


@dataclass
class ContentRepositories:
    donations: DonationRepository
    expenses: ExpenseRepository
    leaders: OrderedCollectionRepository[Leader]
    members: OrderedCollectionRepository[Member]
    events: CollectionRepository[Event]
    gallery: CollectionRepository[GalleryItem]
    settings: SettingsRepository

    def collections(self) -> Dict[str, CollectionRepository]:
        return {
            "donations": self.donations,
            "expenses": self.expenses,
            "leaders": self.leaders,
            "members": self.members,
            "events": self.events,
            "gallery": self.gallery,
        }

    def by_kind(self, kind: str) -> Optional[CollectionRepository]:
        return self.collections().get(kind)


def build_repositories(
    client: BaseDocumentClient,
    *,
    batch_config: Optional[BatchWriteConfig] = None,
) -> ContentRepositories:
    batch_config = batch_config or BatchWriteConfig.from_env()
    return ContentRepositories(
        donations=DonationRepository(client, "donations", Donation, seeds.seed_donations, batch_config=batch_config),
        expenses=ExpenseRepository(client, "expenses", Expense, seeds.seed_expenses, batch_config=batch_config),
        leaders=OrderedCollectionRepository(client, "leaders", Leader, seeds.seed_leaders, batch_config=batch_config),
        members=OrderedCollectionRepository(client, "members", Member, seeds.seed_members, batch_config=batch_config),
        events=CollectionRepository(client, "events", Event, seeds.seed_events, batch_config=batch_config),
        gallery=CollectionRepository(client, "gallery", GalleryItem, seeds.seed_gallery, batch_config=batch_config),
        settings=SettingsRepository(client),
    )


__all__ = [
    "BatchWriteConfig",
    "BatchWriteResult",
    "CollectionRepository",
    "ContentRepositories",
    "DonationRepository",
    "DonationTotals",
    "ExpenseRepository",
    "ListResult",
    "OrderedCollectionRepository",
    "SETTINGS_PATH",
    "SettingsRepository",
    "SettingsResult",
    "approved_totals",
    "build_repositories",
    "expense_total",
    "merge_settings",
    "recent_approved",
    "sort_by_order",
]
