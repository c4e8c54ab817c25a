"""
Seed values returned for collections that have never been written.

Seeds are built fresh on every call so callers can mutate what they get back
without touching a shared default. Reading a seed never writes it to the
store.
"""
from __future__ import annotations

import os
from functools import lru_cache
from typing import Any, Dict, List

from azadi_cms.utils.credentials import hash_password

ORGANIZATION_PHONE = "01711975488"
DEFAULT_ADMIN_USER = "admin"


def seed_donations() -> List[Dict[str, Any]]:
    return []


def seed_expenses() -> List[Dict[str, Any]]:
    return [
        {
            "id": "e1",
            "title": "Event Banner",
            "description": "Banner for peace rally",
            "amount": 1200,
            "category": "Marketing",
            "date": "2023-10-01",
        }
    ]


def seed_leaders() -> List[Dict[str, Any]]:
    return []


def seed_members() -> List[Dict[str, Any]]:
    return []


def seed_events() -> List[Dict[str, Any]]:
    return [
        {
            "id": "ev1",
            "title": {"en": "Free Medical Camp", "bn": "বিনামূল্যে চিকিৎসা ক্যাম্প"},
            "description": {"en": "Free checkups for the poor.", "bn": "দরিদ্রদের জন্য বিনামূল্যে চেকআপ।"},
            "location": "Sylhet",
            "date": "2023-11-15",
            "image": "https://picsum.photos/800/400?random=10",
        }
    ]


def seed_gallery() -> List[Dict[str, Any]]:
    return [
        {
            "id": "g1",
            "imageUrl": "https://picsum.photos/600/600?random=1",
            "category": "Social Work",
            "caption": {"en": "Winter Cloth Distribution", "bn": "শীতবস্ত্র বিতরণ"},
        },
        {
            "id": "g2",
            "imageUrl": "https://picsum.photos/600/600?random=2",
            "category": "Meetings",
            "caption": {"en": "Annual Committee Meeting", "bn": "বার্ষিক কমিটি সভা"},
        },
        {
            "id": "g3",
            "imageUrl": "https://picsum.photos/600/600?random=3",
            "category": "Events",
            "caption": {"en": "Sports Day 2023", "bn": "ক্রীড়া দিবস ২০২৩"},
        },
    ]


@lru_cache(maxsize=1)
def _default_admin_hash() -> str:
    return hash_password(os.getenv("ADMIN_DEFAULT_PASSWORD", "admin123"))


def seed_settings() -> Dict[str, Any]:
    return {
        "contactPhone": ORGANIZATION_PHONE,
        "adminUser": DEFAULT_ADMIN_USER,
        "adminPassHash": _default_admin_hash(),
        "socialLinks": {
            "facebook": "https://facebook.com",
            "youtube": "https://youtube.com",
            "twitter": "",
        },
    }


def reset_seed_cache_for_tests() -> None:  # pragma: no cover - used in tests
    _default_admin_hash.cache_clear()
