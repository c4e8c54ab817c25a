"""
Pydantic schemas for every record kind kept in the document store, plus the
automation log and health snapshot types.
"""

from .base import LOCALES, Locale, LocalizedText, Record, WireModel
from .finance import Donation, DonationStatus, DonationStatusUpdate, DonationSubmission, Expense, PaymentMethod
from .content import Event, GalleryItem, Leader, Member
from .settings import AppSettings, PasswordChange, PublicSettings, SettingsUpdate, SocialLinks
from .automation import AutomationLog, DatabaseStatus, LogStatus, SystemHealth

__all__ = [
    "LOCALES",
    "Locale",
    "LocalizedText",
    "Record",
    "WireModel",
    "Donation",
    "DonationStatus",
    "DonationStatusUpdate",
    "DonationSubmission",
    "Expense",
    "PaymentMethod",
    "Event",
    "GalleryItem",
    "Leader",
    "Member",
    "AppSettings",
    "PasswordChange",
    "PublicSettings",
    "SettingsUpdate",
    "SocialLinks",
    "AutomationLog",
    "DatabaseStatus",
    "LogStatus",
    "SystemHealth",
]
