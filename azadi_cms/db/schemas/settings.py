from typing import Optional

from pydantic import ConfigDict
from pydantic.alias_generators import to_camel

from .base import WireModel


class SocialLinks(WireModel):
    facebook: Optional[str] = None
    youtube: Optional[str] = None
    twitter: Optional[str] = None


class AppSettings(WireModel):
    contact_phone: str
    admin_user: str
    admin_pass_hash: str
    social_links: SocialLinks


class PublicSettings(WireModel):
    """Settings as returned to API callers; the credential hash never leaves the server."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    contact_phone: str
    admin_user: str
    social_links: SocialLinks

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "PublicSettings":
        return cls(
            contact_phone=settings.contact_phone,
            admin_user=settings.admin_user,
            social_links=settings.social_links,
        )


class SettingsUpdate(WireModel):
    # unknown keys are dropped so a request cannot smuggle in adminPassHash
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    contact_phone: Optional[str] = None
    admin_user: Optional[str] = None
    social_links: Optional[SocialLinks] = None


class PasswordChange(WireModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    current_password: str
    new_password: str
