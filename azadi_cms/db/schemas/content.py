from typing import ClassVar, Optional, Tuple

from pydantic import Field

from .base import LocalizedText, Record


class Member(Record):
    name: LocalizedText = Field(default_factory=LocalizedText)
    designation: LocalizedText = Field(default_factory=LocalizedText)
    image: str = ""
    order: int = 0

    localized_fields: ClassVar[Tuple[str, ...]] = ("name", "designation")

    def image_ref(self) -> Optional[str]:
        return self.image or None

    def label(self) -> str:
        return f"Member: {self.name.en or self.name.bn or self.id}"


class Leader(Member):
    message: Optional[LocalizedText] = None
    bio: Optional[LocalizedText] = None

    localized_fields: ClassVar[Tuple[str, ...]] = ("name", "designation", "message", "bio")

    def label(self) -> str:
        return f"Leader: {self.name.en or self.name.bn or self.id}"


class Event(Record):
    title: LocalizedText = Field(default_factory=LocalizedText)
    description: LocalizedText = Field(default_factory=LocalizedText)
    location: str = ""
    date: str = ""
    image: str = ""

    localized_fields: ClassVar[Tuple[str, ...]] = ("title", "description")

    def image_ref(self) -> Optional[str]:
        return self.image or None

    def label(self) -> str:
        return f"Event: {self.title.en or self.title.bn or self.id}"


class GalleryItem(Record):
    image_url: str = ""
    category: str = ""
    caption: LocalizedText = Field(default_factory=LocalizedText)

    localized_fields: ClassVar[Tuple[str, ...]] = ("caption",)

    def image_ref(self) -> Optional[str]:
        return self.image_url or None

    def label(self) -> str:
        return "Gallery Item"
