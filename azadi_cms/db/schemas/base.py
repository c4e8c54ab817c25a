from typing import ClassVar, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

Locale = Literal["en", "bn"]
LOCALES: Tuple[Locale, ...] = ("en", "bn")


class WireModel(BaseModel):
    """Base for everything persisted in the document store.

    Attributes are snake_case in Python and camelCase on the wire. Fields the
    store carries that a model does not declare are kept, so a read-modify-
    write never drops them.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class LocalizedText(BaseModel):
    en: str = ""
    bn: str = ""

    def get(self, locale: Locale) -> str:
        return getattr(self, locale)

    def missing_locale(self) -> Optional[Locale]:
        """Return the empty locale when exactly one side is populated."""
        has_en = bool(self.en.strip())
        has_bn = bool(self.bn.strip())
        if has_en and not has_bn:
            return "bn"
        if has_bn and not has_en:
            return "en"
        return None


class Record(WireModel):
    id: str

    # attribute names holding LocalizedText, scanned by maintenance tasks
    localized_fields: ClassVar[Tuple[str, ...]] = ()

    def image_ref(self) -> Optional[str]:
        return None

    def label(self) -> str:
        return f"{type(self).__name__} {self.id}"
