from enum import Enum
from typing import Optional

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from .base import Record, WireModel


class DonationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PaymentMethod(str, Enum):
    BKASH = "Bkash"
    NAGAD = "Nagad"
    ROCKET = "Rocket"
    CASH = "Cash"
    BANK = "Bank"


class Donation(Record):
    donor_name: str = ""
    mobile: str = ""
    amount: int = Field(default=0, ge=0)
    method: PaymentMethod = PaymentMethod.CASH
    trx_id: str = ""
    note: Optional[str] = None
    is_anonymous: bool = False
    date: str = ""
    status: DonationStatus = DonationStatus.PENDING

    def label(self) -> str:
        return f"Donation {self.id}"


class Expense(Record):
    title: str = ""
    amount: int = Field(default=0, ge=0)
    category: str = ""
    date: str = ""
    description: str = ""


class DonationSubmission(WireModel):
    """Public donation form; id, date and status are assigned on submit."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    donor_name: str = Field(min_length=1)
    mobile: str = ""
    amount: int = Field(gt=0)
    method: PaymentMethod
    trx_id: str = ""
    note: Optional[str] = None
    is_anonymous: bool = False


class DonationStatusUpdate(WireModel):
    status: DonationStatus
