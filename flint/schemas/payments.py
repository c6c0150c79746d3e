"""Request/response contracts for the bank-to-card payment endpoints."""

from decimal import Decimal
from typing import Optional

from pydantic import Field

from flint.schemas.common import CamelModel


class CapabilityResponse(CamelModel):
    can_pay: bool
    reason: Optional[str] = None


class PrepareRequest(CamelModel):
    from_account_id: str = Field(min_length=1)
    to_account_id: str = Field(min_length=1)


class PreparationSnapshot(CamelModel):
    """Card metadata. Amounts are strings with two decimals on the wire."""

    minimum_due: Decimal
    statement_balance: Decimal
    due_date: Optional[str] = None


class CreatePaymentRequest(CamelModel):
    from_account_id: str = Field(min_length=1)
    to_account_id: str = Field(min_length=1)
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    memo: str = Field(default="", max_length=200)


class PaymentCreated(CamelModel):
    payment_id: str
    status: str


class PaymentStatusResponse(CamelModel):
    payment_id: str
    status: str


class MfaChallenge(CamelModel):
    """Body of the 409 returned when the bank wants the user to re-authenticate."""

    step: str = "mfa"
    connect_token: str
    message: str = "Additional authentication required. Please complete MFA with your bank."
