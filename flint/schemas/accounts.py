"""Linked account listing."""

from decimal import Decimal
from typing import Optional

from flint.schemas.common import CamelModel


class AccountSummary(CamelModel):
    id: str
    name: str
    provider: str
    institution_name: Optional[str] = None
    account_type: str
    balance: Decimal
    payments_supported: bool = False
    supports_fractional: bool = False
