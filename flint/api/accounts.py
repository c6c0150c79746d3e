"""
Linked account listing.

GET /accounts — every linked account with its last-known balance; the
client validates amounts against these balances before submitting.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from flint.database import get_session
from flint.engine.capability import supports_fractional_shares
from flint.models.enums import AccountType
from flint.models.records import LinkedAccount
from flint.schemas.accounts import AccountSummary
from flint.schemas.common import cents_to_decimal

router = APIRouter(prefix="/accounts", tags=["accounts"])


def _account_to_summary(account: LinkedAccount) -> AccountSummary:
    is_brokerage = account.account_type == AccountType.BROKERAGE.value
    return AccountSummary(
        id=account.id,
        name=account.name,
        provider=account.provider,
        institution_name=account.institution_name,
        account_type=account.account_type,
        balance=cents_to_decimal(account.balance_cents or 0),
        payments_supported=bool(account.payments_supported),
        supports_fractional=is_brokerage and supports_fractional_shares(account),
    )


@router.get("", response_model=list[AccountSummary])
async def list_accounts(session: AsyncSession = Depends(get_session)):
    result = await session.execute(select(LinkedAccount).order_by(LinkedAccount.name))
    return [_account_to_summary(a) for a in result.scalars().all()]
