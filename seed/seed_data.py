"""
Seed the database with sample linked accounts.

Creates:
  - Checking and savings accounts that can fund card payments
  - Teller credit cards with statement balance, minimum due and due date
  - SnapTrade brokerage accounts (trading-enabled, fractional, read-only)
  - Edge cases: a bank that doesn't support payments, a card connected
    outside Teller, a paid-off card with nothing due

Run:
    python -m seed.seed_data
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from flint.database import async_session, init_db
from flint.models.records import LinkedAccount


ACCOUNTS = [
    # Funding accounts
    {"id": "acc_chk_001", "name": "Everyday Checking", "provider": "teller", "institution_name": "Chase", "account_type": "checking", "balance_cents": 482_517, "payments_supported": 1},
    {"id": "acc_sav_001", "name": "High Yield Savings", "provider": "teller", "institution_name": "Capital One", "account_type": "savings", "balance_cents": 1_250_000, "payments_supported": 1},
    {"id": "acc_chk_002", "name": "Joint Checking", "provider": "teller", "institution_name": "Wells Fargo", "account_type": "checking", "balance_cents": 9_800, "payments_supported": 1},

    # Credit cards
    {"id": "acc_cc_001", "name": "Sapphire Preferred", "provider": "teller", "institution_name": "Chase", "account_type": "credit_card", "balance_cents": -184_233, "statement_balance_cents": 150_000, "minimum_due_cents": 3_500, "due_date": "2026-11-12"},
    {"id": "acc_cc_002", "name": "Venture Rewards", "provider": "teller", "institution_name": "Capital One", "account_type": "credit_card", "balance_cents": -62_140, "statement_balance_cents": 58_920, "minimum_due_cents": None, "due_date": "2026-11-03"},
    {"id": "acc_cc_003", "name": "Quicksilver", "provider": "teller", "institution_name": "Capital One", "account_type": "credit_card", "balance_cents": 0, "statement_balance_cents": 0, "minimum_due_cents": 0, "due_date": None},

    # Brokerages
    {"id": "acc_brk_001", "name": "Individual Brokerage", "provider": "snaptrade", "institution_name": "Robinhood", "account_type": "brokerage", "balance_cents": 325_000},
    {"id": "acc_brk_002", "name": "Schwab One", "provider": "snaptrade", "institution_name": "Charles Schwab", "account_type": "brokerage", "balance_cents": 1_000_000},
    {"id": "acc_brk_003", "name": "Cash Account", "provider": "snaptrade", "institution_name": "Tradier", "account_type": "brokerage", "balance_cents": 50_000},

    # ─── Edge cases ────────────────────────────────────────────────────

    # Bank that doesn't support Teller payments → capability says no
    {"id": "acc_chk_090", "name": "Credit Union Checking", "provider": "teller", "institution_name": "Navy Federal", "account_type": "checking", "balance_cents": 210_000, "payments_supported": 0},

    # Card linked through SnapTrade instead of Teller → provider says no
    {"id": "acc_cc_090", "name": "Brokerage Card", "provider": "snaptrade", "institution_name": "Fidelity", "account_type": "credit_card", "balance_cents": -12_000, "statement_balance_cents": 12_000, "minimum_due_cents": 2_500},

    # Read-only brokerage → trading disabled
    {"id": "acc_brk_090", "name": "Rollover IRA", "provider": "snaptrade", "institution_name": "Vanguard", "account_type": "brokerage", "balance_cents": 8_400_000},
]


async def seed():
    """Seed the database with sample accounts."""
    await init_db()

    async with async_session() as session:
        # Check if already seeded
        existing = await session.get(LinkedAccount, "acc_chk_001")
        if existing:
            print("Database already seeded. Skipping.")
            return

        for account_data in ACCOUNTS:
            session.add(LinkedAccount(**account_data))

        await session.commit()
        print(f"Seeded {len(ACCOUNTS)} linked accounts.")


if __name__ == "__main__":
    asyncio.run(seed())
