"""
Immutable audit trail for payments and trades.

Every decision and provider interaction gets an append-only audit entry:
  - Ref type and id (which payment, trade preview, or order)
  - Action (what happened)
  - Details (amounts, provider ids, error messages)
  - Timestamp (UTC)

These records are never modified or deleted.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from flint.models.records import AuditLog

logger = logging.getLogger("flint.audit")


async def log_event(
    session: AsyncSession,
    action: str,
    ref_type: str,
    ref_id: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> AuditLog:
    """
    Create an immutable audit log entry.

    Args:
        session: Database session.
        action: What happened (e.g. "capability_checked", "payment_created").
        ref_type: "payment", "trade" or "order".
        ref_id: Id of the record the event relates to, when there is one.
        details: Arbitrary context (serialized to JSON).

    Returns:
        The created AuditLog record.
    """
    entry = AuditLog(
        ref_type=ref_type,
        ref_id=ref_id,
        action=action,
        details=json.dumps(details, default=str) if details else None,
        timestamp=datetime.now(timezone.utc),
    )
    session.add(entry)
    logger.info(
        "AUDIT | %s=%s action=%s | %s",
        ref_type,
        ref_id or "-",
        action,
        json.dumps(details, default=str)[:200] if details else "",
    )
    return entry


def append_note(existing_notes: Optional[str], message: str) -> str:
    """Append a timestamped line to a record's running notes."""
    prefix = f"[{datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M UTC')}] "
    new_note = prefix + message
    if not existing_notes:
        return new_note
    return f"{existing_notes}\n{new_note}"
