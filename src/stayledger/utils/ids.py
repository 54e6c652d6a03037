"""Identifier generation."""

import datetime as dt
import uuid


def generate_reservation_id(on: dt.date | None = None) -> str:
    """Generate a reservation ID like RES-2030-1A2B3C4D.

    Args:
        on: Date whose year is embedded. Defaults to today (UTC).
    """
    year = (on or dt.datetime.now(dt.UTC).date()).year
    return f"RES-{year}-{uuid.uuid4().hex[:8].upper()}"


def generate_id(prefix: str) -> str:
    """Generate a unique prefixed ID like LTX-ABC123DEF456.

    Args:
        prefix: ID prefix (LA for accounts, LTX for ledger transactions)
    """
    return f"{prefix}-{uuid.uuid4().hex[:12].upper()}"


def generate_request_token() -> str:
    """Generate an idempotency token for a transactional write (max 36 chars)."""
    return str(uuid.uuid4())
