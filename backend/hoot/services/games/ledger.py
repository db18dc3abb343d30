"""Atomic claim on a payout row.

The claim is a single conditional UPDATE; whichever request changes the row
is the only one allowed to send the payout transaction. The row's
``contract_tx_hash`` is only ever written through ``settle``.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from hoot import db


def _update(row, criteria, values) -> bool:
    model = type(row)
    changed = (
        db.session.query(model)
        .filter(model.id == row.id, *criteria)
        .update(values, synchronize_session=False)
    )
    db.session.commit()
    db.session.refresh(row)
    return changed == 1


def claim(row) -> Optional[str]:
    """Claim ``row`` for payout. Returns the claim token, or None if the row
    is already paid out or claimed by someone else."""
    model = type(row)
    token = str(uuid.uuid4())
    won = _update(
        row,
        [model.contract_tx_hash.is_(None), model.claim_token.is_(None)],
        {model.claim_token: token, model.claimed_at: datetime.now(timezone.utc), model.pending_tx_hash: None},
    )
    return token if won else None


def take_over(row, stale_token: str, claimed_before: Optional[datetime] = None) -> Optional[str]:
    """Replace a stale claim: one whose pending transaction was found
    reverted, or, with ``claimed_before``, one that never got a transaction
    submitted and is older than that cutoff."""
    model = type(row)
    token = str(uuid.uuid4())
    criteria = [model.contract_tx_hash.is_(None), model.claim_token == stale_token]
    if claimed_before is not None:
        criteria += [model.pending_tx_hash.is_(None), model.claimed_at < claimed_before]
    won = _update(
        row,
        criteria,
        {model.claim_token: token, model.claimed_at: datetime.now(timezone.utc), model.pending_tx_hash: None},
    )
    return token if won else None


def record_pending(row, token: str, tx_hash: str) -> bool:
    model = type(row)
    return _update(row, [model.claim_token == token], {model.pending_tx_hash: tx_hash})


def release(row, token: str) -> bool:
    model = type(row)
    return _update(
        row,
        [model.claim_token == token, model.contract_tx_hash.is_(None)],
        {model.claim_token: None, model.claimed_at: None, model.pending_tx_hash: None},
    )


def settle(row, tx_hash: str, **extra) -> bool:
    """Store the confirmed payout hash. Only the first settle wins."""
    model = type(row)
    values = {
        model.contract_tx_hash: tx_hash,
        model.claim_token: None,
        model.claimed_at: None,
        model.pending_tx_hash: None,
    }
    values.update({getattr(model, name): value for name, value in extra.items()})
    return _update(row, [model.contract_tx_hash.is_(None)], values)


def mark_skipped(row) -> bool:
    """Record that no payout is owed for ``row``. A paid or claimed row is left alone."""
    model = type(row)
    return _update(
        row,
        [model.contract_tx_hash.is_(None), model.claim_token.is_(None)],
        {model.skipped: True},
    )
