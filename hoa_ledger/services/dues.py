"""Monthly dues generation.

Every active member carries exactly one due entry per calendar month from the
month they joined through the current month. Generation is idempotent and never
touches an entry that already exists.
"""
from __future__ import annotations

import logging
from typing import Optional

from ..models.ledger import Actor, AuditAction, DueEntry, Member, MonthKey, iter_months
from . import audit
from .rate_changes import effective_rate
from .store import LedgerStore

logger = logging.getLogger(__name__)


def add_dues_for_month(store: LedgerStore, member: Member, key: MonthKey) -> Optional[DueEntry]:
    if member.find_due(key):
        return None
    entry = DueEntry(year=key.year, month=key.month, amount=effective_rate(store, member.id, key))
    entry.refresh_paid()
    member.dues_history.append(entry)
    return entry


def _scan_start(member: Member, full_backfill: bool) -> MonthKey:
    joined = member.joined
    if full_backfill or not member.dues_history:
        return joined
    latest = max(entry.key for entry in member.dues_history)
    return max(joined, latest)


def ensure_dues_up_to_date(
    store: LedgerStore,
    as_of: Optional[MonthKey] = None,
    actor: Optional[Actor] = None,
) -> int:
    """Create any missing due entries through ``as_of`` and return how many were added.

    The last-processed marker only narrows the scan: with a valid marker each
    member is scanned forward from their latest entry, while a missing marker,
    or one ahead of ``as_of``, forces a full backfill from each join month.
    """
    target = as_of or store.current_month()
    created = 0
    with store.transaction():
        marker = store.last_processed
        full_backfill = marker is None or marker > target
        if marker is not None and marker > target:
            logger.warning(
                "Last processed month %s is ahead of %s; running a full dues backfill.",
                marker.as_marker(),
                target.as_marker(),
            )

        touched_members = 0
        for member in store.active_members():
            added = 0
            for key in iter_months(_scan_start(member, full_backfill), target):
                if add_dues_for_month(store, member, key):
                    added += 1
            if added:
                touched_members += 1
                created += added

        if created:
            audit.record(
                store,
                actor,
                AuditAction.DUES_GENERATED,
                {"asOf": target.as_dict(), "entriesCreated": created, "members": touched_members},
            )
        if marker is None or marker < target:
            store.last_processed = target

    if created:
        logger.info("Generated %d due entries through %s", created, target.label)
    return created
