#!/usr/bin/env python3
"""Generate any missing monthly dues entries; suitable for a cron entry."""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from hoa_ledger.config import Base, SessionLocal, engine, settings  # noqa: E402
from hoa_ledger.core.logging import configure_logging  # noqa: E402
from hoa_ledger.core.money import to_minor  # noqa: E402
from hoa_ledger.services.dues import ensure_dues_up_to_date  # noqa: E402
from hoa_ledger.services.store import build_ledger_store  # noqa: E402


def main() -> None:
    configure_logging(settings.log_level)
    Base.metadata.create_all(bind=engine)
    store = build_ledger_store(SessionLocal, monthly_fee=to_minor(settings.monthly_fee))
    created = ensure_dues_up_to_date(store)
    marker = store.last_processed
    if created:
        print(f"Created {created} due entries through {marker.label if marker else 'the current month'}.")
    else:
        print("Dues are already up to date.")


if __name__ == "__main__":
    main()
