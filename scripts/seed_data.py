#!/usr/bin/env python
"""
Seed script to populate the ledger with sample residents for local development.

Usage:
    python scripts/seed_data.py --members 5
"""

import argparse
import sys
from datetime import date
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from hoa_ledger.config import Base, SessionLocal, engine, settings  # noqa: E402
from hoa_ledger.core.logging import configure_logging  # noqa: E402
from hoa_ledger.core.money import to_minor  # noqa: E402
from hoa_ledger.models import models as _models  # noqa: E402,F401
from hoa_ledger.models.ledger import FeedbackType  # noqa: E402
from hoa_ledger.services.expenses import add_expense  # noqa: E402
from hoa_ledger.services.feedback import submit_feedback  # noqa: E402
from hoa_ledger.services.members import find_by_apartment, register_member  # noqa: E402
from hoa_ledger.services.payments import pay  # noqa: E402
from hoa_ledger.services.store import build_ledger_store  # noqa: E402
from hoa_ledger.services.system import admin_actor, ensure_admin_credentials  # noqa: E402

SAMPLE_NAMES = [
    "Asha Rao",
    "Vikram Iyer",
    "Meera Nair",
    "Rohan Gupta",
    "Fatima Sheikh",
    "Arjun Menon",
    "Divya Kulkarni",
    "Karan Malhotra",
]


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the ledger with sample data.")
    parser.add_argument("--members", type=int, default=5, help="Number of sample residents to create")
    args = parser.parse_args()

    configure_logging(settings.log_level, structured=False)
    Base.metadata.create_all(bind=engine)
    store = build_ledger_store(SessionLocal, monthly_fee=to_minor(settings.monthly_fee))
    admin = admin_actor(ensure_admin_credentials(store))

    created = 0
    for index in range(args.members):
        apartment = f"A-{101 + index}"
        if find_by_apartment(store, apartment):
            continue
        member = register_member(
            store,
            admin,
            name=SAMPLE_NAMES[index % len(SAMPLE_NAMES)],
            apartment=apartment,
        )
        created += 1
        # Every other resident starts the month paid up.
        if index % 2 == 0:
            entry = member.dues_history[0]
            pay(store, admin, member.id, entry.key, entry.outstanding)

    if not store.expenses:
        add_expense(store, admin, "Lift maintenance", to_minor("4500"), "Maintenance", spent_on=date.today())
        add_expense(store, admin, "Security staff", to_minor("12000"), "Staff", spent_on=date.today())
    if not store.feedback:
        submit_feedback(store, admin, FeedbackType.SUGGESTION, "Rainwater harvesting", "Add a recharge pit.")

    print(f"Seeded {created} residents ({len(store.active_members())} active in total).")


if __name__ == "__main__":
    main()
