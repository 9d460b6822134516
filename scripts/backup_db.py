#!/usr/bin/env python3
"""Take an on-demand snapshot of the ledger database.

Usage:
    python scripts/backup_db.py --label before-import
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from hoa_ledger.config import settings  # noqa: E402
from hoa_ledger.core.logging import configure_logging  # noqa: E402
from hoa_ledger.services.backup import perform_sqlite_backup  # noqa: E402


def main() -> None:
    parser = argparse.ArgumentParser(description="Snapshot the ledger database.")
    parser.add_argument("--dest", default=settings.backup_dir, help="Directory that receives the snapshot")
    parser.add_argument("--label", default="manual", help="Tag added to the snapshot file name")
    args = parser.parse_args()

    configure_logging(settings.log_level, structured=False)
    backup_path = perform_sqlite_backup(Path(args.dest), label=args.label)
    if backup_path is None:
        raise SystemExit("No snapshot taken: the ledger database is not a SQLite file or does not exist yet.")
    print(f"Ledger snapshot written to {backup_path}")


if __name__ == "__main__":
    main()
