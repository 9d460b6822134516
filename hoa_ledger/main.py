import asyncio
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .api import advance, audit_logs, auth, dues, expenses, feedback, members, payments, receipts, reports, system
from .config import Base, SessionLocal, engine, settings
from .core.errors import register_exception_handlers
from .core.logging import configure_logging
from .core.money import to_minor
from .core.security import SecurityHeadersMiddleware, log_security_warnings
from .models import models as _models  # noqa: F401
from .services.backup import perform_sqlite_backup
from .services.dues import ensure_dues_up_to_date
from .services.store import LedgerStore, build_ledger_store
from .services.system import ensure_admin_credentials, using_default_password

logger = logging.getLogger(__name__)

app = FastAPI(title="HOA Ledger")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(SecurityHeadersMiddleware)
register_exception_handlers(app)

uploads_dir = settings.uploads_root_path
uploads_dir.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=str(uploads_dir)), name="uploads")

_dues_task: Optional[asyncio.Task] = None


async def _periodic_dues_check(store: LedgerStore, interval_seconds: int) -> None:
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            created = await asyncio.to_thread(ensure_dues_up_to_date, store)
            if created:
                logger.info("Periodic dues check created %d entries", created)
        except Exception:
            logger.exception("Periodic dues check failed.")


@app.on_event("startup")
async def startup() -> None:
    global _dues_task
    configure_logging(settings.log_level)
    Base.metadata.create_all(bind=engine)

    store = build_ledger_store(SessionLocal, monthly_fee=to_minor(settings.monthly_fee))
    app.state.ledger_store = store
    ensure_admin_credentials(store)
    ensure_dues_up_to_date(store)
    log_security_warnings(settings.jwt_secret, using_default_password(store))

    _dues_task = asyncio.create_task(_periodic_dues_check(store, settings.dues_check_interval_seconds))


app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(members.router, prefix="/members", tags=["members"])
app.include_router(dues.router, prefix="/dues", tags=["dues"])
app.include_router(payments.router, prefix="/payments", tags=["payments"])
app.include_router(advance.router, prefix="/advance", tags=["advance"])
app.include_router(receipts.router, prefix="/receipts", tags=["receipts"])
app.include_router(expenses.router, prefix="/expenses", tags=["expenses"])
app.include_router(feedback.router, prefix="/feedback", tags=["feedback"])
app.include_router(reports.router, prefix="/reports", tags=["reports"])
app.include_router(audit_logs.router)
app.include_router(system.router, prefix="/system", tags=["system"])


@app.on_event("shutdown")
async def shutdown() -> None:
    """Stop the dues timer and take a SQLite backup."""
    if _dues_task is not None:
        _dues_task.cancel()
    try:
        backup_path = perform_sqlite_backup(label="shutdown")
        if backup_path:
            logger.info("SQLite backup created at %s", backup_path)
    except Exception:
        logger.exception("Failed to create SQLite backup during shutdown.")
