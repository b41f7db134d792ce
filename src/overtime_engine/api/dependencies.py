"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from overtime_engine.database import init_db
from overtime_engine.services.pay_config_service import PayConfigService
from overtime_engine.services.reconciliation import TimesheetReconciler
from overtime_engine.services.sources import EmployeeDirectory
from overtime_engine.services.sql_sources import (
    SqlLedgerStore,
    SqlPayConfigSource,
    SqlPunchSource,
)
from overtime_engine.services.weekly_report import WeeklyReportService


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency; commits when the request succeeds."""
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


DbSession = Annotated[AsyncSession, Depends(get_db_session)]


def get_directory(request: Request) -> EmployeeDirectory:
    """Application-wide employee list cache."""
    return request.app.state.directory


Directory = Annotated[EmployeeDirectory, Depends(get_directory)]


def get_reconciler(db: DbSession, directory: Directory) -> TimesheetReconciler:
    """Reconciler committing each employee-day as its own transaction."""
    return TimesheetReconciler(
        punches=SqlPunchSource(db),
        configs=SqlPayConfigSource(db),
        ledger=SqlLedgerStore(db, autocommit=True),
        directory=directory,
    )


def get_ledger(db: DbSession) -> SqlLedgerStore:
    return SqlLedgerStore(db)


def get_pay_config_service(db: DbSession, directory: Directory) -> PayConfigService:
    return PayConfigService(db, directory=directory)


def get_weekly_report_service(db: DbSession) -> WeeklyReportService:
    return WeeklyReportService(SqlLedgerStore(db), SqlPayConfigSource(db))


# Type aliases for cleaner dependency injection
Reconciler = Annotated[TimesheetReconciler, Depends(get_reconciler)]
Ledger = Annotated[SqlLedgerStore, Depends(get_ledger)]
ConfigService = Annotated[PayConfigService, Depends(get_pay_config_service)]
ReportService = Annotated[WeeklyReportService, Depends(get_weekly_report_service)]
