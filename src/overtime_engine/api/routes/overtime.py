"""Overtime calculation, timesheet, configuration and report endpoints."""

from datetime import date

from fastapi import APIRouter, HTTPException, Query, status

from overtime_engine.api.dependencies import (
    ConfigService,
    Ledger,
    Reconciler,
    ReportService,
)
from overtime_engine.api.schemas import (
    CalculationRequest,
    CalculationResponse,
    EmployeeCalculationRequest,
    ErrorResponse,
    MessageResponse,
    PayConfigResponse,
    PayConfigUpdate,
    TimesheetDayResponse,
    TimesheetResponse,
    WeeklySummaryResponse,
    WorkweekSettingsRequest,
)
from overtime_engine.services.pay_config_service import WorkweekSettings
from overtime_engine.services.reconciliation import (
    ReconciliationResult,
    TimesheetReconciler,
)
from overtime_engine.services.sources import ConfigurationMissingError

router = APIRouter(prefix="/overtime", tags=["overtime"])


def _check_range(from_date: date, to_date: date) -> None:
    if from_date > to_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="from_date must be on or before to_date",
        )


def _calculation_response(result: ReconciliationResult) -> CalculationResponse:
    return CalculationResponse(
        success=result.success,
        message=result.message,
        days_calculated=result.days_calculated,
        days_failed=result.days_failed,
        days_locked=result.days_locked,
        errors=result.errors or None,
    )


async def _run(
    reconciler: TimesheetReconciler,
    employee_code: str | None,
    from_date: date,
    to_date: date,
    force_recalculate: bool,
) -> CalculationResponse:
    _check_range(from_date, to_date)
    result = await reconciler.reconcile(
        from_date,
        to_date,
        employee_ids=[employee_code] if employee_code else None,
        force_recalculate=force_recalculate,
    )
    return _calculation_response(result)


# ============================================================================
# Calculation
# ============================================================================


@router.post(
    "/calculate",
    response_model=CalculationResponse,
    responses={400: {"model": ErrorResponse}},
)
async def calculate(payload: CalculationRequest, reconciler: Reconciler) -> CalculationResponse:
    """Calculate ledger rows for one or all employees."""
    return await _run(
        reconciler,
        payload.employee_code,
        payload.from_date,
        payload.to_date,
        payload.force_recalculate,
    )


@router.post(
    "/calculate/{employee_code}",
    response_model=CalculationResponse,
    responses={400: {"model": ErrorResponse}},
)
async def calculate_employee(
    employee_code: str,
    payload: EmployeeCalculationRequest,
    reconciler: Reconciler,
) -> CalculationResponse:
    """Calculate ledger rows for one employee."""
    return await _run(
        reconciler,
        employee_code,
        payload.from_date,
        payload.to_date,
        payload.force_recalculate,
    )


# ============================================================================
# Timesheet
# ============================================================================


@router.get("/timesheet/{employee_code}", response_model=TimesheetResponse)
async def get_timesheet(
    employee_code: str,
    ledger: Ledger,
    from_date: date = Query(...),
    to_date: date = Query(...),
) -> TimesheetResponse:
    """Ledger rows for one employee over a date range."""
    _check_range(from_date, to_date)
    days = await ledger.list_range(employee_code, from_date, to_date)
    return TimesheetResponse(
        employee_code=employee_code,
        from_date=from_date,
        to_date=to_date,
        days=[TimesheetDayResponse.from_ledger(day) for day in days],
    )


# ============================================================================
# Pay configuration
# ============================================================================


@router.get("/config", response_model=list[PayConfigResponse])
async def list_configs(service: ConfigService) -> list[PayConfigResponse]:
    """All employee pay configurations."""
    return [PayConfigResponse.from_config(c) for c in await service.list_configs()]


@router.get(
    "/config/{employee_code}",
    response_model=PayConfigResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_config(employee_code: str, service: ConfigService) -> PayConfigResponse:
    """One employee's pay configuration."""
    config = await service.get_config(employee_code)
    if config is None:
        raise ConfigurationMissingError(employee_code)
    return PayConfigResponse.from_config(config)


@router.post(
    "/config/{employee_code}",
    response_model=PayConfigResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def update_config(
    employee_code: str,
    payload: PayConfigUpdate,
    service: ConfigService,
) -> PayConfigResponse:
    """Partially update a pay configuration and recalculate recent days."""
    config = await service.update_config(employee_code, payload.model_dump(exclude_unset=True))
    return PayConfigResponse.from_config(config)


@router.post(
    "/settings/workweek",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}},
)
async def update_workweek_settings(
    payload: WorkweekSettingsRequest,
    service: ConfigService,
) -> MessageResponse:
    """Update the weekly calendar of an employee or a site."""
    await service.update_workweek_settings(
        WorkweekSettings(
            week_start_day=payload.week_start_day,
            weekend_days=frozenset(payload.weekend_days),
            workday_start=payload.workday_start,
            workday_end=payload.workday_end,
            ot_start_time=payload.ot_start_time,
            minimum_daily_hours_for_pay=payload.minimum_daily_hours_for_pay,
            employee_id=payload.employee_code,
            site_code=payload.site_code,
        )
    )
    return MessageResponse(success=True, message="Workweek settings updated successfully")


# ============================================================================
# Reports
# ============================================================================


@router.get("/reports/weekly", response_model=list[WeeklySummaryResponse])
async def weekly_report(
    service: ReportService,
    from_date: date = Query(...),
    to_date: date = Query(...),
    employee_code: str | None = Query(default=None),
    include_daily_breakdown: bool = Query(default=True),
) -> list[WeeklySummaryResponse]:
    """Weekly bucket totals per employee."""
    _check_range(from_date, to_date)
    summaries = await service.generate(
        from_date,
        to_date,
        employee_ids=[employee_code] if employee_code else None,
        include_daily_breakdown=include_daily_breakdown,
    )
    return [WeeklySummaryResponse.from_summary(s) for s in summaries]
