"""API dependencies."""

import uuid
from datetime import date, datetime
from typing import Annotated

from fastapi import Depends, Header, Query
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_admin.config import get_settings
from affiliate_admin.services.settlement_calculator import SettlementCalculator
from affiliate_admin.services.settlement_history import SettlementHistoryService
from affiliate_admin.services.settlement_period import (
    PeriodPreset,
    SettlementWindow,
    resolve_period,
)
from affiliate_admin.services.settlement_source import (
    SettlementDataSource,
    SqlSettlementDataSource,
)
from affiliate_admin.services.system_settings import SystemSettingsService
from affiliate_admin.utils.db import get_db

DbSession = Annotated[AsyncSession, Depends(get_db)]


def get_trace_id(x_trace_id: Annotated[str | None, Header()] = None) -> str:
    """Trace ID from the X-Trace-Id header, generated if absent."""
    return x_trace_id or str(uuid.uuid4())


def get_settlement_source(db: DbSession) -> SettlementDataSource:
    """Settlement data source bound to the request session."""
    return SqlSettlementDataSource(db)


SettlementSource = Annotated[SettlementDataSource, Depends(get_settlement_source)]


def get_calculator(source: SettlementSource) -> SettlementCalculator:
    """Settlement calculator for the request."""
    return SettlementCalculator(source, tz=get_settings().tzinfo)


Calculator = Annotated[SettlementCalculator, Depends(get_calculator)]


def get_history_service(db: DbSession) -> SettlementHistoryService:
    return SettlementHistoryService(db)


def get_system_settings_service(db: DbSession) -> SystemSettingsService:
    return SystemSettingsService(db)


HistoryService = Annotated[SettlementHistoryService, Depends(get_history_service)]
SystemSettings = Annotated[SystemSettingsService, Depends(get_system_settings_service)]


def get_settlement_window(
    period: PeriodPreset = Query(PeriodPreset.MONTH, description="기간 필터"),
    start: date | None = Query(None, description="시작일 (custom)"),
    end: date | None = Query(None, description="종료일 (custom, 포함)"),
) -> SettlementWindow:
    """Resolve the period query parameters into a settlement window.

    Raises:
        SettlementError: INVALID_PERIOD for a bad custom range
    """
    tz = get_settings().tzinfo
    return resolve_period(period, datetime.now(tz), tz, start, end)


Window = Annotated[SettlementWindow, Depends(get_settlement_window)]
