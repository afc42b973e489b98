"""Business logic services."""

from affiliate_admin.services.settlement_calculator import (
    PartnerCommission,
    SettlementCalculator,
    SettlementMethod,
    SettlementSummary,
)
from affiliate_admin.services.settlement_history import SettlementHistoryService
from affiliate_admin.services.settlement_period import (
    PeriodPreset,
    SettlementWindow,
    month_bounds,
    resolve_period,
)
from affiliate_admin.services.settlement_source import (
    CommissionRates,
    PartnerNode,
    SettlementDataSource,
    SqlSettlementDataSource,
)
from affiliate_admin.services.system_settings import SystemSettingsService

__all__ = [
    # Engine
    "SettlementCalculator",
    "SettlementMethod",
    "SettlementSummary",
    "PartnerCommission",
    # Data source
    "SettlementDataSource",
    "SqlSettlementDataSource",
    "PartnerNode",
    "CommissionRates",
    # Periods
    "PeriodPreset",
    "SettlementWindow",
    "resolve_period",
    "month_bounds",
    # History / settings
    "SettlementHistoryService",
    "SystemSettingsService",
]
