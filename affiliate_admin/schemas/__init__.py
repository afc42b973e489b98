"""API schemas."""

from affiliate_admin.schemas.settlement import (
    ChildCommissionListResponse,
    CommissionTotalsResponse,
    FailureResponse,
    IntegratedSettlementResponse,
    MonthlyCommissionResponse,
    PartnerCommissionResponse,
    PartnerPaymentDetailResponse,
    PartnerPaymentsResponse,
    PendingDepositsResponse,
    SettlementHistoryResponse,
    SettlementRecordResponse,
    SettlementStatsResponse,
    SettlementSummaryResponse,
    WindowResponse,
)

__all__ = [
    "ChildCommissionListResponse",
    "CommissionTotalsResponse",
    "FailureResponse",
    "IntegratedSettlementResponse",
    "MonthlyCommissionResponse",
    "PartnerCommissionResponse",
    "PartnerPaymentDetailResponse",
    "PartnerPaymentsResponse",
    "PendingDepositsResponse",
    "SettlementHistoryResponse",
    "SettlementRecordResponse",
    "SettlementStatsResponse",
    "SettlementSummaryResponse",
    "WindowResponse",
]
