"""Settlement (정산) API schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from affiliate_admin.models.settlement import SettlementStatus
from affiliate_admin.services.settlement_calculator import SettlementMethod
from affiliate_admin.utils.errors import CalculationFailure, FailureKind


# =============================================================================
# Common
# =============================================================================


class WindowResponse(BaseModel):
    """정산 기간."""

    start: datetime
    end: datetime

    model_config = {"from_attributes": True}


class FailureResponse(BaseModel):
    """0으로 대체된 계산 단계."""

    kind: FailureKind
    stage: str
    message: str
    partner_id: str | None = Field(None, alias="partnerId")

    model_config = {"from_attributes": True, "populate_by_name": True}

    @classmethod
    def from_failures(cls, failures: list[CalculationFailure]) -> list["FailureResponse"]:
        return [cls.model_validate(f) for f in failures]


# =============================================================================
# Integrated settlement (통합 정산)
# =============================================================================


class SettlementSummaryResponse(BaseModel):
    """내 수입 - 하위 파트너 지급 = 순수익."""

    my_rolling_income: Decimal = Field(alias="myRollingIncome")
    my_losing_income: Decimal = Field(alias="myLosingIncome")
    my_withdrawal_income: Decimal = Field(alias="myWithdrawalIncome")
    my_total_income: Decimal = Field(alias="myTotalIncome")

    partner_rolling_payments: Decimal = Field(alias="partnerRollingPayments")
    partner_losing_payments: Decimal = Field(alias="partnerLosingPayments")
    partner_withdrawal_payments: Decimal = Field(alias="partnerWithdrawalPayments")
    partner_total_payments: Decimal = Field(alias="partnerTotalPayments")

    net_rolling_profit: Decimal = Field(alias="netRollingProfit")
    net_losing_profit: Decimal = Field(alias="netLosingProfit")
    net_withdrawal_profit: Decimal = Field(alias="netWithdrawalProfit")
    net_total_profit: Decimal = Field(alias="netTotalProfit")

    model_config = {"from_attributes": True, "populate_by_name": True}


class IntegratedSettlementResponse(BaseModel):
    """통합 정산 응답."""

    partner_id: str = Field(alias="partnerId")
    window: WindowResponse
    summary: SettlementSummaryResponse
    degraded: bool = False
    failures: list[FailureResponse] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


# =============================================================================
# Child partner commissions (하위 파트너 수수료)
# =============================================================================


class PartnerCommissionResponse(BaseModel):
    """파트너별 수수료."""

    partner_id: str = Field(alias="partnerId")
    partner_username: str = Field(alias="partnerUsername")
    partner_nickname: str = Field(alias="partnerNickname")
    partner_level: int = Field(alias="partnerLevel")
    commission_rolling: Decimal = Field(alias="commissionRolling")
    commission_losing: Decimal = Field(alias="commissionLosing")
    withdrawal_fee: Decimal = Field(alias="withdrawalFee")
    total_bet_amount: Decimal = Field(alias="totalBetAmount")
    total_loss_amount: Decimal = Field(alias="totalLossAmount")
    total_withdrawal_amount: Decimal = Field(alias="totalWithdrawalAmount")
    rolling_commission: Decimal = Field(alias="rollingCommission")
    losing_commission: Decimal = Field(alias="losingCommission")
    withdrawal_commission: Decimal = Field(alias="withdrawalCommission")
    total_commission: Decimal = Field(alias="totalCommission")

    model_config = {"from_attributes": True, "populate_by_name": True}


class CommissionTotalsResponse(BaseModel):
    """하위 파트너 수수료 합계."""

    total_rolling_commission: Decimal = Field(alias="totalRollingCommission")
    total_losing_commission: Decimal = Field(alias="totalLosingCommission")
    total_withdrawal_commission: Decimal = Field(alias="totalWithdrawalCommission")
    total_commission: Decimal = Field(alias="totalCommission")
    partner_count: int = Field(alias="partnerCount")

    model_config = {"from_attributes": True, "populate_by_name": True}


class ChildCommissionListResponse(BaseModel):
    """하위 파트너 수수료 목록 응답."""

    items: list[PartnerCommissionResponse]
    totals: CommissionTotalsResponse
    settlement_method: SettlementMethod = Field(alias="settlementMethod")
    window: WindowResponse
    degraded: bool = False
    failures: list[FailureResponse] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


# =============================================================================
# Payments to child partners (하위 파트너 지급)
# =============================================================================


class PartnerPaymentDetailResponse(BaseModel):
    """하위 파트너 지급 상세."""

    partner_id: str = Field(alias="partnerId")
    partner_nickname: str = Field(alias="partnerNickname")
    rolling_payment: Decimal = Field(alias="rollingPayment")
    losing_payment: Decimal = Field(alias="losingPayment")
    withdrawal_payment: Decimal = Field(alias="withdrawalPayment")
    total_payment: Decimal = Field(alias="totalPayment")

    model_config = {"from_attributes": True, "populate_by_name": True}


class PartnerPaymentsResponse(BaseModel):
    """하위 파트너 지급 응답."""

    details: list[PartnerPaymentDetailResponse]
    total_rolling: Decimal = Field(alias="totalRolling")
    total_losing: Decimal = Field(alias="totalLosing")
    total_withdrawal: Decimal = Field(alias="totalWithdrawal")
    total: Decimal
    window: WindowResponse
    degraded: bool = False
    failures: list[FailureResponse] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


# =============================================================================
# Monthly commission / pending deposits
# =============================================================================


class MonthlyCommissionResponse(BaseModel):
    """이번 달 커미션 응답."""

    partner_id: str = Field(alias="partnerId")
    month_start: datetime = Field(alias="monthStart")
    month_end: datetime = Field(alias="monthEnd")
    total_commission: Decimal = Field(alias="totalCommission")
    degraded: bool = False
    failures: list[FailureResponse] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class PendingDepositsResponse(BaseModel):
    """만충금(승인 대기 입금) 응답."""

    partner_id: str = Field(alias="partnerId")
    pending_amount: Decimal = Field(alias="pendingAmount")
    window: WindowResponse
    degraded: bool = False
    failures: list[FailureResponse] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


# =============================================================================
# Settlement history (정산 내역)
# =============================================================================


class SettlementRecordResponse(BaseModel):
    """정산 내역 항목."""

    id: str
    partner_id: str = Field(alias="partnerId")
    settlement_type: str = Field(alias="settlementType")
    period_start: datetime = Field(alias="periodStart")
    period_end: datetime = Field(alias="periodEnd")
    total_bet_amount: Decimal = Field(alias="totalBetAmount")
    commission_rate: Decimal = Field(alias="commissionRate")
    commission_amount: Decimal = Field(alias="commissionAmount")
    status: SettlementStatus
    created_at: datetime = Field(alias="createdAt")

    model_config = {"from_attributes": True, "populate_by_name": True}


class SettlementStatsResponse(BaseModel):
    """정산 통계."""

    total_commission: Decimal = Field(alias="totalCommission")
    daily_average: Decimal = Field(alias="dailyAverage")
    growth_rate: Decimal = Field(alias="growthRate")
    active_partners: int = Field(alias="activePartners")
    total_bet_volume: Decimal = Field(alias="totalBetVolume")
    avg_commission_rate: Decimal = Field(alias="avgCommissionRate")

    model_config = {"from_attributes": True, "populate_by_name": True}


class SettlementHistoryResponse(BaseModel):
    """정산 내역 + 통계 응답."""

    items: list[SettlementRecordResponse]
    stats: SettlementStatsResponse
    window: WindowResponse

    model_config = {"populate_by_name": True}
