"""Settlement (정산) API endpoints.

대시보드의 수수료 정산 / 통합 정산 화면에서 사용하는 API입니다.
계산 실패는 0으로 표시되며 degraded / failures 필드로 구분할 수 있습니다.
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends

from affiliate_admin.api.deps import (
    Calculator,
    HistoryService,
    SettlementSource,
    SystemSettings,
    Window,
    get_trace_id,
)
from affiliate_admin.logging_config import bind_context
from affiliate_admin.middleware.sentry import set_partner_context
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
from affiliate_admin.services.settlement_period import month_bounds
from affiliate_admin.services.settlement_source import PartnerNode, SettlementDataSource
from affiliate_admin.utils.errors import PartnerNotFoundError

router = APIRouter(prefix="/settlement", tags=["Settlement"])

TraceId = Annotated[str, Depends(get_trace_id)]


async def _get_partner(source: SettlementDataSource, partner_id: str) -> PartnerNode:
    partner = await source.fetch_partner(partner_id)
    if partner is None:
        raise PartnerNotFoundError(partner_id)
    return partner


# =============================================================================
# Integrated settlement (통합 정산)
# =============================================================================


@router.get(
    "/partners/{partner_id}/integrated",
    response_model=IntegratedSettlementResponse,
    summary="통합 정산",
    description="내 수입 - 직속 하위 파트너 지급 = 순수익을 계산합니다.",
)
async def get_integrated_settlement(
    partner_id: str,
    source: SettlementSource,
    calculator: Calculator,
    window: Window,
    trace_id: TraceId,
):
    """Integrated settlement summary for a partner."""
    bind_context(trace_id=trace_id, partner_id=partner_id)
    set_partner_context(partner_id)
    partner = await _get_partner(source, partner_id)

    outcome = await calculator.calculate_integrated_settlement(
        partner.id, partner.rates, window.start, window.end
    )

    return IntegratedSettlementResponse(
        partner_id=partner.id,
        window=WindowResponse.model_validate(window),
        summary=SettlementSummaryResponse.model_validate(outcome.value),
        degraded=outcome.degraded,
        failures=FailureResponse.from_failures(outcome.failures),
    )


# =============================================================================
# Child partner commissions (하위 파트너 수수료)
# =============================================================================


@router.get(
    "/partners/{partner_id}/children/commissions",
    response_model=ChildCommissionListResponse,
    summary="하위 파트너 수수료",
    description="직속 하위 파트너별 수수료를 레벨, 닉네임 순으로 조회합니다.",
)
async def get_child_commissions(
    partner_id: str,
    source: SettlementSource,
    calculator: Calculator,
    system_settings: SystemSettings,
    window: Window,
    trace_id: TraceId,
):
    """Commission of each direct child partner."""
    bind_context(trace_id=trace_id, partner_id=partner_id)
    set_partner_context(partner_id)
    partner = await _get_partner(source, partner_id)
    method = await system_settings.get_settlement_method()

    outcome = await calculator.calculate_child_partners_commission(
        partner.id, window.start, window.end, method
    )
    totals = calculator.summarize_commissions(outcome.value)

    return ChildCommissionListResponse(
        items=[PartnerCommissionResponse.model_validate(c) for c in outcome.value],
        totals=CommissionTotalsResponse.model_validate(totals),
        settlement_method=method,
        window=WindowResponse.model_validate(window),
        degraded=outcome.degraded,
        failures=FailureResponse.from_failures(outcome.failures),
    )


@router.get(
    "/partners/{partner_id}/payments",
    response_model=PartnerPaymentsResponse,
    summary="하위 파트너 지급액",
    description="직속 하위 파트너별 지급액 (각 파트너의 수수료율 × 전체 하위 활동).",
)
async def get_partner_payments(
    partner_id: str,
    source: SettlementSource,
    calculator: Calculator,
    window: Window,
    trace_id: TraceId,
):
    """Payments owed to each direct child partner."""
    bind_context(trace_id=trace_id, partner_id=partner_id)
    set_partner_context(partner_id)
    partner = await _get_partner(source, partner_id)

    outcome = await calculator.calculate_partner_payments(
        partner.id, window.start, window.end
    )
    payments = outcome.value

    return PartnerPaymentsResponse(
        details=[PartnerPaymentDetailResponse.model_validate(d) for d in payments.details],
        total_rolling=payments.total_rolling,
        total_losing=payments.total_losing,
        total_withdrawal=payments.total_withdrawal,
        total=payments.total,
        window=WindowResponse.model_validate(window),
        degraded=outcome.degraded,
        failures=FailureResponse.from_failures(outcome.failures),
    )


# =============================================================================
# Monthly commission / pending deposits
# =============================================================================


@router.get(
    "/partners/{partner_id}/monthly-commission",
    response_model=MonthlyCommissionResponse,
    summary="이번 달 커미션",
)
async def get_monthly_commission(
    partner_id: str,
    source: SettlementSource,
    calculator: Calculator,
    trace_id: TraceId,
):
    """My total income for the current month."""
    bind_context(trace_id=trace_id, partner_id=partner_id)
    set_partner_context(partner_id)
    partner = await _get_partner(source, partner_id)

    now = datetime.now(calculator.tz)
    month = month_bounds(now, calculator.tz)
    outcome = await calculator.calculate_monthly_commission(partner.id, partner.rates, now)

    return MonthlyCommissionResponse(
        partner_id=partner.id,
        month_start=month.start,
        month_end=month.end,
        total_commission=outcome.value,
        degraded=outcome.degraded,
        failures=FailureResponse.from_failures(outcome.failures),
    )


@router.get(
    "/partners/{partner_id}/pending-deposits",
    response_model=PendingDepositsResponse,
    summary="만충금",
    description="전체 하위 유저의 승인 대기 입금 합계입니다.",
)
async def get_pending_deposits(
    partner_id: str,
    source: SettlementSource,
    calculator: Calculator,
    window: Window,
    trace_id: TraceId,
):
    """Pending deposit total of the partner's downline."""
    bind_context(trace_id=trace_id, partner_id=partner_id)
    set_partner_context(partner_id)
    partner = await _get_partner(source, partner_id)

    descendants = await calculator.get_descendant_user_ids(partner.id)
    pending = await calculator.calculate_pending_deposits(
        descendants.value, window.start, window.end
    )
    failures = descendants.failures + pending.failures

    return PendingDepositsResponse(
        partner_id=partner.id,
        pending_amount=pending.value,
        window=WindowResponse.model_validate(window),
        degraded=bool(failures),
        failures=FailureResponse.from_failures(failures),
    )


# =============================================================================
# Settlement history (정산 내역)
# =============================================================================


@router.get(
    "/partners/{partner_id}/history",
    response_model=SettlementHistoryResponse,
    summary="정산 내역 및 통계",
    description="시스템관리자는 전체, 그 외 파트너는 본인 정산 내역만 조회합니다.",
)
async def get_settlement_history(
    partner_id: str,
    source: SettlementSource,
    history: HistoryService,
    window: Window,
    trace_id: TraceId,
):
    """Settlement records and statistics for the period."""
    bind_context(trace_id=trace_id, partner_id=partner_id)
    set_partner_context(partner_id)
    partner = await _get_partner(source, partner_id)

    now = datetime.now(window.start.tzinfo)
    records, stats = await history.get_stats(partner, window.start, window.end, now)

    return SettlementHistoryResponse(
        items=[SettlementRecordResponse.model_validate(r) for r in records],
        stats=SettlementStatsResponse.model_validate(stats),
        window=WindowResponse.model_validate(window),
    )
