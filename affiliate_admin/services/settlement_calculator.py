"""Settlement (정산) calculation engine.

파트너 트리를 따라 하위 유저의 베팅/손실/출금 활동을 집계하고
롤링/루징/환전 수수료를 계산합니다.

- 내 수입: 내 수수료율 × 전체 하위(손자 이하 포함) 유저 활동
- 하위 파트너 지급: 직속 하위 파트너별 (그 파트너의 수수료율 × 그 파트너의 전체 하위 활동)
- 순수익: 내 수입 - 하위 파트너 지급

모든 계산은 읽기 전용입니다. 조회 실패는 예외로 올라가지 않고 0으로 대체되며,
실패 내역은 Outcome.failures 로 전달됩니다.
"""

from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from decimal import Decimal
from enum import Enum

from affiliate_admin.logging_config import get_logger
from affiliate_admin.models.transaction import (
    SETTLED_WITHDRAWAL_STATUSES,
    TransactionStatus,
    TransactionType,
)
from affiliate_admin.services.settlement_period import month_bounds
from affiliate_admin.services.settlement_source import (
    ZERO,
    CommissionRates,
    PartnerNode,
    SettlementDataSource,
)
from affiliate_admin.utils.errors import CalculationFailure, Outcome

logger = get_logger(__name__)

HUNDRED = Decimal("100")


class SettlementMethod(str, Enum):
    """How a child partner's commission base is chosen.

    - DIRECT_SUBORDINATE: 해당 파트너의 전체 하위 유저
    - DIFFERENTIAL: 해당 파트너가 직접 추천한 유저만
    """

    DIRECT_SUBORDINATE = "direct_subordinate"
    DIFFERENTIAL = "differential"


# =============================================================================
# Result types
# =============================================================================


@dataclass(frozen=True)
class BettingStats:
    total_bet_amount: Decimal = ZERO
    total_loss_amount: Decimal = ZERO


@dataclass(frozen=True)
class ActivityTotals:
    """Aggregated activity of a set of users in a window."""

    total_bet_amount: Decimal = ZERO
    total_loss_amount: Decimal = ZERO
    total_withdrawal_amount: Decimal = ZERO


@dataclass(frozen=True)
class IncomeBreakdown:
    """Commission amounts per category."""

    rolling: Decimal = ZERO
    losing: Decimal = ZERO
    withdrawal: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.rolling + self.losing + self.withdrawal


def apply_rates(activity: ActivityTotals, rates: CommissionRates) -> IncomeBreakdown:
    """Multiply each activity aggregate by its percentage rate."""
    return IncomeBreakdown(
        rolling=activity.total_bet_amount * (rates.rolling / HUNDRED),
        losing=activity.total_loss_amount * (rates.losing / HUNDRED),
        withdrawal=activity.total_withdrawal_amount * (rates.withdrawal / HUNDRED),
    )


@dataclass(frozen=True)
class PartnerCommission:
    """Commission of one partner over its commission base."""

    partner_id: str
    partner_username: str
    partner_nickname: str
    partner_level: int
    commission_rolling: Decimal
    commission_losing: Decimal
    withdrawal_fee: Decimal
    total_bet_amount: Decimal = ZERO
    total_loss_amount: Decimal = ZERO
    total_withdrawal_amount: Decimal = ZERO
    rolling_commission: Decimal = ZERO
    losing_commission: Decimal = ZERO
    withdrawal_commission: Decimal = ZERO

    @property
    def total_commission(self) -> Decimal:
        return self.rolling_commission + self.losing_commission + self.withdrawal_commission

    @classmethod
    def zero(cls, partner: PartnerNode) -> "PartnerCommission":
        return cls(
            partner_id=partner.id,
            partner_username=partner.username,
            partner_nickname=partner.nickname,
            partner_level=partner.level,
            commission_rolling=partner.commission_rolling,
            commission_losing=partner.commission_losing,
            withdrawal_fee=partner.withdrawal_fee,
        )

    @classmethod
    def build(
        cls,
        partner: PartnerNode,
        activity: ActivityTotals,
        income: IncomeBreakdown,
    ) -> "PartnerCommission":
        return cls(
            partner_id=partner.id,
            partner_username=partner.username,
            partner_nickname=partner.nickname,
            partner_level=partner.level,
            commission_rolling=partner.commission_rolling,
            commission_losing=partner.commission_losing,
            withdrawal_fee=partner.withdrawal_fee,
            total_bet_amount=activity.total_bet_amount,
            total_loss_amount=activity.total_loss_amount,
            total_withdrawal_amount=activity.total_withdrawal_amount,
            rolling_commission=income.rolling,
            losing_commission=income.losing,
            withdrawal_commission=income.withdrawal,
        )


@dataclass(frozen=True)
class CommissionTotals:
    """Totals over a list of partner commissions."""

    total_rolling_commission: Decimal = ZERO
    total_losing_commission: Decimal = ZERO
    total_withdrawal_commission: Decimal = ZERO
    partner_count: int = 0

    @property
    def total_commission(self) -> Decimal:
        return (
            self.total_rolling_commission
            + self.total_losing_commission
            + self.total_withdrawal_commission
        )


@dataclass(frozen=True)
class PartnerPaymentDetail:
    """What a parent owes one direct child partner."""

    partner_id: str
    partner_nickname: str
    rolling_payment: Decimal = ZERO
    losing_payment: Decimal = ZERO
    withdrawal_payment: Decimal = ZERO

    @property
    def total_payment(self) -> Decimal:
        return self.rolling_payment + self.losing_payment + self.withdrawal_payment


@dataclass(frozen=True)
class PartnerPayments:
    """Payments owed to all direct child partners."""

    details: list[PartnerPaymentDetail] = field(default_factory=list)

    @property
    def total_rolling(self) -> Decimal:
        return sum((d.rolling_payment for d in self.details), ZERO)

    @property
    def total_losing(self) -> Decimal:
        return sum((d.losing_payment for d in self.details), ZERO)

    @property
    def total_withdrawal(self) -> Decimal:
        return sum((d.withdrawal_payment for d in self.details), ZERO)

    @property
    def total(self) -> Decimal:
        return self.total_rolling + self.total_losing + self.total_withdrawal


@dataclass(frozen=True)
class SettlementSummary:
    """My income minus payments to direct children, per category."""

    my_rolling_income: Decimal = ZERO
    my_losing_income: Decimal = ZERO
    my_withdrawal_income: Decimal = ZERO
    partner_rolling_payments: Decimal = ZERO
    partner_losing_payments: Decimal = ZERO
    partner_withdrawal_payments: Decimal = ZERO

    @property
    def my_total_income(self) -> Decimal:
        return self.my_rolling_income + self.my_losing_income + self.my_withdrawal_income

    @property
    def partner_total_payments(self) -> Decimal:
        return (
            self.partner_rolling_payments
            + self.partner_losing_payments
            + self.partner_withdrawal_payments
        )

    @property
    def net_rolling_profit(self) -> Decimal:
        return self.my_rolling_income - self.partner_rolling_payments

    @property
    def net_losing_profit(self) -> Decimal:
        return self.my_losing_income - self.partner_losing_payments

    @property
    def net_withdrawal_profit(self) -> Decimal:
        return self.my_withdrawal_income - self.partner_withdrawal_payments

    @property
    def net_total_profit(self) -> Decimal:
        return self.my_total_income - self.partner_total_payments

    @classmethod
    def from_parts(
        cls,
        income: IncomeBreakdown,
        payments: PartnerPayments,
    ) -> "SettlementSummary":
        return cls(
            my_rolling_income=income.rolling,
            my_losing_income=income.losing,
            my_withdrawal_income=income.withdrawal,
            partner_rolling_payments=payments.total_rolling,
            partner_losing_payments=payments.total_losing,
            partner_withdrawal_payments=payments.total_withdrawal,
        )


# =============================================================================
# Engine
# =============================================================================


class SettlementCalculator:
    """Partner settlement calculator.

    Args:
        source: Data source for partners, users and activity
        tz: Timezone for the monthly rollup boundaries
    """

    def __init__(self, source: SettlementDataSource, tz: tzinfo = timezone.utc):
        self.source = source
        self.tz = tz

    def _failure(
        self,
        exc: BaseException,
        stage: str,
        partner_id: str | None = None,
    ) -> CalculationFailure:
        failure = CalculationFailure.from_exception(exc, stage, partner_id)
        logger.error(
            f"settlement_{stage}_failed",
            partner_id=partner_id,
            failure_kind=failure.kind.value,
            error=failure.message,
        )
        return failure

    # -------------------------------------------------------------------------
    # Descendant resolution
    # -------------------------------------------------------------------------

    async def get_descendant_user_ids(self, partner_id: str) -> Outcome[list[str]]:
        """All users under a partner: its direct users plus every child subtree.

        파트너 방문 집합으로 순환 참조가 있어도 종료가 보장됩니다.
        """
        try:
            user_ids = await self._walk_descendants(partner_id)
        except Exception as e:
            return Outcome([], [self._failure(e, "descendants", partner_id)])
        return Outcome(user_ids)

    async def _walk_descendants(self, partner_id: str) -> list[str]:
        user_ids: list[str] = []
        visited = {partner_id}
        pending = deque([partner_id])

        while pending:
            current = pending.popleft()
            user_ids.extend(await self.source.fetch_direct_user_ids(current))

            for child in await self.source.fetch_child_partners(current):
                if child.id in visited:
                    logger.warning(
                        "settlement_partner_cycle_detected",
                        partner_id=child.id,
                        parent_id=current,
                    )
                    continue
                visited.add(child.id)
                pending.append(child.id)

        return user_ids

    async def _commission_base(
        self,
        partner_id: str,
        method: SettlementMethod,
    ) -> Outcome[list[str]]:
        if method == SettlementMethod.DIFFERENTIAL:
            try:
                return Outcome(await self.source.fetch_direct_user_ids(partner_id))
            except Exception as e:
                return Outcome([], [self._failure(e, "direct_users", partner_id)])
        return await self.get_descendant_user_ids(partner_id)

    # -------------------------------------------------------------------------
    # Activity aggregation
    # -------------------------------------------------------------------------

    async def get_betting_stats(
        self,
        user_ids: Sequence[str],
        start: datetime,
        end: datetime,
    ) -> Outcome[BettingStats]:
        """Total bet and total per-record clipped loss in [start, end]."""
        if not user_ids or start >= end:
            return Outcome(BettingStats())

        try:
            records = await self.source.fetch_game_records(user_ids, start, end)
        except Exception as e:
            return Outcome(BettingStats(), [self._failure(e, "betting_stats")])

        return Outcome(
            BettingStats(
                total_bet_amount=sum((r.bet_amount for r in records), ZERO),
                total_loss_amount=sum((r.loss for r in records), ZERO),
            )
        )

    async def get_withdrawal_amount(
        self,
        user_ids: Sequence[str],
        start: datetime,
        end: datetime,
    ) -> Outcome[Decimal]:
        """Sum of approved/completed withdrawals in [start, end]."""
        return await self._sum_transactions(
            user_ids,
            TransactionType.WITHDRAWAL,
            SETTLED_WITHDRAWAL_STATUSES,
            start,
            end,
            stage="withdrawals",
        )

    async def calculate_pending_deposits(
        self,
        user_ids: Sequence[str],
        start: datetime,
        end: datetime,
    ) -> Outcome[Decimal]:
        """Sum of deposits still waiting for approval (만충금)."""
        return await self._sum_transactions(
            user_ids,
            TransactionType.DEPOSIT,
            (TransactionStatus.PENDING,),
            start,
            end,
            stage="pending_deposits",
        )

    async def _sum_transactions(
        self,
        user_ids: Sequence[str],
        transaction_type: TransactionType,
        statuses: Sequence[TransactionStatus],
        start: datetime,
        end: datetime,
        stage: str,
    ) -> Outcome[Decimal]:
        if not user_ids or start >= end:
            return Outcome(ZERO)

        try:
            amounts = await self.source.fetch_transaction_amounts(
                user_ids, transaction_type, statuses, start, end
            )
        except Exception as e:
            return Outcome(ZERO, [self._failure(e, stage)])

        return Outcome(sum(amounts, ZERO))

    async def _collect_activity(
        self,
        user_ids: Sequence[str],
        start: datetime,
        end: datetime,
    ) -> Outcome[ActivityTotals]:
        betting = await self.get_betting_stats(user_ids, start, end)
        withdrawal = await self.get_withdrawal_amount(user_ids, start, end)
        return Outcome(
            ActivityTotals(
                total_bet_amount=betting.value.total_bet_amount,
                total_loss_amount=betting.value.total_loss_amount,
                total_withdrawal_amount=withdrawal.value,
            ),
            betting.failures + withdrawal.failures,
        )

    async def _income_over_downline(
        self,
        partner_id: str,
        rates: CommissionRates,
        start: datetime,
        end: datetime,
    ) -> Outcome[IncomeBreakdown]:
        descendants = await self.get_descendant_user_ids(partner_id)
        if descendants.failures:
            return Outcome(IncomeBreakdown(), descendants.failures)
        if not descendants.value:
            return Outcome(IncomeBreakdown())

        activity = await self._collect_activity(descendants.value, start, end)
        return Outcome(apply_rates(activity.value, rates), activity.failures)

    # -------------------------------------------------------------------------
    # Per-partner commission
    # -------------------------------------------------------------------------

    async def calculate_partner_commission(
        self,
        partner: PartnerNode,
        start: datetime,
        end: datetime,
        method: SettlementMethod = SettlementMethod.DIRECT_SUBORDINATE,
    ) -> Outcome[PartnerCommission]:
        """Commission of one partner at its own rates.

        실패 시 해당 파트너만 0으로 대체되어 일괄 계산이 중단되지 않습니다.
        """
        try:
            base = await self._commission_base(partner.id, method)
            if base.failures:
                return Outcome(PartnerCommission.zero(partner), base.failures)
            if not base.value:
                return Outcome(PartnerCommission.zero(partner))

            activity = await self._collect_activity(base.value, start, end)
            income = apply_rates(activity.value, partner.rates)
            return Outcome(
                PartnerCommission.build(partner, activity.value, income),
                activity.failures,
            )
        except Exception as e:
            return Outcome(
                PartnerCommission.zero(partner),
                [self._failure(e, "partner_commission", partner.id)],
            )

    async def calculate_child_partners_commission(
        self,
        parent_id: str,
        start: datetime,
        end: datetime,
        method: SettlementMethod = SettlementMethod.DIRECT_SUBORDINATE,
    ) -> Outcome[list[PartnerCommission]]:
        """Commission of each direct child partner, ordered by level then nickname."""
        try:
            children = await self.source.fetch_child_partners(parent_id)
        except Exception as e:
            return Outcome([], [self._failure(e, "child_partners", parent_id)])

        commissions: list[PartnerCommission] = []
        failures: list[CalculationFailure] = []
        for child in children:
            outcome = await self.calculate_partner_commission(child, start, end, method)
            commissions.append(outcome.value)
            failures.extend(outcome.failures)

        logger.info(
            "settlement_child_commissions_calculated",
            parent_id=parent_id,
            partner_count=len(commissions),
            method=method.value,
            degraded=bool(failures),
        )
        return Outcome(commissions, failures)

    @staticmethod
    def summarize_commissions(commissions: Sequence[PartnerCommission]) -> CommissionTotals:
        """Per-category totals over child partner commissions."""
        return CommissionTotals(
            total_rolling_commission=sum((c.rolling_commission for c in commissions), ZERO),
            total_losing_commission=sum((c.losing_commission for c in commissions), ZERO),
            total_withdrawal_commission=sum(
                (c.withdrawal_commission for c in commissions), ZERO
            ),
            partner_count=len(commissions),
        )

    # -------------------------------------------------------------------------
    # Integrated settlement
    # -------------------------------------------------------------------------

    async def calculate_my_income(
        self,
        partner_id: str,
        rates: CommissionRates,
        start: datetime,
        end: datetime,
    ) -> Outcome[IncomeBreakdown]:
        """My rates applied to the activity of my whole downline."""
        try:
            return await self._income_over_downline(partner_id, rates, start, end)
        except Exception as e:
            return Outcome(IncomeBreakdown(), [self._failure(e, "my_income", partner_id)])

    async def calculate_partner_payments(
        self,
        parent_id: str,
        start: datetime,
        end: datetime,
    ) -> Outcome[PartnerPayments]:
        """Each direct child's rates applied to that child's whole downline."""
        try:
            children = await self.source.fetch_child_partners(parent_id)
        except Exception as e:
            return Outcome(PartnerPayments(), [self._failure(e, "child_partners", parent_id)])

        details: list[PartnerPaymentDetail] = []
        failures: list[CalculationFailure] = []
        for child in children:
            try:
                income = await self._income_over_downline(child.id, child.rates, start, end)
            except Exception as e:
                income = Outcome(
                    IncomeBreakdown(),
                    [self._failure(e, "partner_payment", child.id)],
                )

            details.append(
                PartnerPaymentDetail(
                    partner_id=child.id,
                    partner_nickname=child.nickname,
                    rolling_payment=income.value.rolling,
                    losing_payment=income.value.losing,
                    withdrawal_payment=income.value.withdrawal,
                )
            )
            failures.extend(income.failures)

        return Outcome(PartnerPayments(details=details), failures)

    async def calculate_integrated_settlement(
        self,
        partner_id: str,
        rates: CommissionRates,
        start: datetime,
        end: datetime,
    ) -> Outcome[SettlementSummary]:
        """My income minus payments to direct children (순수익).

        한 단계라도 실패하면 부분 결과 대신 전체를 0으로 반환합니다.
        """
        try:
            income = await self.calculate_my_income(partner_id, rates, start, end)
            payments = await self.calculate_partner_payments(partner_id, start, end)
        except Exception as e:
            return Outcome(
                SettlementSummary(),
                [self._failure(e, "integrated_settlement", partner_id)],
            )

        failures = income.failures + payments.failures
        if failures:
            logger.error(
                "settlement_integrated_degraded",
                partner_id=partner_id,
                failure_count=len(failures),
                period_start=start.isoformat(),
                period_end=end.isoformat(),
            )
            return Outcome(SettlementSummary(), failures)

        summary = SettlementSummary.from_parts(income.value, payments.value)
        logger.info(
            "settlement_integrated_calculated",
            partner_id=partner_id,
            period_start=start.isoformat(),
            period_end=end.isoformat(),
            my_total_income=str(summary.my_total_income),
            partner_total_payments=str(summary.partner_total_payments),
        )
        return Outcome(summary)

    # -------------------------------------------------------------------------
    # Monthly rollup
    # -------------------------------------------------------------------------

    async def calculate_monthly_commission(
        self,
        partner_id: str,
        rates: CommissionRates,
        now: datetime | None = None,
    ) -> Outcome[Decimal]:
        """My total income for the current calendar month."""
        window = month_bounds(now or datetime.now(self.tz), self.tz)
        income = await self.calculate_my_income(partner_id, rates, window.start, window.end)
        return Outcome(income.value.total, income.failures)
