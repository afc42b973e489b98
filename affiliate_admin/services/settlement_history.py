"""Settlement history statistics.

정산 배치가 기록한 settlements 테이블을 기간별로 조회하고 통계를 계산합니다.
시스템관리자(level 1)는 전체, 그 외 파트너는 본인 정산만 조회합니다.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_admin.logging_config import get_logger
from affiliate_admin.models.settlement import SettlementRecord, SettlementStatus
from affiliate_admin.services.settlement_source import ZERO, PartnerNode
from affiliate_admin.utils.db import read_savepoint

logger = get_logger(__name__)

SYSTEM_ADMIN_LEVEL = 1


@dataclass(frozen=True)
class SettlementStats:
    """Aggregate figures over settlement records in a period."""

    total_commission: Decimal = ZERO
    daily_average: Decimal = ZERO
    growth_rate: Decimal = ZERO
    active_partners: int = 0
    total_bet_volume: Decimal = ZERO
    avg_commission_rate: Decimal = ZERO


def period_days(start: datetime, now: datetime) -> int:
    """Whole days from start to now, at least 1."""
    elapsed = (now - start).total_seconds() / timedelta(days=1).total_seconds()
    return max(1, math.ceil(elapsed))


def calculate_stats(
    records: Sequence[SettlementRecord],
    start: datetime,
    now: datetime,
    previous_total: Decimal,
) -> SettlementStats:
    """Compute settlement statistics.

    Args:
        records: Settlement records in the period
        start: Period start
        now: Current time
        previous_total: Commission total of the preceding period of equal length

    Returns:
        SettlementStats. total_commission counts completed records only.
    """
    total_commission = sum(
        (r.commission_amount for r in records if r.status == SettlementStatus.COMPLETED),
        ZERO,
    )
    total_bet_volume = sum((r.total_bet_amount for r in records), ZERO)
    active_partners = len({r.partner_id for r in records})
    avg_commission_rate = (
        sum((r.commission_rate for r in records), ZERO) / len(records)
        if records
        else ZERO
    )

    days = period_days(start, now)
    daily_average = total_commission / days

    growth_rate = (
        (total_commission - previous_total) / previous_total * Decimal("100")
        if previous_total > 0
        else ZERO
    )

    return SettlementStats(
        total_commission=total_commission,
        daily_average=daily_average,
        growth_rate=growth_rate,
        active_partners=active_partners,
        total_bet_volume=total_bet_volume,
        avg_commission_rate=avg_commission_rate,
    )


class SettlementHistoryService:
    """Read-only access to settlement history.

    Query failures raise DataAccessError.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def _scoped(query, partner: PartnerNode):
        if partner.level > SYSTEM_ADMIN_LEVEL:
            return query.where(SettlementRecord.partner_id == partner.id)
        return query

    async def list_settlements(
        self,
        partner: PartnerNode,
        start: datetime,
        end: datetime,
    ) -> list[SettlementRecord]:
        """Settlement records created in [start, end], newest first."""
        query = self._scoped(
            select(SettlementRecord).where(
                SettlementRecord.created_at >= start,
                SettlementRecord.created_at <= end,
            ),
            partner,
        ).order_by(SettlementRecord.created_at.desc())

        async with read_savepoint(self.db, "list_settlements"):
            result = await self.db.execute(query)
        return list(result.scalars().all())

    async def previous_period_total(
        self,
        partner: PartnerNode,
        start: datetime,
        days: int,
    ) -> Decimal:
        """Commission total of the `days` long period ending at start."""
        previous_start = start - timedelta(days=days)
        query = self._scoped(
            select(func.coalesce(func.sum(SettlementRecord.commission_amount), 0)).where(
                SettlementRecord.created_at >= previous_start,
                SettlementRecord.created_at < start,
            ),
            partner,
        )

        async with read_savepoint(self.db, "previous_period_total"):
            result = await self.db.execute(query)
        total = result.scalar() or 0
        return Decimal(str(total))

    async def get_stats(
        self,
        partner: PartnerNode,
        start: datetime,
        end: datetime,
        now: datetime,
    ) -> tuple[list[SettlementRecord], SettlementStats]:
        """Settlement records of the period and their statistics."""
        records = await self.list_settlements(partner, start, end)
        previous_total = await self.previous_period_total(
            partner, start, period_days(start, now)
        )
        stats = calculate_stats(records, start, now, previous_total)

        logger.info(
            "settlement_history_stats",
            partner_id=partner.id,
            record_count=len(records),
            total_commission=str(stats.total_commission),
        )
        return records, stats
