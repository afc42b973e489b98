"""Settlement data source.

정산 엔진이 읽는 데이터 접근 계층입니다. 엔진은 이 프로토콜에만 의존하므로
테스트에서는 인메모리 구현으로 교체할 수 있습니다.
"""

import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_admin.models.game_record import GameRecord
from affiliate_admin.models.partner import Partner
from affiliate_admin.models.transaction import (
    Transaction,
    TransactionStatus,
    TransactionType,
)
from affiliate_admin.models.user import User
from affiliate_admin.utils.db import read_savepoint

ZERO = Decimal("0")


@dataclass(frozen=True)
class CommissionRates:
    """Commission rates in percent (1 = 1%)."""

    rolling: Decimal = ZERO
    losing: Decimal = ZERO
    withdrawal: Decimal = ZERO


@dataclass(frozen=True)
class PartnerNode:
    """Partner row as seen by the settlement engine."""

    id: str
    username: str
    nickname: str
    level: int
    parent_id: str | None = None
    commission_rolling: Decimal = ZERO
    commission_losing: Decimal = ZERO
    withdrawal_fee: Decimal = ZERO
    status: str = "active"

    @property
    def rates(self) -> CommissionRates:
        return CommissionRates(
            rolling=self.commission_rolling,
            losing=self.commission_losing,
            withdrawal=self.withdrawal_fee,
        )

    @classmethod
    def from_model(cls, partner: Partner) -> "PartnerNode":
        return cls(
            id=partner.id,
            username=partner.username,
            nickname=partner.nickname,
            level=partner.level,
            parent_id=partner.parent_id,
            commission_rolling=_to_decimal(partner.commission_rolling),
            commission_losing=_to_decimal(partner.commission_losing),
            withdrawal_fee=_to_decimal(partner.withdrawal_fee),
            status=partner.status.value,
        )


@dataclass(frozen=True)
class GameRecordRow:
    """Bet and win amount of one game record."""

    bet_amount: Decimal = ZERO
    win_amount: Decimal = ZERO

    @property
    def loss(self) -> Decimal:
        """Player loss on this record, never negative."""
        loss = self.bet_amount - self.win_amount
        return loss if loss > 0 else ZERO


def _to_decimal(value: object) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class SettlementDataSource(Protocol):
    """Reads the settlement engine needs."""

    async def fetch_partner(self, partner_id: str) -> PartnerNode | None:
        ...

    async def fetch_direct_user_ids(self, partner_id: str) -> list[str]:
        ...

    async def fetch_child_partners(self, parent_id: str) -> list[PartnerNode]:
        """Direct child partners ordered by level, then nickname."""
        ...

    async def fetch_game_records(
        self,
        user_ids: Sequence[str],
        start: datetime,
        end: datetime,
    ) -> list[GameRecordRow]:
        ...

    async def fetch_transaction_amounts(
        self,
        user_ids: Sequence[str],
        transaction_type: TransactionType,
        statuses: Sequence[TransactionStatus],
        start: datetime,
        end: datetime,
    ) -> list[Decimal]:
        ...


def _is_valid_uuid(value: str | None) -> bool:
    if not value:
        return False
    try:
        uuid.UUID(value)
        return True
    except (ValueError, AttributeError):
        return False


class SqlSettlementDataSource:
    """SettlementDataSource backed by an async SQLAlchemy session.

    기간 조건은 created_at 기준 양끝 포함 [start, end] 입니다.
    각 조회는 세이브포인트 안에서 실행되므로 한 조회의 실패가 같은 요청의
    다른 조회를 막지 않습니다. 형식이 잘못된 ID는 빈 결과로 취급합니다.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def fetch_partner(self, partner_id: str) -> PartnerNode | None:
        if not _is_valid_uuid(partner_id):
            return None

        async with read_savepoint(self.db, "fetch_partner"):
            partner = await self.db.get(Partner, partner_id)
        return PartnerNode.from_model(partner) if partner else None

    async def fetch_direct_user_ids(self, partner_id: str) -> list[str]:
        if not _is_valid_uuid(partner_id):
            return []

        query = select(User.id).where(User.referrer_id == partner_id)
        async with read_savepoint(self.db, "fetch_direct_user_ids"):
            result = await self.db.execute(query)
        return list(result.scalars().all())

    async def fetch_child_partners(self, parent_id: str) -> list[PartnerNode]:
        if not _is_valid_uuid(parent_id):
            return []

        query = (
            select(Partner)
            .where(Partner.parent_id == parent_id)
            .order_by(Partner.level, Partner.nickname)
        )
        async with read_savepoint(self.db, "fetch_child_partners"):
            result = await self.db.execute(query)
        return [PartnerNode.from_model(p) for p in result.scalars().all()]

    async def fetch_game_records(
        self,
        user_ids: Sequence[str],
        start: datetime,
        end: datetime,
    ) -> list[GameRecordRow]:
        user_ids = [user_id for user_id in user_ids if _is_valid_uuid(user_id)]
        if not user_ids:
            return []

        query = select(GameRecord.bet_amount, GameRecord.win_amount).where(
            GameRecord.user_id.in_(user_ids),
            GameRecord.created_at >= start,
            GameRecord.created_at <= end,
        )
        async with read_savepoint(self.db, "fetch_game_records"):
            result = await self.db.execute(query)

        return [
            GameRecordRow(
                bet_amount=_to_decimal(row.bet_amount),
                win_amount=_to_decimal(row.win_amount),
            )
            for row in result.all()
        ]

    async def fetch_transaction_amounts(
        self,
        user_ids: Sequence[str],
        transaction_type: TransactionType,
        statuses: Sequence[TransactionStatus],
        start: datetime,
        end: datetime,
    ) -> list[Decimal]:
        user_ids = [user_id for user_id in user_ids if _is_valid_uuid(user_id)]
        if not user_ids:
            return []

        query = select(Transaction.amount).where(
            Transaction.user_id.in_(user_ids),
            Transaction.transaction_type == transaction_type,
            Transaction.status.in_(list(statuses)),
            Transaction.created_at >= start,
            Transaction.created_at <= end,
        )
        async with read_savepoint(self.db, "fetch_transaction_amounts"):
            result = await self.db.execute(query)

        return [_to_decimal(amount) for amount in result.scalars().all()]
