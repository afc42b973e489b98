"""Settlement history model.

플랫폼 정산 배치가 기록한 파트너별 정산 내역입니다.
이 서비스는 읽기만 합니다.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import (
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Numeric,
    String,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from affiliate_admin.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from affiliate_admin.models.partner import Partner


class SettlementStatus(str, Enum):
    """Settlement record status."""

    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SettlementRecord(Base, UUIDMixin, TimestampMixin):
    """Settlement record snapshot.

    정산 시점의 수수료율과 베팅 총액을 스냅샷으로 저장합니다.
    """

    __tablename__ = "settlements"

    partner_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("partners.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    settlement_type: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        comment="rolling | losing | withdrawal",
    )

    period_start: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    period_end: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    total_bet_amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2),
        nullable=False,
        default=Decimal("0"),
    )
    commission_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        nullable=False,
        comment="정산 시점 수수료율 (%)",
    )
    commission_amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2),
        nullable=False,
        default=Decimal("0"),
    )

    status: Mapped[SettlementStatus] = mapped_column(
        SQLEnum(
            SettlementStatus,
            values_callable=lambda obj: [e.value for e in obj],
        ),
        default=SettlementStatus.PENDING,
        nullable=False,
        index=True,
    )

    partner: Mapped["Partner"] = relationship("Partner")

    def __repr__(self) -> str:
        return (
            f"<SettlementRecord {self.id[:8]}... "
            f"partner={self.partner_id[:8]}... "
            f"amount={self.commission_amount}>"
        )
