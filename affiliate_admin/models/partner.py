"""Partner (총판) hierarchy model.

파트너 계층:
- system_admin(1) > head_office(2) > main_office(3) > sub_office(4)
  > distributor(5) > store(6)
- parent_id가 NULL인 파트너가 루트입니다.
"""

from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from affiliate_admin.models.base import Base, TimestampMixin, UUIDMixin


class PartnerType(str, Enum):
    """Partner tier."""

    SYSTEM_ADMIN = "system_admin"
    HEAD_OFFICE = "head_office"
    MAIN_OFFICE = "main_office"
    SUB_OFFICE = "sub_office"
    DISTRIBUTOR = "distributor"
    STORE = "store"


class PartnerStatus(str, Enum):
    """Partner account status."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    BLOCKED = "blocked"


class Partner(Base, UUIDMixin, TimestampMixin):
    """Partner (총판) account.

    수수료율은 퍼센트 단위로 저장합니다 (예: 0.50 = 0.5%).
    """

    __tablename__ = "partners"

    username: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True,
    )
    nickname: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    partner_type: Mapped[PartnerType] = mapped_column(
        SQLEnum(
            PartnerType,
            values_callable=lambda obj: [e.value for e in obj],
        ),
        nullable=False,
    )
    level: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="1(시스템관리자) ~ 6(매장)",
    )

    # 상위 파트너 (NULL = 루트)
    parent_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("partners.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )

    status: Mapped[PartnerStatus] = mapped_column(
        SQLEnum(
            PartnerStatus,
            values_callable=lambda obj: [e.value for e in obj],
        ),
        default=PartnerStatus.ACTIVE,
        nullable=False,
    )

    # 수수료 설정 (%)
    commission_rolling: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        nullable=False,
        default=Decimal("0"),
        comment="롤링 커미션 (베팅액 대비 %)",
    )
    commission_losing: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        nullable=False,
        default=Decimal("0"),
        comment="루징 커미션 (순손실 대비 %)",
    )
    withdrawal_fee: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        nullable=False,
        default=Decimal("0"),
        comment="환전 수수료 (승인된 출금액 대비 %)",
    )

    parent: Mapped["Partner"] = relationship(
        "Partner",
        remote_side="Partner.id",
        back_populates="children",
    )
    children: Mapped[list["Partner"]] = relationship(
        "Partner",
        back_populates="parent",
        order_by="Partner.level",
    )

    def __repr__(self) -> str:
        return f"<Partner {self.username} (level={self.level})>"
