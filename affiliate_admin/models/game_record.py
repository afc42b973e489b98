"""Game (betting) record model, synced from the game provider."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, Numeric, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from affiliate_admin.models.base import Base


class GameRecord(Base):
    """One settled bet."""

    __tablename__ = "game_records"
    __table_args__ = (
        Index("ix_game_records_user_created", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    external_txid: Mapped[str | None] = mapped_column(
        String(100),
        unique=True,
        nullable=True,
        comment="게임사 베팅 ID (중복 동기화 방지)",
    )
    game_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    bet_amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    win_amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<GameRecord {self.id} bet={self.bet_amount} win={self.win_amount}>"
