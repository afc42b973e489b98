"""System settings lookups used by settlement."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_admin.config import get_settings
from affiliate_admin.logging_config import get_logger
from affiliate_admin.models.system_setting import SETTLEMENT_METHOD_KEY, SystemSetting
from affiliate_admin.services.settlement_calculator import SettlementMethod
from affiliate_admin.utils.db import read_savepoint
from affiliate_admin.utils.errors import DataAccessError

logger = get_logger(__name__)


class SystemSettingsService:
    """Reads system_settings rows."""

    def __init__(self, db: AsyncSession, default_method: str | None = None):
        self.db = db
        self.default_method = SettlementMethod(
            default_method or get_settings().default_settlement_method
        )

    async def get_value(self, key: str) -> str | None:
        """Raw setting value, None if missing.

        Raises:
            DataAccessError: If the query fails
        """
        query = select(SystemSetting.setting_value).where(SystemSetting.setting_key == key)
        async with read_savepoint(self.db, "get_setting"):
            result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_settlement_method(self) -> SettlementMethod:
        """Configured settlement method, falling back to the default."""
        try:
            value = await self.get_value(SETTLEMENT_METHOD_KEY)
        except DataAccessError as e:
            logger.error("settlement_method_load_failed", error=str(e))
            return self.default_method

        if value is None:
            return self.default_method

        try:
            return SettlementMethod(value)
        except ValueError:
            logger.warning("settlement_method_unknown", value=value)
            return self.default_method
