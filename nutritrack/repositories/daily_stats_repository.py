from typing import Optional

from ..database.models import Stores
from ..schemas import DailyStats
from .base import UserScopedRepository


def daily_stats_key(user_id: str, date: str) -> str:
    return f"{user_id}_{date}"


class DailyStatsRepository(UserScopedRepository[DailyStats]):
    """每日身体数据，每个 (用户, 日期) 最多一条，由复合主键保证。"""

    collection = Stores.DAILY_STATS
    model = DailyStats

    def _to_record(self, user_id: str, item: DailyStats) -> dict:
        record = super()._to_record(user_id, item)
        record["id"] = daily_stats_key(user_id, item.date)
        return record

    async def get(self, user_id: str, date: str) -> Optional[DailyStats]:
        record = await self.store.get(self.collection, daily_stats_key(user_id, date))
        return DailyStats.model_validate(record) if record else None

    async def save(self, user_id: str, stats: DailyStats) -> DailyStats:
        return await self.add(user_id, stats)
