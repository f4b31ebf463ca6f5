from typing import List

from ..database.models import Stores
from ..schemas import FoodLogItem
from .base import UserScopedRepository


class FoodLogRepository(UserScopedRepository[FoodLogItem]):
    collection = Stores.LOGS
    model = FoodLogItem

    async def list_for_date(self, user_id: str, date: str) -> List[FoodLogItem]:
        records = await self.store.get_all(self.collection, "date", date)
        return [FoodLogItem.model_validate(r) for r in records if r.get("userId") == user_id]
