from typing import List

from ..database.models import Stores
from ..schemas import WorkoutLogItem
from .base import UserScopedRepository


class WorkoutRepository(UserScopedRepository[WorkoutLogItem]):
    collection = Stores.WORKOUTS
    model = WorkoutLogItem

    async def list_for_date(self, user_id: str, date: str) -> List[WorkoutLogItem]:
        records = await self.store.get_all(self.collection, "date", date)
        return [WorkoutLogItem.model_validate(r) for r in records if r.get("userId") == user_id]
