import logging
from typing import List

from ..database.models import Stores
from ..schemas import MacroNutrients, SavedFoodItem
from ..utils import generate_id
from .base import UserScopedRepository

logger = logging.getLogger("nutritrack.repositories.saved_food")


class SavedFoodRepository(UserScopedRepository[SavedFoodItem]):
    """个人常用食物库。写入按名称（忽略大小写）合并，并累计使用次数。"""

    collection = Stores.SAVED_FOODS
    model = SavedFoodItem

    async def list(self, user_id: str) -> List[SavedFoodItem]:
        items = await super().list(user_id)
        # 仅在读取时排序，存储顺序不变
        return sorted(items, key=lambda f: f.times_used, reverse=True)

    async def save(self, user_id: str, name: str, macros: MacroNutrients) -> SavedFoodItem:
        wanted = name.strip().lower()
        current = await super().list(user_id)
        existing = next((f for f in current if f.name.strip().lower() == wanted), None)
        snapshot = {
            "calories": macros.calories,
            "protein": macros.protein,
            "carbs": macros.carbs,
            "fat": macros.fat,
        }
        if existing is not None:
            item = existing.model_copy(
                update={"name": name, "times_used": existing.times_used + 1, **snapshot}
            )
            logger.debug("常用食物已合并: %s (使用 %d 次)", name, item.times_used)
        else:
            item = SavedFoodItem(id=generate_id(), name=name, times_used=1, **snapshot)
        return await super().add(user_id, item)

    async def add(self, user_id: str, item: SavedFoodItem) -> SavedFoodItem:
        return await self.save(user_id, item.name, item)

    async def update(self, user_id: str, item: SavedFoodItem) -> SavedFoodItem:
        return await super().add(user_id, item)
