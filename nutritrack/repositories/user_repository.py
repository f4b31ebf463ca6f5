from typing import List, Optional

from ..database.entity_store import EntityStore
from ..database.models import Stores
from ..schemas import UserProfile


class UserRepository:
    def __init__(self, store: EntityStore):
        self.store = store

    async def list(self) -> List[UserProfile]:
        records = await self.store.get_all(Stores.USERS)
        return [UserProfile.model_validate(r) for r in records]

    async def get(self, user_id: str) -> Optional[UserProfile]:
        record = await self.store.get(Stores.USERS, user_id)
        return UserProfile.model_validate(record) if record else None

    async def save(self, profile: UserProfile) -> UserProfile:
        await self.store.put(Stores.USERS, profile.to_record())
        return profile

    async def delete(self, user_id: str) -> None:
        # 不级联删除该用户的日志
        await self.store.delete(Stores.USERS, user_id)
