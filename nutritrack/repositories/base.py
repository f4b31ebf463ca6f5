import logging
from typing import Generic, List, Optional, TypeVar

from ..database.entity_store import EntityStore
from ..errors import OwnershipConflict
from ..schemas import Record

M = TypeVar("M", bound=Record)

logger = logging.getLogger("nutritrack.repositories")


class UserScopedRepository(Generic[M]):
    """按 userId 归属的集合通用访问器。

    只负责写入时附加 userId、读取时还原为模型，不包含业务逻辑。
    add 与 update 都是 put，区分仅为调用方语义。
    """

    collection: str
    model: type[M]

    def __init__(self, store: EntityStore):
        self.store = store

    def _to_record(self, user_id: str, item: M) -> dict:
        record = item.to_record()
        record["userId"] = user_id
        return record

    async def _foreign_owner(self, user_id: str, item_id: str) -> Optional[str]:
        """记录已存在且属于其他用户时返回其 userId。无归属的记录视为可用。"""
        existing = await self.store.get(self.collection, item_id)
        if existing is None:
            return None
        owner = existing.get("userId")
        if owner and owner != user_id:
            return owner
        return None

    async def list(self, user_id: str) -> List[M]:
        records = await self.store.get_all(self.collection, "userId", user_id)
        return [self.model.model_validate(r) for r in records]

    async def add(self, user_id: str, item: M) -> M:
        """写入记录并附加 userId。主键已属于其他用户时抛出 OwnershipConflict。"""
        record = self._to_record(user_id, item)
        owner = await self._foreign_owner(user_id, record["id"])
        if owner is not None:
            logger.warning(
                "拒绝覆盖其他用户的记录: collection=%s id=%s owner=%s requester=%s",
                self.collection,
                record["id"],
                owner,
                user_id,
            )
            raise OwnershipConflict(self.collection, record["id"], owner)
        await self.store.put(self.collection, record)
        return self.model.model_validate(record)

    async def update(self, user_id: str, item: M) -> M:
        return await self.add(user_id, item)

    async def delete(self, user_id: str, item_id: str) -> None:
        owner = await self._foreign_owner(user_id, item_id)
        if owner is not None:
            logger.warning(
                "拒绝跨用户删除: collection=%s id=%s owner=%s requester=%s",
                self.collection,
                item_id,
                owner,
                user_id,
            )
            return
        await self.store.delete(self.collection, item_id)
