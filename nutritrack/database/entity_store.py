"""通用实体存储：按主键存取记录，支持二级索引查询。

每次读写都在独立事务中完成，事务范围限定在单个集合内。
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Iterable, Optional

from sqlalchemy import delete, insert, select, update
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from ..errors import StoreError, StoreUnavailable, UnknownCollection, UnknownIndex
from .models import (
    COLLECTIONS,
    STORE_SCHEMA_VERSION,
    TABLES,
    CollectionSpec,
    index_column,
    metadata,
    store_meta,
)

logger = logging.getLogger("nutritrack.store")

IN_MEMORY_URL = "sqlite+aiosqlite://"


def _index_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _ensure_parent_dir(url: str) -> None:
    parsed = make_url(url)
    if not parsed.get_backend_name().startswith("sqlite"):
        return
    database = parsed.database
    if database and database != ":memory:":
        Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)


class EntityStore:
    def __init__(self, engine: AsyncEngine, durable: bool = True):
        self._engine = engine
        self.durable = durable
        # 内存库经 StaticPool 共用一个连接，事务必须串行，否则并发提交会互相截断
        self._lock = asyncio.Lock()

    @classmethod
    async def open(cls, url: str) -> "EntityStore":
        """打开（必要时初始化）存储。任何打开失败都以 StoreUnavailable 抛出。"""
        engine: Optional[AsyncEngine] = None
        try:
            _ensure_parent_dir(url)
            engine = create_async_engine(url)
            await cls._initialize(engine)
        except StoreUnavailable:
            if engine is not None:
                await engine.dispose()
            raise
        except (SQLAlchemyError, OSError) as e:
            if engine is not None:
                await engine.dispose()
            logger.error("存储打开失败 (%s): %s", url, e)
            raise StoreUnavailable(f"无法打开存储: {e}") from e
        logger.info("存储已打开: %s", url)
        return cls(engine, durable=True)

    @classmethod
    async def in_memory(cls) -> "EntityStore":
        """非持久化存储，进程退出即丢失，用于存储不可用时的降级模式。"""
        engine = create_async_engine(IN_MEMORY_URL, poolclass=StaticPool)
        await cls._initialize(engine)
        return cls(engine, durable=False)

    @staticmethod
    async def _initialize(engine: AsyncEngine) -> None:
        async with engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
            row = (
                await conn.execute(
                    select(store_meta.c["value"]).where(store_meta.c["key"] == "schema_version")
                )
            ).first()
            if row is None:
                await conn.execute(
                    insert(store_meta).values(key="schema_version", value=str(STORE_SCHEMA_VERSION))
                )
                return
            found = int(row[0])
            if found > STORE_SCHEMA_VERSION:
                raise StoreUnavailable(
                    f"存储版本 {found} 高于当前支持的版本 {STORE_SCHEMA_VERSION}"
                )

    async def close(self) -> None:
        await self._engine.dispose()

    @property
    def collections(self) -> list[str]:
        return list(COLLECTIONS)

    def _spec(self, collection: str) -> CollectionSpec:
        spec = COLLECTIONS.get(collection)
        if spec is None:
            raise UnknownCollection(collection)
        return spec

    @asynccontextmanager
    async def _transaction(self, collection: str) -> AsyncIterator[AsyncConnection]:
        try:
            async with self._lock, self._engine.begin() as conn:
                yield conn
        except SQLAlchemyError as e:
            logger.error("集合 %s 事务失败: %s", collection, e)
            raise StoreError(f"集合 {collection} 操作失败: {e}") from e

    # ------------------------------------------------------------------
    # 读取
    # ------------------------------------------------------------------

    async def get_all(
        self,
        collection: str,
        index_name: Optional[str] = None,
        index_value: Optional[Any] = None,
    ) -> list[dict[str, Any]]:
        """返回集合内全部记录；指定索引时只返回索引字段等于 index_value 的记录。

        结果按插入顺序返回。指定索引但 index_value 为空（None 或 ""）时不匹配任何记录。
        """
        spec = self._spec(collection)
        table = TABLES[collection]
        stmt = select(table.c.data).order_by(table.c.seq)
        if index_name is not None:
            if index_name not in spec.indices:
                raise UnknownIndex(collection, index_name)
            if index_value is None or index_value == "":
                return []
            stmt = stmt.where(table.c[index_column(index_name)] == _index_value(index_value))

        async with self._transaction(collection) as conn:
            rows = (await conn.execute(stmt)).all()
        return [dict(row.data) for row in rows]

    async def get(self, collection: str, key: str) -> Optional[dict[str, Any]]:
        self._spec(collection)
        table = TABLES[collection]
        async with self._transaction(collection) as conn:
            row = (await conn.execute(select(table.c.data).where(table.c["key"] == str(key)))).first()
        return dict(row.data) if row else None

    # ------------------------------------------------------------------
    # 写入
    # ------------------------------------------------------------------

    def _row_values(self, spec: CollectionSpec, record: dict[str, Any]) -> dict[str, Any]:
        key = record.get(spec.key_path)
        if key is None or key == "":
            raise StoreError(f"集合 {spec.name} 的记录缺少主键字段 {spec.key_path}")
        values: dict[str, Any] = {"key": str(key), "data": dict(record)}
        for name in spec.indices:
            values[index_column(name)] = _index_value(record.get(name))
        return values

    async def _upsert(self, conn: AsyncConnection, collection: str, values: dict[str, Any]) -> None:
        table = TABLES[collection]
        changes = {k: v for k, v in values.items() if k != "key"}
        result = await conn.execute(update(table).where(table.c["key"] == values["key"]).values(**changes))
        # 覆盖写保留原插入位置
        if result.rowcount == 0:
            await conn.execute(insert(table).values(**values))

    async def put(self, collection: str, record: dict[str, Any]) -> None:
        """按主键插入或覆盖记录，立即提交。同一主键重复写入结果相同。"""
        values = self._row_values(self._spec(collection), record)
        async with self._transaction(collection) as conn:
            await self._upsert(conn, collection, values)

    async def put_many(self, collection: str, records: Iterable[dict[str, Any]]) -> int:
        spec = self._spec(collection)
        rows = [self._row_values(spec, r) for r in records]
        async with self._transaction(collection) as conn:
            for values in rows:
                await self._upsert(conn, collection, values)
        return len(rows)

    async def delete(self, collection: str, key: str) -> None:
        """按主键删除；主键不存在时不报错。"""
        self._spec(collection)
        table = TABLES[collection]
        async with self._transaction(collection) as conn:
            await conn.execute(delete(table).where(table.c["key"] == str(key)))

    async def clear(self, collection: str) -> None:
        self._spec(collection)
        async with self._transaction(collection) as conn:
            await conn.execute(delete(TABLES[collection]))
        logger.debug("集合已清空: %s", collection)
