"""实体存储的表结构声明。

每个集合在初始化时声明一个主键和若干二级索引（非唯一），
对应一张表：主键列 + 每个索引一列 + 插入顺序列 + JSON 数据列。
"""

from dataclasses import dataclass, field

from sqlalchemy import JSON, Column, Index, Integer, MetaData, String, Table

# 表结构版本，与备份文档的 version 无关
STORE_SCHEMA_VERSION = 1


class Stores:
    USERS = "users"
    LOGS = "logs"
    WORKOUTS = "workouts"
    BODY_CHECKS = "body_checks"
    SAVED_FOODS = "saved_foods"
    DAILY_STATS = "daily_stats"


@dataclass(frozen=True)
class CollectionSpec:
    name: str
    key_path: str = "id"
    indices: tuple[str, ...] = field(default_factory=tuple)


COLLECTIONS: dict[str, CollectionSpec] = {
    spec.name: spec
    for spec in (
        CollectionSpec(Stores.USERS),
        CollectionSpec(Stores.LOGS, indices=("userId", "date")),
        CollectionSpec(Stores.WORKOUTS, indices=("userId", "date")),
        CollectionSpec(Stores.BODY_CHECKS, indices=("userId", "date")),
        CollectionSpec(Stores.SAVED_FOODS, indices=("userId",)),
        # id 为 userId_date
        CollectionSpec(Stores.DAILY_STATS, indices=("userId",)),
    )
}

metadata = MetaData()

store_meta = Table(
    "store_meta",
    metadata,
    Column("key", String, primary_key=True),
    Column("value", String, nullable=False),
)


def index_column(index_name: str) -> str:
    return f"ix_{index_name}"


def _build_table(spec: CollectionSpec) -> Table:
    columns = [
        Column("seq", Integer, primary_key=True, autoincrement=True),
        Column("key", String, nullable=False, unique=True),
        Column("data", JSON, nullable=False),
    ]
    columns.extend(Column(index_column(name), String) for name in spec.indices)
    table = Table(spec.name, metadata, *columns)
    for name in spec.indices:
        Index(f"idx_{spec.name}_{name}", table.c[index_column(name)])
    return table


TABLES: dict[str, Table] = {name: _build_table(spec) for name, spec in COLLECTIONS.items()}
