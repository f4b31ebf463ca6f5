"""NutriTrack 异常定义。"""


class NutriTrackError(Exception):
    """所有 NutriTrack 异常的基类。"""


class StoreError(NutriTrackError):
    """实体存储层错误。"""


class StoreUnavailable(StoreError):
    """底层存储无法打开（权限、配额、版本冲突等）。"""


class UnknownCollection(StoreError):
    def __init__(self, collection: str):
        super().__init__(f"未声明的集合: {collection}")
        self.collection = collection


class UnknownIndex(StoreError):
    def __init__(self, collection: str, index_name: str):
        super().__init__(f"集合 {collection} 未声明索引: {index_name}")
        self.collection = collection
        self.index_name = index_name


class InvalidBackup(NutriTrackError):
    """备份文档格式错误或缺少必需字段。"""


class RestoreFailed(NutriTrackError):
    """写入阶段失败，已清空的集合不会回滚。"""


class RecalculationSkipped(NutriTrackError):
    """体重更新未触发 TDEE 重算（非当天、体重未变化等）。"""

    def __init__(self, reason: str):
        super().__init__(f"跳过重算: {reason}")
        self.reason = reason


class EstimationError(NutriTrackError):
    """AI 估算服务调用失败（缺少凭证、网络错误、返回无法解析）。"""


class OwnershipConflict(NutriTrackError):
    """写入的主键已属于其他用户。"""

    def __init__(self, collection: str, item_id: str, owner: str):
        super().__init__(f"集合 {collection} 的记录 {item_id} 属于其他用户")
        self.collection = collection
        self.item_id = item_id
        self.owner = owner
