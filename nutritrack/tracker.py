import logging
from typing import Any, Callable, Optional

from .config import Settings, get_settings
from .database.entity_store import EntityStore
from .errors import EstimationError, InvalidBackup, RestoreFailed, StoreUnavailable
from .llm.factory import LLMFactory
from .prompt_manager import PromptManager
from .repositories.body_check_repository import BodyCheckRepository
from .repositories.daily_stats_repository import DailyStatsRepository
from .repositories.food_log_repository import FoodLogRepository
from .repositories.saved_food_repository import SavedFoodRepository
from .repositories.user_repository import UserRepository
from .repositories.workout_repository import WorkoutRepository
from .schemas import DailyStats, FoodEstimate, UserProfile, WorkoutPlan
from .services.backup import BackupCodec
from .services.food_analyzer import FoodAnalyzer
from .services.image_utils import compress_to_data_url
from .services.profile_recalculator import ProfileRecalculator
from .services.tdee import TDEECalculator
from .services.workout_advisor import WorkoutAdvisor
from .session import AppContext, PreferencesStore
from .utils import today_str

logger = logging.getLogger("nutritrack.tracker")


class NutriTracker:
    """界面层调用的入口：会话、档案、每日数据、备份恢复与 AI 估算。"""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        clock: Callable[[], str] = today_str,
        llm_client: Any = None,
    ):
        self.settings = settings or get_settings()
        self.preferences = PreferencesStore(self.settings.preferences_path)
        self.context = AppContext()
        self.current_user: Optional[UserProfile] = None
        self.store: Optional[EntityStore] = None
        self._clock = clock

        LLMFactory.configure_from(self.settings.llm)
        self._llm_client = llm_client
        self.prompt_manager = PromptManager()

    # ------------------------------------------------------------------
    # 启动与存储
    # ------------------------------------------------------------------

    async def start(self) -> Optional[UserProfile]:
        """打开存储并尝试恢复上次会话。

        存储无法打开时降级为内存模式，界面仍可使用，但 durable 为 False。
        """
        try:
            store = await EntityStore.open(self.settings.database.url)
        except StoreUnavailable as e:
            logger.error("数据存储不可用，本次会话的数据不会被保存: %s", e)
            store = await EntityStore.in_memory()
        self._bind(store)

        self.context = self.preferences.load()
        if self.context.current_user_id:
            return await self.login(self.context.current_user_id)
        return None

    def _bind(self, store: EntityStore) -> None:
        self.store = store
        self.users = UserRepository(store)
        self.food_logs = FoodLogRepository(store)
        self.workouts = WorkoutRepository(store)
        self.body_checks = BodyCheckRepository(store)
        self.saved_foods = SavedFoodRepository(store)
        self.daily_stats = DailyStatsRepository(store)
        self.recalculator = ProfileRecalculator(self.users, clock=self._clock)
        self.backup = BackupCodec(store)

    @property
    def durable(self) -> bool:
        return self.store is not None and self.store.durable

    async def close(self) -> None:
        if self.store is not None:
            await self.store.close()

    # ------------------------------------------------------------------
    # 会话
    # ------------------------------------------------------------------

    def _save_context(self) -> None:
        try:
            self.preferences.save(self.context)
        except OSError as e:
            logger.warning("偏好保存失败: %s", e)

    async def login(self, user_id: str) -> Optional[UserProfile]:
        profile = await self.users.get(user_id)
        if profile is None:
            logger.info("用户 %s 不存在，不自动登录", user_id)
            return None
        self.current_user = profile
        self.context.current_user_id = profile.id
        self._save_context()
        return profile

    def logout(self) -> None:
        self.current_user = None
        self.context.current_user_id = None
        self._save_context()

    def update_preferences(self, **changes: Any) -> AppContext:
        """更新主题、深色模式、提醒等偏好，字段名同 AppContext。"""
        self.context = self.context.model_copy(update=changes)
        self._save_context()
        return self.context

    def _require_user(self) -> UserProfile:
        if self.current_user is None:
            raise RuntimeError("当前没有登录用户")
        return self.current_user

    async def load_user_data(self) -> dict[str, list]:
        """读取当前用户的全部日志，依次等待每个查询完成。"""
        user_id = self._require_user().id
        return {
            "logs": await self.food_logs.list(user_id),
            "workouts": await self.workouts.list(user_id),
            "bodyChecks": await self.body_checks.list(user_id),
            "dailyStats": await self.daily_stats.list(user_id),
        }

    # ------------------------------------------------------------------
    # 档案与每日数据
    # ------------------------------------------------------------------

    async def save_profile(self, profile: UserProfile) -> UserProfile:
        """完整保存档案，tdee 与目标热量总是重新计算。"""
        derived = TDEECalculator.derive(profile)
        await self.users.save(derived)
        await self.login(derived.id)
        return derived

    async def delete_user(self, user_id: str) -> None:
        await self.users.delete(user_id)
        if self.current_user and self.current_user.id == user_id:
            self.logout()

    async def update_daily_stats(self, stats: DailyStats) -> DailyStats:
        """保存每日数据；当天体重变化时同步更新档案。"""
        user = self._require_user()
        saved = await self.daily_stats.save(user.id, stats)
        updated = await self.recalculator.apply(user.id, saved, today=self._clock())
        if updated is not None:
            self.current_user = updated
        return saved

    # ------------------------------------------------------------------
    # 备份恢复
    # ------------------------------------------------------------------

    def backup_filename(self) -> str:
        return f"nutritrack-backup-{self._clock()}.json"

    async def export_backup(self) -> str:
        return await self.backup.export()

    async def restore_backup(self, text: str) -> bool:
        try:
            await self.backup.restore(text)
        except (InvalidBackup, RestoreFailed) as e:
            logger.error("恢复失败: %s", e)
            return False

        if self.current_user is not None:
            self.current_user = await self.users.get(self.current_user.id)
            if self.current_user is None:
                self.logout()
        return True

    # ------------------------------------------------------------------
    # AI 估算（失败时返回 None，由调用方转为手动录入）
    # ------------------------------------------------------------------

    def _client(self):
        if self._llm_client is None:
            self._llm_client = LLMFactory.create_async_client(self.settings.llm.provider)
        return self._llm_client

    async def estimate_food(
        self, text: Optional[str] = None, image_bytes: Optional[bytes] = None
    ) -> Optional[FoodEstimate]:
        try:
            image_url = None
            if image_bytes:
                image_url = compress_to_data_url(
                    image_bytes,
                    max_width=self.settings.image.max_width,
                    quality=self.settings.image.quality,
                )
            analyzer = FoodAnalyzer(self._client(), self.prompt_manager, model=self.settings.llm.model)
            return await analyzer.estimate(text=text, image_data_url=image_url)
        except (EstimationError, ValueError) as e:
            logger.warning("营养估算不可用，请手动录入: %s", e)
            return None

    async def suggest_workout(self, target: str, context: str = "") -> Optional[WorkoutPlan]:
        try:
            advisor = WorkoutAdvisor(self._client(), self.prompt_manager, model=self.settings.llm.model)
            return await advisor.generate_plan(target, context)
        except EstimationError as e:
            logger.warning("训练计划生成失败: %s", e)
            return None
