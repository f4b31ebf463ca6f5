import logging
from typing import Callable, Optional

from ..errors import RecalculationSkipped
from ..repositories.user_repository import UserRepository
from ..schemas import DailyStats, UserProfile
from ..utils import today_str
from .tdee import TDEECalculator

logger = logging.getLogger("nutritrack.recalc")


class ProfileRecalculator:
    """当天体重变化时重算用户的 TDEE 与目标热量。

    只对当天记录生效，补录历史日期的体重只更新历史，不影响当前档案。
    与 DailyStats 的写入不在同一事务中，中途中断可能导致两者不一致。
    """

    def __init__(self, users: UserRepository, clock: Callable[[], str] = today_str):
        self.users = users
        self._clock = clock

    def plan(self, profile: UserProfile, stats: DailyStats, today: str) -> UserProfile:
        if stats.date != today:
            raise RecalculationSkipped("not_today")
        if not stats.weight:
            raise RecalculationSkipped("no_weight")
        if stats.weight == profile.weight:
            raise RecalculationSkipped("weight_unchanged")
        return TDEECalculator.derive(profile, weight=stats.weight)

    async def apply(
        self, user_id: str, stats: DailyStats, today: Optional[str] = None
    ) -> Optional[UserProfile]:
        """返回更新后的档案；未触发重算时返回 None。"""
        today = today or self._clock()
        try:
            profile = await self.users.get(user_id)
            if profile is None:
                raise RecalculationSkipped("no_profile")
            updated = self.plan(profile, stats, today)
        except RecalculationSkipped as e:
            logger.debug("用户 %s 日期 %s: %s", user_id, stats.date, e)
            return None

        await self.users.save(updated)
        logger.info(
            "用户 %s 体重 %.1f -> %.1f kg, TDEE %d, 目标 %d kcal",
            user_id,
            profile.weight,
            updated.weight,
            updated.tdee,
            updated.target_calories,
        )
        return updated
