from typing import Optional, Union

from ..schemas import ActivityLevel, Gender, Goal, UserProfile
from ..utils import round_half_up


class TDEECalculator:
    ACTIVITY_MULTIPLIERS = {
        ActivityLevel.sedentary: 1.2,
        ActivityLevel.light: 1.375,
        ActivityLevel.moderate: 1.55,
        ActivityLevel.active: 1.725,
        ActivityLevel.very_active: 1.9,
    }

    GOAL_ADJUSTMENTS = {
        Goal.cut: -400,  # 热量缺口
        Goal.maintain: 0,
        Goal.bulk: 300,  # 热量盈余
    }

    @staticmethod
    def calculate_bmr(
        weight: float, height: float, age: int, gender: Union[Gender, str]
    ) -> int:
        """Mifflin-St Jeor 公式，体重 kg、身高 cm。"""
        bmr = 10 * weight + 6.25 * height - 5 * age
        if Gender(gender) == Gender.male:
            bmr += 5
        else:
            bmr -= 161
        return round_half_up(bmr)

    @classmethod
    def calculate_tdee(cls, bmr: float, activity_level: Union[ActivityLevel, str]) -> int:
        return round_half_up(bmr * cls.ACTIVITY_MULTIPLIERS[ActivityLevel(activity_level)])

    @classmethod
    def calculate_target_calories(cls, tdee: float, goal: Union[Goal, str]) -> int:
        return round_half_up(tdee + cls.GOAL_ADJUSTMENTS[Goal(goal)])

    @classmethod
    def derive(cls, profile: UserProfile, weight: Optional[float] = None) -> UserProfile:
        """按档案（或新体重）重新计算 tdee 与目标热量，返回新的档案对象。"""
        new_weight = profile.weight if weight is None else weight
        bmr = cls.calculate_bmr(new_weight, profile.height, profile.age, profile.gender)
        tdee = cls.calculate_tdee(bmr, profile.activity_level)
        return profile.model_copy(
            update={
                "weight": new_weight,
                "tdee": tdee,
                "target_calories": cls.calculate_target_calories(tdee, profile.goal),
            }
        )
