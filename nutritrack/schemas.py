from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .utils import now_ms

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class ActivityLevel(str, Enum):
    sedentary = "sedentary"
    light = "light"
    moderate = "moderate"
    active = "active"
    very_active = "very_active"


class Gender(str, Enum):
    male = "male"
    female = "female"


class Goal(str, Enum):
    cut = "cut"  # 减脂
    maintain = "maintain"
    bulk = "bulk"  # 增肌


class Record(BaseModel):
    """存储记录基类：驼峰别名落盘，保留未知字段以兼容新版本数据。"""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class UserProfile(Record):
    id: str
    name: str
    avatar: Optional[str] = Field(None, description="头像 base64")
    height: float = Field(..., gt=0, description="身高 (cm)")
    weight: float = Field(..., gt=0, description="体重 (kg)")
    age: int = Field(..., gt=0)
    gender: Gender
    activity_level: ActivityLevel = Field(..., alias="activityLevel")
    goal: Goal = Goal.maintain
    tdee: int = Field(0, description="维持热量，派生字段")
    target_calories: int = Field(0, alias="targetCalories", description="目标热量，派生字段")


class MacroNutrients(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    calories: float = 0.0
    protein: float = Field(0.0, description="蛋白质 (g)")
    carbs: float = Field(0.0, description="碳水化合物 (g)")
    fat: float = Field(0.0, description="脂肪 (g)")


class IngredientItem(MacroNutrients):
    name: str = Field(..., description="食材名称（含重量）")


class FoodLogItem(Record, MacroNutrients):
    id: str
    user_id: Optional[str] = Field(None, alias="userId")
    name: str
    timestamp: int = Field(default_factory=now_ms)
    date: str = Field(..., pattern=DATE_PATTERN)
    image: Optional[str] = None
    ingredients: Optional[List[IngredientItem]] = None

    def with_ingredient_totals(self) -> "FoodLogItem":
        """按食材明细重算宏量总和；没有明细时原样返回。"""
        if not self.ingredients:
            return self
        return self.model_copy(
            update={
                "calories": round(sum(i.calories for i in self.ingredients), 1),
                "protein": round(sum(i.protein for i in self.ingredients), 1),
                "carbs": round(sum(i.carbs for i in self.ingredients), 1),
                "fat": round(sum(i.fat for i in self.ingredients), 1),
            }
        )


class WorkoutLogItem(Record):
    id: str
    user_id: Optional[str] = Field(None, alias="userId")
    exercise: str
    sets: int = Field(0, ge=0)
    reps: int = Field(0, ge=0)
    weight: float = Field(0.0, ge=0, description="重量 (kg)")
    date: str = Field(..., pattern=DATE_PATTERN)
    tags: List[str] = Field(default_factory=list)
    timestamp: int = Field(default_factory=now_ms)


class BodyCheckItem(Record):
    id: str
    user_id: Optional[str] = Field(None, alias="userId")
    date: str = Field(..., pattern=DATE_PATTERN)
    image: str
    note: Optional[str] = None
    timestamp: int = Field(default_factory=now_ms)


class SavedFoodItem(Record, MacroNutrients):
    id: str
    user_id: Optional[str] = Field(None, alias="userId")
    name: str
    times_used: int = Field(1, alias="timesUsed", ge=0)


class DailyStats(Record):
    id: Optional[str] = Field(None, description="userId_date 复合主键")
    user_id: Optional[str] = Field(None, alias="userId")
    date: str = Field(..., pattern=DATE_PATTERN)
    weight: Optional[float] = Field(None, gt=0)
    body_fat: Optional[float] = Field(None, alias="bodyFat", ge=0, le=100)
    note: Optional[str] = None


class DataBackup(BaseModel):
    """整库快照。分组集合以 userId 为键，记录本身不携带 userId。"""

    model_config = ConfigDict(populate_by_name=True)

    version: int
    users: List[UserProfile]
    logs: dict[str, List[FoodLogItem]] = Field(default_factory=dict)
    workouts: dict[str, List[WorkoutLogItem]] = Field(default_factory=dict)
    body_checks: dict[str, List[BodyCheckItem]] = Field(default_factory=dict, alias="bodyChecks")
    saved_foods: dict[str, List[SavedFoodItem]] = Field(default_factory=dict, alias="savedFoods")
    daily_stats: dict[str, List[DailyStats]] = Field(default_factory=dict, alias="dailyStats")


# ---- AI 估算服务返回结构 ----


class FoodEstimate(MacroNutrients):
    name: str = Field(..., description="食物名称")
    ingredients: Optional[List[IngredientItem]] = None


class WorkoutExercise(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    sets: int = Field(3, ge=1)
    reps: str = Field("10", description="次数或区间，如 8-12")
    tips: str = ""
    youtube_query: str = Field("", alias="youtubeQuery")


class WorkoutPlan(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    plan_name: str = Field(..., alias="planName")
    advice: str = ""
    exercises: List[WorkoutExercise] = Field(default_factory=list)
