import asyncio
import logging

from nutritrack.schemas import (
    ActivityLevel,
    DailyStats,
    FoodLogItem,
    Gender,
    Goal,
    MacroNutrients,
    UserProfile,
)
from nutritrack.tracker import NutriTracker
from nutritrack.utils import generate_id, today_str


async def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    tracker = NutriTracker()
    resumed = await tracker.start()
    if not tracker.durable:
        print("⚠️ 存储不可用，本次数据不会被保存")

    # 1. 档案与 TDEE
    print("\n[1. 用户档案]")
    user = resumed or await tracker.save_profile(
        UserProfile(
            id=generate_id(),
            name="小明",
            height=180,
            weight=85,
            age=25,
            gender=Gender.male,
            activity_level=ActivityLevel.sedentary,
            goal=Goal.cut,
        )
    )
    print(f"当前用户: {user.name}, TDEE: {user.tdee}, 目标: {user.target_calories} kcal")

    # 2. 饮食记录 + 常用食物
    print("\n[2. 饮食记录]")
    estimate = await tracker.estimate_food(text="一碗牛肉面")
    macros = estimate or MacroNutrients(calories=550, protein=25, carbs=70, fat=18)
    log = FoodLogItem(
        id=generate_id(),
        name=getattr(estimate, "name", "牛肉面"),
        date=today_str(),
        **macros.model_dump(include={"calories", "protein", "carbs", "fat"}),
    )
    await tracker.food_logs.add(user.id, log)
    await tracker.saved_foods.save(user.id, log.name, macros)
    for food in await tracker.saved_foods.list(user.id):
        print(f"- {food.name}: {food.calories:.0f} kcal (使用 {food.times_used} 次)")

    # 3. 当天体重 -> 自动重算
    print("\n[3. 今日体重]")
    await tracker.update_daily_stats(DailyStats(date=today_str(), weight=user.weight - 1))
    user = tracker.current_user
    print(f"新体重 {user.weight} kg, TDEE: {user.tdee}, 目标: {user.target_calories} kcal")

    # 4. 备份
    print("\n[4. 备份]")
    backup = await tracker.export_backup()
    print(f"{tracker.backup_filename()}: {len(backup)} 字节")

    await tracker.close()


if __name__ == "__main__":
    asyncio.run(main())
