import pytest

from nutritrack.database.models import Stores
from nutritrack.errors import OwnershipConflict
from nutritrack.repositories.daily_stats_repository import DailyStatsRepository
from nutritrack.repositories.food_log_repository import FoodLogRepository
from nutritrack.repositories.saved_food_repository import SavedFoodRepository
from nutritrack.repositories.user_repository import UserRepository
from nutritrack.repositories.workout_repository import WorkoutRepository
from nutritrack.schemas import (
    DailyStats,
    FoodLogItem,
    IngredientItem,
    MacroNutrients,
    WorkoutLogItem,
)

from conftest import make_profile


async def test_user_repository_crud(store):
    users = UserRepository(store)
    await users.save(make_profile(id="u1"))
    await users.save(make_profile(id="u2", name="小红"))

    assert [u.id for u in await users.list()] == ["u1", "u2"]
    assert (await users.get("u2")).name == "小红"

    await users.delete("u2")
    await users.delete("u2")
    assert await users.get("u2") is None


async def test_deleting_user_keeps_their_logs(store):
    users = UserRepository(store)
    logs = FoodLogRepository(store)
    await users.save(make_profile(id="u1"))
    await logs.add("u1", FoodLogItem(id="f1", name="面", date="2024-05-01", calories=500))

    await users.delete("u1")
    assert len(await logs.list("u1")) == 1


async def test_add_attaches_owner(store):
    logs = FoodLogRepository(store)
    item = FoodLogItem(id="f1", user_id="someone-else", name="面", date="2024-05-01")
    saved = await logs.add("u1", item)

    assert saved.user_id == "u1"
    assert (await store.get(Stores.LOGS, "f1"))["userId"] == "u1"
    assert await logs.list("someone-else") == []


async def test_update_overwrites_by_id(store):
    logs = FoodLogRepository(store)
    await logs.add("u1", FoodLogItem(id="f1", name="面", date="2024-05-01", calories=500))
    await logs.update("u1", FoodLogItem(id="f1", name="拉面", date="2024-05-01", calories=650))

    items = await logs.list("u1")
    assert len(items) == 1
    assert items[0].name == "拉面"
    assert items[0].calories == 650


async def test_delete_ignores_other_users_records(store):
    logs = FoodLogRepository(store)
    await logs.add("u1", FoodLogItem(id="f1", name="面", date="2024-05-01"))

    await logs.delete("u2", "f1")
    assert len(await logs.list("u1")) == 1

    await logs.delete("u1", "f1")
    assert await logs.list("u1") == []


async def test_update_refuses_other_users_records(store):
    logs = FoodLogRepository(store)
    await logs.add("u1", FoodLogItem(id="f1", name="面", date="2024-05-01", calories=500))

    with pytest.raises(OwnershipConflict):
        await logs.update("u2", FoodLogItem(id="f1", name="拉面", date="2024-05-01", calories=650))
    with pytest.raises(OwnershipConflict):
        await logs.add("u2", FoodLogItem(id="f1", name="拉面", date="2024-05-01"))

    record = await store.get(Stores.LOGS, "f1")
    assert record["userId"] == "u1"
    assert record["calories"] == 500
    assert await logs.list("u2") == []


async def test_food_logs_for_date_filters_owner(store):
    logs = FoodLogRepository(store)
    await logs.add("u1", FoodLogItem(id="f1", name="面", date="2024-05-01"))
    await logs.add("u2", FoodLogItem(id="f2", name="饭", date="2024-05-01"))
    await logs.add("u1", FoodLogItem(id="f3", name="粥", date="2024-05-02"))

    assert [f.id for f in await logs.list_for_date("u1", "2024-05-01")] == ["f1"]
    assert [f.id for f in await logs.list_for_date("u2", "2024-05-02")] == []


async def test_list_for_date_filters_owner(store):
    workouts = WorkoutRepository(store)
    await workouts.add("u1", WorkoutLogItem(id="w1", exercise="深蹲", sets=5, reps=5, weight=100, date="2024-05-01"))
    await workouts.add("u2", WorkoutLogItem(id="w2", exercise="卧推", sets=3, reps=8, weight=60, date="2024-05-01"))
    await workouts.add("u1", WorkoutLogItem(id="w3", exercise="硬拉", sets=1, reps=5, weight=140, date="2024-05-02"))

    day = await workouts.list_for_date("u1", "2024-05-01")
    assert [w.id for w in day] == ["w1"]


async def test_ingredient_totals_helper():
    item = FoodLogItem(
        id="f1",
        name="便当",
        date="2024-05-01",
        calories=1,
        ingredients=[
            IngredientItem(name="白饭 (200g)", calories=260, protein=5, carbs=57, fat=0.5),
            IngredientItem(name="鸡腿 (150g)", calories=320, protein=30, carbs=0, fat=21),
        ],
    )
    fixed = item.with_ingredient_totals()
    assert fixed.calories == 580
    assert fixed.protein == 35
    assert fixed.fat == 21.5


async def test_saved_food_merge_is_case_insensitive(store):
    foods = SavedFoodRepository(store)
    first = await foods.save("u1", "Oatmeal", MacroNutrients(calories=150, protein=5, carbs=27, fat=3))
    merged = await foods.save("u1", "oatmeal", MacroNutrients(calories=180, protein=6, carbs=30, fat=4))

    items = await foods.list("u1")
    assert len(items) == 1
    assert merged.id == first.id
    assert items[0].times_used == 2
    assert items[0].calories == 180
    assert items[0].user_id == "u1"


async def test_saved_food_is_per_user(store):
    foods = SavedFoodRepository(store)
    await foods.save("u1", "Oatmeal", MacroNutrients(calories=150))
    await foods.save("u2", "Oatmeal", MacroNutrients(calories=150))

    assert (await foods.list("u1"))[0].times_used == 1
    assert (await foods.list("u2"))[0].times_used == 1


async def test_saved_foods_listed_most_used_first(store):
    foods = SavedFoodRepository(store)
    await foods.save("u1", "apple", MacroNutrients(calories=95))
    await foods.save("u1", "egg", MacroNutrients(calories=70))
    await foods.save("u1", "egg", MacroNutrients(calories=70))
    await foods.save("u1", "egg", MacroNutrients(calories=70))
    await foods.save("u1", "rice", MacroNutrients(calories=200))
    await foods.save("u1", "rice", MacroNutrients(calories=200))

    assert [f.name for f in await foods.list("u1")] == ["egg", "rice", "apple"]
    # 存储顺序不受排序影响
    stored = await store.get_all(Stores.SAVED_FOODS, "userId", "u1")
    assert [r["name"] for r in stored] == ["apple", "egg", "rice"]


async def test_daily_stats_one_record_per_day(store):
    stats = DailyStatsRepository(store)
    await stats.save("u1", DailyStats(date="2024-05-01", weight=80))
    await stats.save("u1", DailyStats(id="ignored", date="2024-05-01", weight=79.5, body_fat=18))
    await stats.save("u2", DailyStats(date="2024-05-01", weight=60))

    mine = await stats.list("u1")
    assert len(mine) == 1
    assert mine[0].id == "u1_2024-05-01"
    assert mine[0].weight == 79.5
    assert mine[0].body_fat == 18
    assert (await stats.get("u2", "2024-05-01")).weight == 60
    assert await stats.get("u1", "2024-05-02") is None
