import pytest

from nutritrack.errors import RecalculationSkipped
from nutritrack.repositories.user_repository import UserRepository
from nutritrack.schemas import DailyStats, Goal
from nutritrack.services.profile_recalculator import ProfileRecalculator

from conftest import make_profile

TODAY = "2024-05-10"


@pytest.fixture
async def users(store):
    repo = UserRepository(store)
    await repo.save(make_profile(goal=Goal.cut, tdee=2166, target_calories=1766))
    return repo


async def test_weight_today_updates_profile(users):
    recalculator = ProfileRecalculator(users, clock=lambda: TODAY)
    updated = await recalculator.apply("u1", DailyStats(date=TODAY, weight=75))

    assert updated is not None
    stored = await users.get("u1")
    assert stored.weight == 75
    # BMR 1755 -> TDEE 2106 -> cut 1706
    assert stored.tdee == 2106
    assert stored.target_calories == 1706


async def test_weight_for_past_date_leaves_profile(users):
    recalculator = ProfileRecalculator(users, clock=lambda: TODAY)
    assert await recalculator.apply("u1", DailyStats(date="2024-05-09", weight=75)) is None

    stored = await users.get("u1")
    assert stored.weight == 80
    assert stored.tdee == 2166


async def test_unchanged_weight_is_skipped(users):
    recalculator = ProfileRecalculator(users, clock=lambda: TODAY)
    assert await recalculator.apply("u1", DailyStats(date=TODAY, weight=80)) is None


async def test_missing_weight_or_profile_is_skipped(users):
    recalculator = ProfileRecalculator(users, clock=lambda: TODAY)
    assert await recalculator.apply("u1", DailyStats(date=TODAY, body_fat=20)) is None
    assert await recalculator.apply("nobody", DailyStats(date=TODAY, weight=70)) is None


def test_plan_reports_skip_reason():
    recalculator = ProfileRecalculator(users=None)
    profile = make_profile()

    with pytest.raises(RecalculationSkipped) as exc:
        recalculator.plan(profile, DailyStats(date="2024-01-01", weight=70), TODAY)
    assert exc.value.reason == "not_today"

    with pytest.raises(RecalculationSkipped) as exc:
        recalculator.plan(profile, DailyStats(date=TODAY, weight=80), TODAY)
    assert exc.value.reason == "weight_unchanged"
