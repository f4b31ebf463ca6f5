import json

import pytest
from openai import OpenAIError

from nutritrack.config import DatabaseSettings, Settings
from nutritrack.errors import StoreError
from nutritrack.schemas import DailyStats, Goal
from nutritrack.tracker import NutriTracker

from conftest import make_profile, stub_client

TODAY = "2024-05-10"


def _settings(tmp_path, url=None):
    return Settings(
        database=DatabaseSettings(url=url or f"sqlite+aiosqlite:///{tmp_path / 'nutritrack.db'}"),
        preferences_path=tmp_path / "prefs.json",
    )


@pytest.fixture
async def tracker(tmp_path):
    tracker = NutriTracker(_settings(tmp_path), clock=lambda: TODAY, llm_client=stub_client("{}"))
    await tracker.start()
    yield tracker
    await tracker.close()


async def test_unavailable_store_degrades_to_memory(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x")
    tracker = NutriTracker(_settings(tmp_path, url=f"sqlite+aiosqlite:///{blocker / 'db.sqlite'}"))

    await tracker.start()
    try:
        assert tracker.durable is False
        profile = await tracker.save_profile(make_profile(tdee=0, target_calories=0))
        assert (await tracker.users.get(profile.id)).tdee == 2166
    finally:
        await tracker.close()


async def test_save_profile_derives_targets_and_logs_in(tracker, tmp_path):
    profile = await tracker.save_profile(make_profile(goal=Goal.bulk, tdee=1, target_calories=1))

    assert profile.tdee == 2166
    assert profile.target_calories == 2466
    assert tracker.current_user.id == "u1"
    assert tracker.current_user.target_calories == 2466
    prefs = json.loads((tmp_path / "prefs.json").read_text(encoding="utf-8"))
    assert prefs["currentUserId"] == "u1"


async def test_session_resumes_on_next_start(tracker, tmp_path):
    await tracker.save_profile(make_profile())
    await tracker.close()

    again = NutriTracker(_settings(tmp_path), clock=lambda: TODAY)
    try:
        resumed = await again.start()
        assert resumed is not None
        assert resumed.id == "u1"
    finally:
        await again.close()


async def test_logout_clears_session_pointer(tracker, tmp_path):
    await tracker.save_profile(make_profile())
    tracker.logout()

    again = NutriTracker(_settings(tmp_path))
    try:
        assert await again.start() is None
    finally:
        await again.close()


async def test_daily_stats_today_updates_current_user(tracker):
    await tracker.save_profile(make_profile())
    await tracker.update_daily_stats(DailyStats(date=TODAY, weight=75))

    assert tracker.current_user.weight == 75
    assert tracker.current_user.tdee == 2106
    assert (await tracker.users.get("u1")).weight == 75


async def test_daily_stats_past_date_keeps_profile(tracker):
    await tracker.save_profile(make_profile())
    saved = await tracker.update_daily_stats(DailyStats(date="2024-05-01", weight=75))

    assert saved.id == "u1_2024-05-01"
    assert tracker.current_user.weight == 80
    data = await tracker.load_user_data()
    assert [s.weight for s in data["dailyStats"]] == [75]


async def test_restore_reports_failure(tracker):
    await tracker.save_profile(make_profile())
    assert await tracker.restore_backup("{broken") is False
    assert await tracker.users.get("u1") is not None


async def test_restore_write_failure_is_reported(tracker, monkeypatch):
    await tracker.save_profile(make_profile())
    text = await tracker.export_backup()

    async def broken_put_many(collection, records):
        raise StoreError("磁盘已满")

    monkeypatch.setattr(tracker.store, "put_many", broken_put_many)
    assert await tracker.restore_backup(text) is False


async def test_delete_current_user_logs_out(tracker, tmp_path):
    await tracker.save_profile(make_profile())
    await tracker.save_profile(make_profile(id="u2", name="小红"))

    await tracker.delete_user("u1")
    assert tracker.current_user.id == "u2"

    await tracker.delete_user("u2")
    assert tracker.current_user is None
    assert await tracker.users.list() == []
    assert json.loads((tmp_path / "prefs.json").read_text()).get("currentUserId") is None


async def test_restore_drops_missing_current_user(tracker):
    await tracker.save_profile(make_profile())
    assert await tracker.restore_backup(json.dumps({"version": 2, "users": []})) is True
    assert tracker.current_user is None


async def test_backup_filename_is_date_stamped(tracker):
    assert tracker.backup_filename() == "nutritrack-backup-2024-05-10.json"


async def test_preferences_are_persisted(tracker, tmp_path):
    tracker.update_preferences(theme="blue", dark_mode=True)

    prefs = json.loads((tmp_path / "prefs.json").read_text(encoding="utf-8"))
    assert prefs["theme"] == "blue"
    assert prefs["darkMode"] is True


async def test_estimate_food_parses_reply(tracker):
    reply = "```json\n" + json.dumps(
        {"name": "牛肉面", "calories": 550, "protein": 25, "carbs": 70, "fat": 18}
    ) + "\n```"
    tracker._llm_client = stub_client(reply)

    estimate = await tracker.estimate_food(text="一碗牛肉面")
    assert estimate.name == "牛肉面"
    assert estimate.calories == 550
    call = tracker._llm_client.chat.completions.calls[0]
    assert "一碗牛肉面" in call["messages"][0]["content"]


async def test_estimate_food_failure_falls_back(tracker):
    tracker._llm_client = stub_client(error=OpenAIError("network down"))
    assert await tracker.estimate_food(text="牛肉面") is None

    tracker._llm_client = stub_client("抱歉，我无法识别")
    assert await tracker.estimate_food(text="牛肉面") is None

    assert await tracker.estimate_food() is None


async def test_estimate_food_without_api_key(tmp_path):
    tracker = NutriTracker(_settings(tmp_path))
    await tracker.start()
    try:
        assert await tracker.estimate_food(text="牛肉面") is None
    finally:
        await tracker.close()


async def test_suggest_workout(tracker):
    plan = {
        "planName": "胸部训练",
        "advice": "控制离心",
        "exercises": [{"name": "卧推", "sets": 4, "reps": "8-12", "tips": "肩胛收紧", "youtubeQuery": "bench press"}],
    }
    tracker._llm_client = stub_client(json.dumps(plan, ensure_ascii=False))

    result = await tracker.suggest_workout("Chest - Focus: Overall")
    assert result.plan_name == "胸部训练"
    assert result.exercises[0].youtube_query == "bench press"
