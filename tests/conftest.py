from types import SimpleNamespace

import pytest

from nutritrack.database.entity_store import EntityStore
from nutritrack.schemas import ActivityLevel, Gender, Goal, UserProfile


@pytest.fixture
async def store():
    store = await EntityStore.in_memory()
    yield store
    await store.close()


def make_profile(**overrides) -> UserProfile:
    fields = dict(
        id="u1",
        name="小明",
        height=180,
        weight=80,
        age=25,
        gender=Gender.male,
        activity_level=ActivityLevel.sedentary,
        goal=Goal.maintain,
        tdee=2166,
        target_calories=2166,
    )
    fields.update(overrides)
    return UserProfile(**fields)


class StubCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def stub_client(content=None, error=None):
    """只实现 chat.completions.create 的 AsyncOpenAI 替身。"""
    return SimpleNamespace(chat=SimpleNamespace(completions=StubCompletions(content, error)))
