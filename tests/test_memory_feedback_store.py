import pytest

from apps.api.adapters.memory_feedback_store import InMemoryFeedbackStore


@pytest.mark.asyncio
async def test_append_is_newest_first_and_counters_increment():
    store = InMemoryFeedbackStore()

    await store.append("feedback", "a")
    await store.append("feedback", "b")

    assert store.lists["feedback"] == ["b", "a"]
    assert await store.incr("analytics:neutral") == 1
    assert await store.incr("analytics:neutral") == 2
    assert await store.health() is True


@pytest.mark.asyncio
async def test_expired_list_is_dropped_before_next_append():
    now = [1000.0]
    store = InMemoryFeedbackStore(clock=lambda: now[0])

    await store.append("feedback", "old")
    await store.expire("feedback", 30)

    now[0] += 10
    await store.append("feedback", "mid")
    assert store.lists["feedback"] == ["mid", "old"]

    now[0] += 60
    await store.append("feedback", "new")
    assert store.lists["feedback"] == ["new"]


@pytest.mark.asyncio
async def test_list_keeps_only_most_recent_items():
    store = InMemoryFeedbackStore(max_items=3)

    for value in ("a", "b", "c", "d", "e"):
        await store.append("feedback", value)

    assert store.lists["feedback"] == ["e", "d", "c"]
