import pytest
import pytest_asyncio

from aggregator.models import ModerationStatus
from api.database import AlreadyReported, SqliteStore, init_db


@pytest_asyncio.fixture
async def store(tmp_path):
    path = tmp_path / "events.db"
    await init_db(path)
    return SqliteStore(path)


@pytest.mark.asyncio
async def test_submitted_event_round_trips(store, create_event):
    event = create_event(id="user_1", title="Block Party", source="user", poster_id="p1",
                         primary_time="14:00", description="Bring a dish")
    await store.add_user_event(event)
    (loaded,) = await store.get_user_submitted_events()
    assert loaded.id == "user_1"
    assert loaded.primary_time == "14:00"
    assert loaded.poster_id == "p1"
    assert loaded.status is ModerationStatus.ACTIVE
    assert loaded.report_count == 0


@pytest.mark.asyncio
async def test_swipe_history_is_per_user_and_kind(store):
    await store.record_swipe("u1", "tm_1", "pass")
    await store.record_swipe("u1", "tm_1", "pass")
    await store.record_swipe("u1", "sg_2", "save")
    await store.record_swipe("u2", "eb_3", "pass")
    assert await store.get_user_pass_history("u1") == {"tm_1"}
    assert await store.get_user_save_history("u1") == {"sg_2"}
    assert await store.get_user_pass_history("nobody") == set()


@pytest.mark.asyncio
async def test_reports_hide_then_remove(store, create_event):
    await store.add_user_event(create_event(id="user_1", source="user", poster_id="p1"))
    statuses = [
        await store.record_report("user_1", f"r{i}", "spam") for i in range(5)
    ]
    assert statuses == [
        ModerationStatus.ACTIVE,
        ModerationStatus.ACTIVE,
        ModerationStatus.HIDDEN_REVIEW,
        ModerationStatus.HIDDEN_REVIEW,
        ModerationStatus.REMOVED,
    ]
    assert await store.get_user_submitted_events() == []


@pytest.mark.asyncio
async def test_duplicate_report_refused(store, create_event):
    await store.add_user_event(create_event(id="user_1", source="user", poster_id="p1"))
    await store.record_report("user_1", "r1", "spam")
    with pytest.raises(AlreadyReported):
        await store.record_report("user_1", "r1", "spam again")


@pytest.mark.asyncio
async def test_report_on_provider_event_is_only_logged(store):
    assert await store.record_report("tm_1", "r1", "wrong date", "says Friday") is None
