import json

from hr_onboarding.services.activity import log_activity
from hr_onboarding.services.activity_feed import ActivityFeed, activity_feed


async def test_local_feed_drops_oldest_for_slow_readers():
    feed = ActivityFeed(queue_size=2)
    async with feed.subscription() as queue:
        for n in range(3):
            await feed.publish({"n": n})
        assert [json.loads(queue.get_nowait())["n"] for _ in range(2)] == [1, 2]

    await feed.publish({"n": 3})
    assert queue.empty()


async def test_log_activity_is_published(db_session):
    async with activity_feed.subscription() as queue:
        activity = await log_activity(db_session, action="CANDIDATE_CREATED", candidate_id=None, description="Asha added")
        payload = json.loads(queue.get_nowait())
    assert payload == {
        "activity_id": activity.activity_id,
        "candidate_id": None,
        "action": "CANDIDATE_CREATED",
        "description": "Asha added",
    }
