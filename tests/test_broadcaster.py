import json

import pytest

from app.features.events.broadcaster import EventBroadcaster, sse_format, stream_events
from app.features.events.schemas import ProcessingStartedEvent, UploadProgressEvent

pytestmark = pytest.mark.anyio


def _drain(sub):
    items = []
    while not sub.queue.empty():
        items.append(sub.get_nowait())
    return items


async def test_events_delivered_in_publish_order():
    hub = EventBroadcaster()
    sub = hub.subscribe(1)

    for received in range(1, 4):
        hub.publish(1, UploadProgressEvent(video_id=1, progress=received * 25, received=received, total_chunks=4))

    assert [e["received"] for e in _drain(sub)] == [1, 2, 3]


async def test_no_replay_for_late_subscribers():
    hub = EventBroadcaster()
    hub.publish(1, ProcessingStartedEvent(video_id=1, job_id=1))

    sub = hub.subscribe(1)
    assert _drain(sub) == []


async def test_topics_are_isolated():
    hub = EventBroadcaster()
    one, two = hub.subscribe(1), hub.subscribe(2)

    assert hub.publish(1, {"type": "ping"}) == 1

    assert _drain(one) == [{"type": "ping"}]
    assert _drain(two) == []


async def test_full_subscriber_drops_without_blocking_others():
    hub = EventBroadcaster(queue_size=2)
    slow, fast = hub.subscribe(1), hub.subscribe(1)

    hub.publish(1, {"type": "a"})
    hub.publish(1, {"type": "b"})
    _drain(fast)
    delivered = hub.publish(1, {"type": "c"})

    assert delivered == 1
    assert slow.dropped == 1
    assert [e["type"] for e in _drain(slow)] == ["a", "b"]
    assert _drain(fast) == [{"type": "c"}]


async def test_unsubscribe():
    hub = EventBroadcaster()
    sub = hub.subscribe(1)
    hub.unsubscribe(1, sub)

    assert hub.subscriber_count(1) == 0
    assert hub.publish(1, {"type": "a"}) == 0


async def test_models_serialized_as_json_payloads():
    hub = EventBroadcaster()
    sub = hub.subscribe(3)
    hub.publish(3, ProcessingStartedEvent(video_id=3, job_id=9))

    assert sub.get_nowait() == {"type": "processing:started", "video_id": 3, "job_id": 9}


async def test_sse_stream_sends_hello_then_events_and_unsubscribes():
    hub = EventBroadcaster()
    sub = hub.subscribe(5)
    hub.publish(5, ProcessingStartedEvent(video_id=5, job_id=1))

    async def disconnected():
        return True

    frames = [f async for f in stream_events(hub, sub, keepalive=1.0, is_disconnected=disconnected)]

    assert frames[0] == sse_format({"type": "hello", "video_id": 5})
    assert frames[1].startswith("event: processing:started\n")
    assert json.loads(frames[1].split("data: ", 1)[1])["job_id"] == 1
    assert hub.subscriber_count(5) == 0


async def test_sse_stream_keepalive_when_idle():
    hub = EventBroadcaster()
    sub = hub.subscribe(5)

    async def disconnected():
        return True

    frames = [f async for f in stream_events(hub, sub, keepalive=0.01, is_disconnected=disconnected)]

    assert frames[1] == ": keepalive\n\n"
