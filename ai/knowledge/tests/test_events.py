"""Tests for job event publishing."""

from knowledge.ingestion.events import EventBroadcaster, NullPublisher, safe_publish


def test_broadcast_reaches_all_subscribers():
    broadcaster = EventBroadcaster()
    first, second = [], []
    broadcaster.subscribe(lambda event, job_id, payload: first.append((event, job_id, payload)))
    broadcaster.subscribe(lambda event, job_id, payload: second.append(event))

    broadcaster.publish("crawl:progress", "job-1", {"percentage": 50})

    assert first == [("crawl:progress", "job-1", {"percentage": 50})]
    assert second == ["crawl:progress"]


def test_unsubscribe():
    broadcaster = EventBroadcaster()
    received = []
    unsubscribe = broadcaster.subscribe(lambda event, job_id, payload: received.append(event))

    unsubscribe()
    broadcaster.publish("crawl:completed", "job-1", {})

    assert received == []


def test_failing_subscriber_is_skipped():
    broadcaster = EventBroadcaster()
    received = []

    def broken(event, job_id, payload):
        raise RuntimeError("socket closed")

    broadcaster.subscribe(broken)
    broadcaster.subscribe(lambda event, job_id, payload: received.append(event))

    broadcaster.publish("file:completed", "file-1", {})

    assert received == ["file:completed"]


def test_safe_publish_swallows_publisher_errors():
    class ExplodingPublisher:
        def publish(self, event, job_id, payload):
            raise ConnectionError("broker down")

    safe_publish(ExplodingPublisher(), "crawl:error", "job-1", {})
    safe_publish(NullPublisher(), "crawl:error", "job-1", {})
