"""Tests for feed event building, publishing and local WebSocket fan-out."""

import json

import pytest

from bizops.services.feed import FeedPublisher, build_event
from bizops.ws.connection_manager import ConnectionManager
from bizops.ws.pubsub import parse_feed_message


class FakeSocket:
    def __init__(self, broken: bool = False) -> None:
        self.accepted = False
        self.sent: list[dict] = []
        self.broken = broken

    async def accept(self) -> None:
        self.accepted = True

    async def send_json(self, data: dict) -> None:
        if self.broken:
            raise RuntimeError("socket closed")
        self.sent.append(data)


class ExplodingRedis:
    async def publish(self, channel: str, message: str) -> int:
        raise ConnectionError("redis down")


class TestBuildEvent:
    def test_shape(self):
        event = build_event("customers", "updated", "abc", {"status": "PAID"})
        assert event["type"] == "updated"
        assert event["resource"] == "customers"
        assert event["id"] == "abc"
        assert event["data"] == {"status": "PAID"}
        assert "at" in event

    @pytest.mark.parametrize("resource,event_type", [("nope", "created"), ("ads", "exploded")])
    def test_rejects_unknown_names(self, resource, event_type):
        with pytest.raises(ValueError):
            build_event(resource, event_type)


class TestFeedPublisher:
    async def test_publishes_to_resource_topic(self, fake_redis):
        await FeedPublisher(fake_redis).publish("ads", "deleted", "42")
        channel, event = fake_redis.published[0]
        assert channel == "ws:feed:ads"
        assert event["id"] == "42"

    async def test_redis_failure_is_swallowed(self):
        await FeedPublisher(ExplodingRedis()).publish("ads", "created", "1")

    async def test_without_redis_is_a_no_op(self):
        await FeedPublisher(None).publish("ads", "created", "1")


class TestConnectionManager:
    async def test_broadcast_reaches_only_that_feed(self):
        manager = ConnectionManager()
        leads_ws, ads_ws = FakeSocket(), FakeSocket()
        await manager.connect(leads_ws, "leads", "a")
        await manager.connect(ads_ws, "ads", "b")

        await manager.broadcast("leads", {"type": "created"})
        assert leads_ws.accepted
        assert leads_ws.sent == [{"type": "created"}]
        assert ads_ws.sent == []

    async def test_dead_sockets_are_dropped(self):
        manager = ConnectionManager()
        await manager.connect(FakeSocket(broken=True), "leads", "dead")
        await manager.connect(FakeSocket(), "leads", "alive")

        await manager.broadcast("leads", {"type": "reset"})
        assert manager.subscriber_count("leads") == 1

    def test_disconnect_cleans_empty_feeds(self):
        manager = ConnectionManager()
        manager.feeds["ads"]["x"] = FakeSocket()
        manager.disconnect("ads", "x")
        manager.disconnect("ads", "x")
        assert "ads" not in manager.feeds


class TestParseFeedMessage:
    def test_pattern_message(self):
        message = {
            "type": "pmessage",
            "channel": "ws:feed:leads",
            "data": json.dumps({"type": "created", "id": "1"}),
        }
        assert parse_feed_message(message) == ("leads", {"type": "created", "id": "1"})

    @pytest.mark.parametrize(
        "message",
        [
            {"type": "psubscribe", "channel": "ws:feed:*", "data": 1},
            {"type": "pmessage", "channel": "ws:feed:backups", "data": "{}"},
            {"type": "pmessage", "channel": "ws:feed:ads", "data": "not json"},
        ],
    )
    def test_skipped(self, message):
        assert parse_feed_message(message) is None
