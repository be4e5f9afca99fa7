"""Tests for event fan-out over the Redis bus and SSE stream framing."""

import asyncio
import json
from collections.abc import AsyncIterator
from datetime import UTC, datetime
from typing import Any

import pytest
from fakeredis import FakeServer
from fakeredis.aioredis import FakeRedis
from redis.asyncio.client import PubSub

from permit_trust.models import UserRole
from permit_trust.services.auth.identity import Identity
from permit_trust.services.events import (
    EventBroadcaster,
    EventDispatcher,
    EventStream,
    PermitApprovedEvent,
    ScanRecordedEvent,
    channel_for,
)

from tests.helpers import FAST_RETRY

VENDOR_ID = "01HRZ8Q4N7YDKB3J5W2M6X9TGV"
REVIEWER = Identity(user_id="01HRZ8Q4N7YDKB3J5W2M6X9TGR", email="r@example.com", display_name="R", role=UserRole.REVIEWER)
FRAME_TIMEOUT = 5.0


def scan_event(**overrides: Any) -> ScanRecordedEvent:
    fields: dict[str, Any] = {
        "scan_id": "01HRZ8Q4N7YDKB3J5W2M6X9TGS",
        "permit_id": "01HRZ8Q4N7YDKB3J5W2M6X9TGA",
        "document_number": "2024/0001/SMKT/OPR",
        "vendor_id": VENDOR_ID,
        "vendor_name": "PT Konstruksi Jaya",
        "scanned_by": "01HRZ8Q4N7YDKB3J5W2M6X9TGB",
        "scanner_name": "Budi Verifier",
        "scanned_at": datetime(2024, 3, 1, 9, 0, tzinfo=UTC),
        "location": "Gate 3",
    }
    fields.update(overrides)
    return ScanRecordedEvent(**fields)


def parse_frame(frame: str) -> dict[str, Any]:
    assert frame.endswith("\n\n")
    lines = [line.removeprefix("data: ") for line in frame.strip().splitlines() if line.startswith("data:")]
    result: dict[str, Any] = json.loads("\n".join(lines))
    return result


async def next_frame(frames: AsyncIterator[str]) -> str:
    return await asyncio.wait_for(anext(frames), timeout=FRAME_TIMEOUT)


async def read_message(pubsub: PubSub) -> dict[str, Any]:
    """Next published message, skipping subscribe confirmations."""
    for _ in range(20):
        message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=0.25)
        if message is not None:
            return message
    raise AssertionError("no message received")


@pytest.fixture
def disconnected_redis() -> FakeRedis:
    server = FakeServer()
    server.connected = False
    return FakeRedis(server=server, decode_responses=True)


class TestEventStreamFraming:
    def test_frame_single_line(self) -> None:
        assert EventStream.frame('{"a": 1}') == 'data: {"a": 1}\n\n'

    def test_frame_multi_line_with_event_and_id(self) -> None:
        assert EventStream.frame("one\ntwo", event="msg", id="7") == "id: 7\nevent: msg\ndata: one\ndata: two\n\n"

    def test_frame_non_string_is_json(self) -> None:
        assert EventStream.frame({"ok": True}) == 'data: {"ok": true}\n\n'

    def test_empty_frame(self) -> None:
        assert EventStream.frame("") == "data:\n\n"

    def test_retry_hint(self) -> None:
        assert EventStream.retry(5000) == "retry: 5000\n\n"
        assert EventStream.retry(-1) == "retry: 0\n\n"


async def test_stream_opens_with_retry_and_connected(broadcaster: EventBroadcaster) -> None:
    subscription = await broadcaster.subscribe("reviewer", identity=REVIEWER)
    frames = subscription.frames()
    try:
        assert await next_frame(frames) == "retry: 1000\n\n"

        connected = parse_frame(await next_frame(frames))
        assert connected == {
            "type": "connected",
            "scope": "reviewer",
            "user_id": REVIEWER.user_id,
            "role": "reviewer",
            "live": True,
        }
    finally:
        await frames.aclose()


async def test_published_event_reaches_subscriber(broadcaster: EventBroadcaster) -> None:
    subscription = await broadcaster.subscribe("reviewer", identity=REVIEWER)
    frames = subscription.frames()
    try:
        await next_frame(frames)
        await next_frame(frames)

        receivers = await broadcaster.publish(scan_event())
        payload = parse_frame(await next_frame(frames))

        assert receivers == 1
        assert payload["type"] == "scan:recorded"
        assert payload["vendor_name"] == "PT Konstruksi Jaya"
        assert payload["document_number"] == "2024/0001/SMKT/OPR"
    finally:
        await frames.aclose()


async def test_scan_event_reaches_every_audience(broadcaster: EventBroadcaster, redis: FakeRedis) -> None:
    pubsub = redis.pubsub()
    channels = [channel_for(scope) for scope in ("reviewer", "approver", "admin", f"vendor:{VENDOR_ID}")]
    await pubsub.subscribe(*channels)
    try:
        assert await broadcaster.publish(scan_event()) == 4
    finally:
        await pubsub.aclose()


async def test_events_do_not_leak_across_scopes(broadcaster: EventBroadcaster) -> None:
    subscription = await broadcaster.subscribe("reviewer", identity=REVIEWER)
    try:
        event = PermitApprovedEvent(
            permit_id="01HRZ8Q4N7YDKB3J5W2M6X9TGA",
            document_number="2024/0001/SMKT/OPR",
            vendor_id=VENDOR_ID,
            approved_at=datetime(2024, 3, 1, tzinfo=UTC),
        )
        assert await broadcaster.publish(event) == 0
        assert await broadcaster.publish(scan_event(), scopes=[f"vendor:{VENDOR_ID}"]) == 0
        assert await broadcaster.publish(scan_event(), scopes=["reviewer"]) == 1
    finally:
        await subscription.close()


async def test_heartbeats_keep_idle_stream_alive(redis: FakeRedis) -> None:
    broadcaster = EventBroadcaster(redis, heartbeat_interval=0.05, retry_ms=1000, retry_config=FAST_RETRY)
    subscription = await broadcaster.subscribe("reviewer", identity=REVIEWER)
    frames = subscription.frames()
    try:
        await next_frame(frames)
        await next_frame(frames)

        first = parse_frame(await next_frame(frames))
        second = parse_frame(await next_frame(frames))

        assert first["type"] == "heartbeat"
        assert second["type"] == "heartbeat"
        assert datetime.fromisoformat(second["timestamp"]) >= datetime.fromisoformat(first["timestamp"])
    finally:
        await frames.aclose()


async def test_bus_outage_degrades_to_heartbeats(disconnected_redis: FakeRedis) -> None:
    broadcaster = EventBroadcaster(
        disconnected_redis, heartbeat_interval=0.05, retry_ms=1000, retry_config=FAST_RETRY
    )

    subscription = await broadcaster.subscribe("reviewer", identity=REVIEWER)
    frames = subscription.frames()
    try:
        assert not subscription.live
        await next_frame(frames)
        assert parse_frame(await next_frame(frames))["live"] is False
        assert parse_frame(await next_frame(frames))["type"] == "heartbeat"
    finally:
        await frames.aclose()


async def test_publish_failure_is_swallowed(disconnected_redis: FakeRedis) -> None:
    broadcaster = EventBroadcaster(disconnected_redis, retry_config=FAST_RETRY)

    assert await broadcaster.publish(scan_event()) == 0


async def test_client_disconnect_ends_stream(broadcaster: EventBroadcaster) -> None:
    subscription = await broadcaster.subscribe("reviewer", identity=REVIEWER)

    async def disconnected() -> bool:
        return True

    frames = [frame async for frame in subscription.frames(disconnected)]

    assert len(frames) == 2
    assert subscription.closed
    assert not subscription.live


async def test_close_is_idempotent_and_unsubscribes(broadcaster: EventBroadcaster, redis: FakeRedis) -> None:
    subscription = await broadcaster.subscribe("reviewer", identity=REVIEWER)
    channel = channel_for("reviewer")
    assert dict(await redis.pubsub_numsub(channel))[channel] == 1

    await asyncio.gather(subscription.close(), subscription.close(), subscription.close())
    await subscription.close()

    assert subscription.closed
    assert dict(await redis.pubsub_numsub(channel))[channel] == 0


async def test_closing_frames_generator_releases_subscription(broadcaster: EventBroadcaster) -> None:
    subscription = await broadcaster.subscribe("reviewer", identity=REVIEWER)
    frames = subscription.frames()
    await next_frame(frames)
    await next_frame(frames)

    await frames.aclose()

    assert subscription.closed


async def test_closed_subscription_stops_streaming(broadcaster: EventBroadcaster) -> None:
    subscription = await broadcaster.subscribe("reviewer", identity=REVIEWER)
    frames = subscription.frames()
    await next_frame(frames)
    await next_frame(frames)

    await subscription.close()

    with pytest.raises(StopAsyncIteration):
        await anext(frames)


async def test_dispatcher_publishes_in_background(broadcaster: EventBroadcaster, redis: FakeRedis) -> None:
    dispatcher = EventDispatcher(broadcaster)
    pubsub = redis.pubsub()
    await pubsub.subscribe(channel_for("reviewer"))
    try:
        task = dispatcher.dispatch(scan_event())
        await dispatcher.drain(timeout=5)

        assert task.result() == 1
        assert dispatcher.pending == 0
        message = await read_message(pubsub)
        assert json.loads(message["data"])["type"] == "scan:recorded"
    finally:
        await pubsub.aclose()


async def test_dispatcher_failure_never_reaches_caller(disconnected_redis: FakeRedis) -> None:
    dispatcher = EventDispatcher(EventBroadcaster(disconnected_redis, retry_config=FAST_RETRY))

    task = dispatcher.dispatch(scan_event())
    await dispatcher.drain(timeout=5)

    assert task.result() == 0
