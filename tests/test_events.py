"""Tests for the build event channel."""

import json

from decknexus.models.events import BuildStage, ConnectedEvent, StageStartedEvent, encode_sse
from decknexus.services.events import EventChannel, RecordingSink


async def drain(channel: EventChannel) -> list:
    return [event async for event in channel]


class TestTerminalSemantics:
    async def test_nothing_after_complete(self) -> None:
        channel = EventChannel()
        channel.connected("Connected to deck builder")
        assert channel.complete({"totalCards": 100})
        assert not channel.fail("late failure")
        assert not channel.connected("late")

        events = await drain(channel)

        assert [e.type for e in events] == ["connected", "complete"]
        assert channel.terminated

    async def test_error_is_terminal(self) -> None:
        channel = EventChannel()
        channel.fail("Local AI service (LM Studio) is not running")
        channel.complete({})

        events = await drain(channel)

        assert [e.type for e in events] == ["error"]
        assert events[0].error.startswith("Local AI")


class TestProgress:
    async def test_progress_is_monotonic_per_stage(self) -> None:
        channel = EventChannel()
        channel.progress(BuildStage.SELECT_LANDS, 40, "a")
        channel.progress(BuildStage.SELECT_LANDS, 20, "b")
        channel.progress(BuildStage.PICK_CREATURES, 10, "c")
        channel.progress(BuildStage.SELECT_LANDS, 250, "d")
        channel.complete({})

        events = await drain(channel)

        assert [e.progress for e in events if e.type == "progress"] == [40, 40, 10, 100]

    async def test_negative_progress_clamped(self) -> None:
        channel = EventChannel()
        channel.progress(BuildStage.ADD_SPELLS, -5, "x")
        channel.complete({})

        events = await drain(channel)

        assert events[0].progress == 0


class TestDisconnect:
    async def test_close_drops_queued_and_future_events(self) -> None:
        channel = EventChannel()
        channel.connected("one")
        channel.stage_started(BuildStage.PROCESS_COMMANDER, "two")
        channel.close()

        assert not channel.stage_finished(BuildStage.PROCESS_COMMANDER, "three", {})
        assert not channel.complete({})
        assert await drain(channel) == []
        assert channel.closed


class TestRecordingSink:
    def test_keeps_order(self) -> None:
        sink = RecordingSink()
        sink.emit(ConnectedEvent(message="a"))
        sink.emit(ConnectedEvent(message="b"))

        assert [e.message for e in sink.events] == ["a", "b"]


class TestEncodeSse:
    def test_data_record(self) -> None:
        record = encode_sse(ConnectedEvent(message="hi"))

        assert record.startswith("data: ")
        assert record.endswith("\n\n")
        assert json.loads(record[len("data: ") :]) == {"type": "connected", "message": "hi"}

    def test_stage_uses_wire_name(self) -> None:
        record = encode_sse(StageStartedEvent(stage=BuildStage.SELECT_LANDS, message="m"))

        assert '"stage": "selectLands"' in record
