"""Tests for correlation isolation, cleanup and cancellation."""

import pytest

from blockstream.document import SCAFFOLD_TYPE
from blockstream.sessions import SessionStatus
from blockstream.stream import OutcomeStatus

from conftest import SUBJECT_ID, paragraph_json, texts


class TestCorrelationIsolation:
    """Events of other sessions never touch the document."""

    @pytest.mark.asyncio
    async def test_superseded_session_events_are_dropped(
        self, controller, channel, document, events, request_node
    ):
        """Events from a cancelled session are ignored by its successor."""
        old = await controller.start("First", request_node.handle)
        controller.cancel("restart")
        new = await controller.start("Second", request_node.handle)
        old_ev = events.bind(old.correlation_id)
        new_ev = events.bind(new.correlation_id)

        await channel.deliver(*new_ev.announce(0))
        version = document.version

        for event in (
            old_ev.announce(0),
            old_ev.announce(1),
            old_ev.finalize(0, paragraph_json("Stale")),
            old_ev.error("stale", recoverable=False),
            old_ev.complete(),
        ):
            assert controller.dispatch(*event) is False

        assert document.version == version
        assert controller.state is SessionStatus.STREAMING
        assert controller.session is new

    @pytest.mark.asyncio
    async def test_interleaved_stale_events_do_not_disturb_stream(
        self, controller, channel, document, events, request_node, outcomes
    ):
        session = await controller.start("Write", request_node.handle)
        ev = events.bind(session.correlation_id)
        stray = events.bind("req_someone_else")

        await channel.deliver(*ev.announce(0))
        await channel.deliver(*stray.announce(1))
        await channel.deliver(*stray.finalize(0, paragraph_json("Stray")))
        await channel.deliver(*ev.finalize(0, paragraph_json("Real")))
        await channel.deliver(*stray.error("boom", recoverable=False))
        await channel.deliver(*ev.complete())

        assert texts(document) == ["Intro", "Real", "Outro"]
        assert [o.status for o in outcomes] == [OutcomeStatus.COMPLETED]

    @pytest.mark.asyncio
    async def test_foreign_subject_is_dropped(
        self, controller, channel, document, events, request_node
    ):
        """The subject id must match as well as the request id."""
        session = await controller.start("Write", request_node.handle)
        foreign = events.bind(session.correlation_id, subject_id="assignment-2")

        assert controller.dispatch(*foreign.announce(0)) is False
        assert document.nodes_of_type(SCAFFOLD_TYPE) == []
        assert controller.state is SessionStatus.AWAITING_CHANNEL

    @pytest.mark.asyncio
    async def test_registry_supersede_stops_the_stream(
        self, controller, channel, document, events, request_node, registry
    ):
        """A session superseded in a shared registry no longer accepts events."""
        session = await controller.start("Write", request_node.handle)
        ev = events.bind(session.correlation_id)
        await channel.deliver(*ev.announce(0))

        registry.open(SUBJECT_ID)

        assert controller.dispatch(*ev.announce(1)) is False
        assert len(document.nodes_of_type(SCAFFOLD_TYPE)) == 1

    @pytest.mark.asyncio
    async def test_events_before_start_are_dropped(self, controller, document, events):
        version = document.version

        assert controller.dispatch(*events.bind("req_early").announce(0)) is False
        assert document.version == version


class TestIdempotentCleanup:
    """Terminal cleanup can run any number of times."""

    @pytest.mark.asyncio
    async def test_late_error_after_complete_changes_nothing(
        self, controller, channel, document, events, request_node, outcomes
    ):
        session = await controller.start("Write", request_node.handle)
        ev = events.bind(session.correlation_id)
        await channel.deliver(*ev.announce(0))
        await channel.deliver(*ev.announce(1))
        await channel.deliver(*ev.finalize(0, paragraph_json("Kept")))
        await channel.deliver(*ev.complete())
        snapshot = document.to_json()
        version = document.version

        await channel.deliver(*ev.error("late", recoverable=False))
        await channel.deliver(*ev.complete())

        assert document.to_json() == snapshot
        assert document.version == version
        assert len(outcomes) == 1

    @pytest.mark.asyncio
    async def test_cleanup_twice_matches_once(self, controller, channel, document, events, request_node):
        session = await controller.start("Write", request_node.handle)
        ev = events.bind(session.correlation_id)
        await channel.deliver(*ev.announce(0))
        await channel.deliver(*ev.announce(1))

        assert controller.cleanup() == 2
        snapshot = document.to_json()

        assert controller.cleanup() == 0
        assert document.to_json() == snapshot

    def test_cleanup_without_session(self, controller, document):
        version = document.version

        assert controller.cleanup() == 0
        assert document.version == version


class TestCancellation:
    """Host and document driven cancellation."""

    @pytest.mark.asyncio
    async def test_host_cancel(self, controller, channel, document, events, request_node, outcomes):
        session = await controller.start("Write", request_node.handle)
        ev = events.bind(session.correlation_id)
        await channel.deliver(*ev.announce(0))

        outcome = controller.cancel("Stopped by user")

        assert outcome.status is OutcomeStatus.CANCELLED
        assert outcome.code == "CANCELLED"
        assert outcome.message == "Stopped by user"
        assert outcome.scaffolds_removed == 1
        assert outcomes == [outcome]
        assert document.nodes_of_type(SCAFFOLD_TYPE) == []
        assert document.contains(request_node.handle)
        assert controller.state is SessionStatus.IDLE

        assert controller.dispatch(*ev.finalize(0, paragraph_json("Late"))) is False

    def test_cancel_when_idle_is_a_no_op(self, controller, outcomes):
        assert controller.cancel() is None
        assert outcomes == []

    @pytest.mark.asyncio
    async def test_removing_request_node_cancels(
        self, controller, channel, document, events, request_node, outcomes
    ):
        """Deleting the request node mid-stream aborts the session."""
        session = await controller.start("Write", request_node.handle)
        ev = events.bind(session.correlation_id)
        await channel.deliver(*ev.announce(0))
        await channel.deliver(*ev.finalize(0, paragraph_json("Done")))
        await channel.deliver(*ev.announce(1))

        with document.transaction() as tr:
            tr.delete(request_node.handle)

        assert [o.status for o in outcomes] == [OutcomeStatus.CANCELLED]
        assert outcomes[0].message == "Request node removed"
        assert document.nodes_of_type(SCAFFOLD_TYPE) == []
        assert texts(document) == ["Intro", "Done", "Outro"]

        await channel.deliver(*ev.announce(2))
        assert document.nodes_of_type(SCAFFOLD_TYPE) == []

    @pytest.mark.asyncio
    async def test_detach_cancels_and_stops_listening(
        self, controller, channel, document, events, request_node, outcomes
    ):
        session = await controller.start("Write", request_node.handle)
        await channel.deliver(*events.bind(session.correlation_id).announce(0))

        controller.detach()
        with document.transaction() as tr:
            tr.delete(request_node.handle)

        assert [o.status for o in outcomes] == [OutcomeStatus.CANCELLED]


class TestMalformedEvents:
    """Invalid wire payloads are dropped at the dispatch point."""

    @pytest.mark.asyncio
    async def test_invalid_payloads_are_dropped(
        self, controller, document, events, request_node, logger
    ):
        session = await controller.start("Write", request_node.handle)
        ev = events.bind(session.correlation_id)
        name, data = ev.announce(0)
        version = document.version

        assert controller.dispatch(name, {**data, "blockIndex": -1}) is False
        assert controller.dispatch(name, {"blockIndex": 0, "blockType": "paragraph"}) is False
        assert controller.dispatch(*ev.finalize(0, {"type": "text"})) is False
        assert controller.dispatch(name, ["not", "an", "object"]) is False

        assert document.version == version
        assert controller.state is SessionStatus.AWAITING_CHANNEL
        assert "Malformed event dropped" in logger.messages("warning")

    @pytest.mark.asyncio
    async def test_unknown_event_name_is_ignored(self, controller, events, request_node):
        session = await controller.start("Write", request_node.handle)
        _, data = events.bind(session.correlation_id).complete()

        assert controller.dispatch("block-progress", data) is False
        assert controller.state is SessionStatus.AWAITING_CHANNEL
