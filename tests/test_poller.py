"""Tests for the data link poller."""

import asyncio
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import List

import httpx
import pytest

from src.datalink.config import DeliveryMode, ListingConfig, PollConfig
from src.datalink.exceptions import PollerAlreadyRunningError, PollerError
from src.datalink.models import ItemKind, ListingItem, ListingResult, OutputKind
from src.datalink.poller import PollerState, PollScheduler

from conftest import file_obj, run


FIXED_NOW = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def listing(*names, resource_ref="s3://bucket"):
    return ListingResult(
        items=tuple(ListingItem(n, ItemKind.FILE) for n in names),
        resource_ref=resource_ref,
        resource_type="bucket",
        provider="aws",
    )


class FakeService:
    """ListingService stand-in returning scripted results."""

    def __init__(self, *results, delay: float = 0.0, has_credentials: bool = True):
        self.client = SimpleNamespace(has_credentials=has_credentials)
        self.results = list(results)
        self.delay = delay
        self.calls = 0
        self.active = 0
        self.max_active = 0

    async def list(self, config):
        self.calls += 1
        index = min(self.calls - 1, len(self.results) - 1)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        finally:
            self.active -= 1
        result = self.results[index]
        if isinstance(result, Exception):
            raise result
        return result


def make_poller(service, interval=60, mode=DeliveryMode.ALL_AND_CHANGES, once=False, name="link"):
    outputs: List[list] = []
    errors: List[Exception] = []
    config = PollConfig(
        listing=ListingConfig(data_link_name=name),
        interval_seconds=interval,
        delivery_mode=mode,
        once=once,
    )
    poller = PollScheduler(
        config,
        service,
        on_output=outputs.append,
        on_error=errors.append,
        clock=lambda: FIXED_NOW,
    )
    return poller, outputs, errors


class TestTick:
    """Tests for a single poll tick."""

    def test_first_tick_reports_no_changes(self):
        poller, outputs, _ = make_poller(FakeService(listing("a", "b")))

        result = run(poller.tick())

        all_output, added, removed = result
        assert all_output.kind is OutputKind.ALL
        assert all_output.names == ("a", "b")
        assert added is None
        assert removed is None
        assert outputs == [result]
        assert poller.previous_names == {"a", "b"}

    def test_second_tick_reports_added_and_removed(self):
        poller, outputs, _ = make_poller(FakeService(listing("a", "b"), listing("b", "c")))

        async def scenario():
            await poller.tick()
            return await poller.tick()

        all_output, added, removed = run(scenario())

        assert all_output.names == ("b", "c")
        assert added.kind is OutputKind.ADDED
        assert [i.name for i in added.items] == ["c"]
        assert added.paths == ["s3://bucket/c"]
        assert removed.kind is OutputKind.REMOVED
        assert removed.names == ("a",)
        assert removed.items == ()
        assert poller.previous_names == {"b", "c"}

    def test_unchanged_listing_has_null_placeholders(self):
        poller, _, _ = make_poller(FakeService(listing("a"), listing("a")))

        async def scenario():
            await poller.tick()
            return await poller.tick()

        assert run(scenario())[1:] == [None, None]

    def test_previous_replaced_every_tick(self):
        poller, outputs, _ = make_poller(FakeService(listing("a"), listing(), listing("a")))

        async def scenario():
            for _ in range(3):
                await poller.tick()

        run(scenario())

        assert outputs[1][2].names == ("a",)
        assert outputs[2][1].names == ("a",)

    def test_changes_only_mode(self):
        poller, _, _ = make_poller(
            FakeService(listing("a"), listing("b")), mode=DeliveryMode.CHANGES,
        )

        async def scenario():
            first = await poller.tick()
            second = await poller.tick()
            return first, second

        first, second = run(scenario())

        assert first == [None, None]
        assert len(second) == 2
        assert second[0].names == ("b",)
        assert second[1].names == ("a",)

    def test_all_output_schedule(self):
        poller, _, _ = make_poller(FakeService(listing("a")), interval="00:05:00")

        all_output = run(poller.tick())[0]

        assert all_output.interval_seconds == 300
        assert all_output.next_poll == "2026-01-01T12:05:00+00:00"
        assert all_output.to_payload()["nextPoll"] == "2026-01-01T12:05:00+00:00"

    def test_tick_failure_propagates(self):
        poller, outputs, _ = make_poller(FakeService(RuntimeError("boom")))

        with pytest.raises(RuntimeError):
            run(poller.tick())
        assert outputs == []
        assert poller.previous_names is None

    def test_reset_forgets_previous_snapshot(self):
        poller, _, _ = make_poller(FakeService(listing("a"), listing("b")))

        async def scenario():
            await poller.tick()
            poller.reset()
            return await poller.tick()

        all_output, added, removed = run(scenario())

        assert all_output.names == ("b",)
        assert added is None
        assert removed is None
        assert poller.previous_names == {"b"}

    def test_reset_before_first_tick(self):
        poller, _, _ = make_poller(FakeService(listing("a")))
        poller.reset()
        assert poller.previous_names is None

    def test_tick_against_platform(self, service, platform):
        platform.add_link()
        platform.set_pages("", [file_obj("a"), file_obj("b")])
        poller, _, _ = make_poller(service, name="my-data-link")

        async def scenario():
            await poller.tick()
            platform.set_pages("", [file_obj("b"), file_obj("c")])
            return await poller.tick()

        all_output, added, removed = run(scenario())

        assert [i.name for i in added.items] == ["c"]
        assert removed.names == ("a",)
        assert removed.paths == ["s3://my-bucket/a"]


class TestLifecycle:
    """Tests for poller start/stop behaviour."""

    def test_start_ticks_immediately(self):
        service = FakeService(listing("a"))
        poller, outputs, _ = make_poller(service)

        async def scenario():
            assert poller.start() is True
            await asyncio.sleep(0.05)
            state = poller.state
            poller.stop()
            await poller.wait()
            return state

        assert run(scenario()) is PollerState.SCHEDULED
        assert service.calls == 1
        assert len(outputs) == 1
        assert poller.state is PollerState.STOPPED

    def test_repeats_on_interval(self):
        service = FakeService(listing("a"))
        poller, outputs, _ = make_poller(service, interval=0.01)

        async def scenario():
            poller.start()
            await asyncio.sleep(0.1)
            poller.stop()
            await poller.wait()

        run(scenario())

        assert service.calls >= 2
        assert poller.tick_count == len(outputs)

    @pytest.mark.parametrize("name", ["", "   "])
    def test_not_started_without_name(self, name):
        service = FakeService(listing("a"))
        poller, _, _ = make_poller(service, name=name)

        async def scenario():
            return poller.start()

        assert run(scenario()) is False
        assert poller.state is PollerState.IDLE
        assert service.calls == 0

    def test_not_started_without_connection(self):
        poller, _, _ = make_poller(None)

        async def scenario():
            return poller.start()

        assert run(scenario()) is False

    def test_not_started_without_credentials(self):
        poller, _, _ = make_poller(FakeService(listing("a"), has_credentials=False))

        async def scenario():
            return poller.start()

        assert run(scenario()) is False

    def test_start_twice(self):
        poller, _, _ = make_poller(FakeService(listing("a")))

        async def scenario():
            poller.start()
            try:
                with pytest.raises(PollerAlreadyRunningError):
                    poller.start()
            finally:
                poller.stop()
                await poller.wait()

        run(scenario())

    def test_failure_stops_polling(self):
        error = httpx.ConnectError("unreachable")
        service = FakeService(error)
        poller, outputs, errors = make_poller(service, interval=0.01)

        async def scenario():
            poller.start()
            await asyncio.sleep(0.1)
            await poller.wait()

        run(scenario())

        assert poller.state is PollerState.STOPPED
        assert poller.last_error is error
        assert errors == [error]
        assert outputs == []
        assert service.calls == 1

    def test_once_stops_after_first_tick(self):
        service = FakeService(listing("a"))
        poller, outputs, _ = make_poller(service, interval=0.01, once=True)

        async def scenario():
            poller.start()
            await poller.wait()

        run(scenario())

        assert service.calls == 1
        assert len(outputs) == 1
        assert poller.state is PollerState.STOPPED

    def test_ticks_overlap_when_slow(self):
        service = FakeService(listing("a"), delay=0.05)
        poller, _, _ = make_poller(service, interval=0.01)

        async def scenario():
            poller.start()
            await asyncio.sleep(0.04)
            assert poller.state is PollerState.TICKING
            poller.stop()
            await poller.wait()

        run(scenario())

        assert service.max_active > 1

    def test_stop_does_not_abort_in_flight_tick(self):
        service = FakeService(listing("a", "b"), delay=0.05)
        poller, outputs, _ = make_poller(service)

        async def scenario():
            poller.start()
            await asyncio.sleep(0.01)
            poller.stop()
            await poller.wait()

        run(scenario())

        assert poller.state is PollerState.STOPPED
        assert len(outputs) == 1
        assert poller.previous_names == {"a", "b"}

    def test_tick_after_stop(self):
        poller, _, _ = make_poller(FakeService(listing("a")))
        poller.stop()

        with pytest.raises(PollerError):
            run(poller.tick())

    def test_stop_before_start(self):
        poller, _, _ = make_poller(FakeService(listing("a")))
        poller.stop()
        poller.stop()
        assert poller.state is PollerState.STOPPED

    def test_context_manager(self):
        service = FakeService(listing("a"))
        poller, outputs, _ = make_poller(service)

        async def scenario():
            async with poller:
                await asyncio.sleep(0.02)
            await poller.wait()

        run(scenario())

        assert poller.state is PollerState.STOPPED
        assert len(outputs) == 1

    def test_start_after_stop_rejected(self):
        service = FakeService(listing("a"))
        poller, outputs, _ = make_poller(service, interval=0.01)

        async def scenario():
            poller.stop()
            with pytest.raises(PollerError):
                poller.start()
            await asyncio.wait_for(poller.wait(), timeout=1)

        run(scenario())

        assert poller.state is PollerState.STOPPED
        assert service.calls == 0
        assert outputs == []

    def test_stop_cancels_timer_after_restart_attempt(self):
        service = FakeService(listing("a"))
        poller, _, _ = make_poller(service, interval=0.01)

        async def scenario():
            poller.start()
            await asyncio.sleep(0.02)
            poller.stop()
            with pytest.raises(PollerError):
                poller.start()
            poller.stop()
            await asyncio.wait_for(poller.wait(), timeout=1)
            calls = service.calls
            await asyncio.sleep(0.05)
            return calls

        calls_at_stop = run(scenario())

        assert poller.state is PollerState.STOPPED
        assert service.calls == calls_at_stop
