"""Repeating data link poller that reports additions and removals."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, List, Optional, Set

from .config import DeliveryMode, PollConfig
from .differ import SnapshotDiffer
from .exceptions import PollerAlreadyRunningError, PollerError
from .models import ListingResult, OutputKind, PollOutput, PollState, SnapshotDelta
from .service import ListingService

logger = logging.getLogger(__name__)


class PollerState(Enum):
    """Lifecycle states of a poller."""
    IDLE = "idle"
    SCHEDULED = "scheduled"
    TICKING = "ticking"
    STOPPED = "stopped"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PollScheduler:
    """
    Lists a data link on a timer and diffs each listing against the last.

    The first tick runs as soon as the poller starts, then one per
    interval. Ticks are not serialized: a tick slower than the interval
    overlaps the next one. Stopping cancels the timer only; a tick
    already in flight completes and may still replace the previous
    snapshot and deliver its outputs.

    Each tick delivers ``[all, added, removed]`` (or ``[added, removed]``
    in CHANGES mode) to on_output, with None standing in for an empty
    added or removed channel.
    """

    def __init__(
        self,
        config: PollConfig,
        service: Optional[ListingService],
        on_output: Callable[[List[Optional[PollOutput]]], None],
        on_error: Optional[Callable[[Exception], None]] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Initialize the poller.

        Args:
            config: Poll configuration
            service: Listing service used on every tick
            on_output: Receives the output channels of each tick
            on_error: Receives the exception of a failed tick
            clock: Source of the current time for next-poll stamps
        """
        self.config = config
        self._service = service
        self._on_output = on_output
        self._on_error = on_error
        self._clock = clock
        self._differ = SnapshotDiffer()

        self._poll_state: Optional[PollState] = None
        self._ticks: Set[asyncio.Task] = set()
        self._in_flight = 0
        self._started = False
        self._stopped = False

        self.tick_count = 0
        self.last_error: Optional[Exception] = None

    # ── Lifecycle ────────────────────────────────────────────────

    @property
    def state(self) -> PollerState:
        if self._stopped:
            return PollerState.STOPPED
        if not self._started:
            return PollerState.IDLE
        if self._in_flight:
            return PollerState.TICKING
        return PollerState.SCHEDULED

    @property
    def is_running(self) -> bool:
        return self.state in (PollerState.SCHEDULED, PollerState.TICKING)

    @property
    def previous_names(self):
        return self._poll_state.previous_names if self._poll_state else None

    def start(self) -> bool:
        """
        Start polling. Must be called from within a running event loop.

        Returns:
            True if polling started, False if the poller has no target
            data link or no usable connection

        Raises:
            PollerAlreadyRunningError: If start was already called
            PollerError: If the poller has been stopped
        """
        if self._stopped:
            raise PollerError("Poller has been stopped")
        if self._started:
            raise PollerAlreadyRunningError("Poller has already been started")

        name = self.config.listing.data_link_name
        if not name or not str(name).strip():
            logger.warning("Data link poller not started: no data link name configured")
            return False
        if self._service is None or not self._service.client.has_credentials:
            logger.warning("Data link poller not started: no platform connection configured")
            return False

        loop = asyncio.get_running_loop()
        self._started = True
        self._poll_state = self._poll_state or PollState(interval_seconds=self.config.interval_seconds)
        self._poll_state.timer = loop.create_task(self._run_timer())

        logger.info(
            "Polling data link '%s' every %.0fs (%s)",
            name, self.config.interval_seconds, self.config.delivery_mode.name,
        )
        return True

    def stop(self) -> None:
        """Stop scheduling ticks. A tick already running is not aborted."""
        if self._poll_state and self._poll_state.timer and not self._poll_state.timer.done():
            self._poll_state.timer.cancel()
        if self._stopped:
            return
        self._stopped = True
        logger.info("Stopped polling data link '%s'", self.config.listing.data_link_name)

    def reset(self) -> None:
        """Forget the previous snapshot so the next tick reports no changes."""
        if self._poll_state is not None:
            self._poll_state.reset()
            logger.info("Reset snapshot for data link '%s'", self.config.listing.data_link_name)

    async def wait(self) -> None:
        """Wait for the timer to end and for every in-flight tick to finish."""
        if self._poll_state and self._poll_state.timer:
            await asyncio.gather(self._poll_state.timer, return_exceptions=True)
        while self._ticks:
            await asyncio.gather(*list(self._ticks), return_exceptions=True)

    async def __aenter__(self) -> "PollScheduler":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    # ── Timer ────────────────────────────────────────────────────

    async def _run_timer(self) -> None:
        while True:
            self._spawn_tick()
            if self.config.once:
                return
            await asyncio.sleep(self.config.interval_seconds)

    def _spawn_tick(self) -> None:
        task = asyncio.get_running_loop().create_task(self._run_tick())
        self._ticks.add(task)
        task.add_done_callback(self._ticks.discard)

    async def _run_tick(self) -> None:
        if self._stopped:
            return
        try:
            await self.tick()
        except Exception as e:
            self.last_error = e
            logger.error(
                "Data link poll failed for '%s': %s",
                self.config.listing.data_link_name, e, exc_info=True,
            )
            self.stop()
            if self._on_error:
                self._on_error(e)
            return

        if self.config.once:
            self.stop()

    # ── Tick ─────────────────────────────────────────────────────

    async def tick(self) -> List[Optional[PollOutput]]:
        """
        Run one list-and-diff cycle and deliver its outputs.

        Returns:
            The delivered output channels

        Raises:
            PollerError: If the poller has no listing service or was stopped
        """
        if self._service is None:
            raise PollerError("Poller has no listing service")
        if self._stopped:
            raise PollerError("Poller has been stopped")

        if self._poll_state is None:
            self._poll_state = PollState(interval_seconds=self.config.interval_seconds)
        state = self._poll_state

        self._in_flight += 1
        try:
            result = await self._service.list(self.config.listing)
        finally:
            self._in_flight -= 1

        current = result.name_set()
        delta = self._differ.diff(current, state.previous_names)
        state.previous_names = current

        outputs = self._compose(result, delta, state.interval_seconds)
        self.tick_count += 1
        logger.debug(
            "Tick %d: %d item(s), %d added, %d removed",
            self.tick_count, len(result), len(delta.added), len(delta.removed),
        )
        self._on_output(outputs)
        return outputs

    def _compose(
        self,
        result: ListingResult,
        delta: SnapshotDelta,
        interval_seconds: float,
    ) -> List[Optional[PollOutput]]:
        common = dict(
            resource_ref=result.resource_ref,
            resource_type=result.resource_type,
            provider=result.provider,
        )

        next_poll = self._clock() + timedelta(seconds=interval_seconds)
        all_output = PollOutput(
            kind=OutputKind.ALL,
            items=result.items,
            names=tuple(result.names),
            next_poll=next_poll.isoformat(),
            interval_seconds=interval_seconds,
            **common,
        )

        added_output = None
        added_items = self._differ.added_items(result.items, delta)
        if added_items:
            added_output = PollOutput(
                kind=OutputKind.ADDED,
                items=tuple(added_items),
                names=tuple(item.name for item in added_items),
                **common,
            )

        removed_output = None
        if delta.removed:
            removed_output = PollOutput(
                kind=OutputKind.REMOVED,
                names=tuple(sorted(delta.removed)),
                **common,
            )

        if self.config.delivery_mode is DeliveryMode.ALL_AND_CHANGES:
            return [all_output, added_output, removed_output]
        return [added_output, removed_output]
