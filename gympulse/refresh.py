"""
Periodic dashboard refresh.

Every refresh carries a generation token; a result is committed only if no
newer refresh started and the refresher was not closed in the meantime.
"""

import asyncio
import logging
from typing import Callable, List, Optional, Sequence, Tuple

from gympulse.checkins import CheckInStore
from gympulse.config import Config
from gympulse.directory import LocationDirectory
from gympulse.feature_engineering import now_ms
from gympulse.forecasting import generate_prediction_data, generate_trend_data, get_best_visit_window
from gympulse.models import CheckIn, DashboardState, LiveOccupancyReading, PredictionPoint, TrendPoint
from gympulse.occupancy import blend_occupancy
from gympulse.signals import SignalSource

logger = logging.getLogger(__name__)

SENSOR_UNAVAILABLE_MESSAGE = "Unable to reach sensor network."


class SensorUnavailableError(Exception):
    """Transient data-source failure; the next scheduled refresh retries."""


class DashboardRefresher:
    """Keeps a DashboardState current for the selected gym."""

    def __init__(
        self,
        gym_id: str,
        store: CheckInStore,
        directory: LocationDirectory,
        signal: SignalSource,
        interval_seconds: float = Config.REFRESH_INTERVAL_SECONDS,
        delay_seconds: float = Config.SIMULATED_DELAY_SECONDS,
        failure_rate: float = Config.SIMULATED_FAILURE_RATE,
        tz_name: str = Config.TIMEZONE,
        clock: Callable[[], int] = now_ms,
        check_in_source: Optional[Callable[[], Sequence[CheckIn]]] = None,
    ):
        self.store = store
        # Check-ins the live reading is blended from; defaults to this client's store
        self.check_in_source = check_in_source or (lambda: store.check_ins)
        self.directory = directory
        self.signal = signal
        self.interval_seconds = interval_seconds
        self.delay_seconds = delay_seconds
        self.failure_rate = failure_rate
        self.tz_name = tz_name
        self.clock = clock

        self.state = DashboardState(gym_id=gym_id)
        self._generation = 0
        self._closed = False
        self._wake = asyncio.Event()

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def closed(self) -> bool:
        return self._closed

    async def fetch_dashboard_data(
        self, gym_id: str
    ) -> Tuple[LiveOccupancyReading, List[TrendPoint], List[PredictionPoint]]:
        """
        Fetch a live reading, trend and predictions for one gym.

        Raises:
            SensorUnavailableError: When the simulated sensor network is unreachable
        """
        await asyncio.sleep(self.delay_seconds)

        if self.signal.chance(self.failure_rate):
            raise SensorUnavailableError(SENSOR_UNAVAILABLE_MESSAGE)

        now = self.clock()
        location = self.directory.get_location_by_id(gym_id)
        live = blend_occupancy(gym_id, self.check_in_source(), location, self.signal, now)
        trend = generate_trend_data(self.signal, now, self.tz_name)
        predictions = generate_prediction_data(self.signal, None, now, self.tz_name)
        return live, trend, predictions

    def _is_current(self, token: int) -> bool:
        return not self._closed and token == self._generation

    async def refresh(self) -> bool:
        """
        Run one refresh cycle.

        Returns:
            True if the result was committed to `state`
        """
        self._generation += 1
        token = self._generation
        gym_id = self.state.gym_id

        try:
            live, trend, predictions = await self.fetch_dashboard_data(gym_id)
        except SensorUnavailableError as e:
            if not self._is_current(token):
                return False
            logger.warning(f"Refresh for {gym_id} failed, retrying next cycle: {e}")
            self.state.error = str(e)
            self.state.loading = False
            return False

        if not self._is_current(token):
            logger.debug(f"Discarding stale refresh {token} (current {self._generation})")
            return False

        self.state = DashboardState(
            gym_id=gym_id,
            live=live,
            trend=trend,
            predictions=predictions,
            best_visit_text=get_best_visit_window(predictions),
            error="",
            loading=False,
        )
        return True

    def set_gym(self, gym_id: str) -> None:
        """Switch gyms; in-flight results for the old gym are discarded."""
        logger.info(f"Active gym changed to {gym_id}")
        self.state = DashboardState(gym_id=gym_id)
        self._generation += 1
        self._wake.set()

    def notify_check_ins_changed(self) -> None:
        """Request an immediate refresh after the check-in collection changed."""
        self._wake.set()

    def close(self) -> None:
        """Tear down; pending refreshes will not commit."""
        self._closed = True
        self._generation += 1
        self._wake.set()

    async def run(self, max_cycles: Optional[int] = None) -> None:
        """
        Refresh periodically until closed.

        Args:
            max_cycles: Stop after this many refreshes (None runs until closed)
        """
        cycles = 0
        while not self._closed:
            self._wake.clear()
            await self.refresh()
            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                break
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass
        logger.info(f"Refresh loop stopped after {cycles} cycles")
