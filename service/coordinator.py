"""
Settings/refresh coordinator.

Owns the one QuerySettings value and the latest LoadResult, debounces setting
changes into a single delayed refresh, drops refreshes requested while one is
in flight, and fans each successful result out to every view so they can
never disagree. A failed refresh leaves the previous result and views alone.

States:
    Idle                nothing scheduled, nothing in flight
    Pending(deadline)   debounce timer armed
    Refreshing(seq)     a load is in flight (a timer may also be armed)
"""
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from core import styling
from core.config import AUTO_REFRESH_INTERVAL_SECONDS, DEBOUNCE_DELAY_SECONDS
from core.errors import LOAD_ERRORS
from core.models import LoadResult
from core.settings import Effect, QuerySettings, apply_setting
from service.api_client import ApiClient
from service.loader import load_layer
from service.scheduler import ScheduledTask, Scheduler, ThreadingScheduler
from service.views import InMemoryMapSource, JsonTreeView, MapSource, StatsPanel, TableView, log_notice

logger = logging.getLogger(__name__)

LOAD_FAILED_NOTICE = "Failed to load data. Please try again."

# Raised while shaping an off-shape payload (pydantic ValidationError is a ValueError)
SHAPING_ERRORS = (ValueError, TypeError, AttributeError, KeyError)


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Pending:
    deadline: float


@dataclass(frozen=True)
class Refreshing:
    sequence: int


CoordinatorState = Union[Idle, Pending, Refreshing]


class RefreshCoordinator:
    def __init__(
        self,
        api_client: ApiClient,
        settings: Optional[QuerySettings] = None,
        scheduler: Optional[Scheduler] = None,
        map_source: Optional[MapSource] = None,
        table_view: Optional[TableView] = None,
        json_view: Optional[JsonTreeView] = None,
        stats_panel: Optional[StatsPanel] = None,
        notify: Callable[[str], None] = log_notice,
        loader: Callable[[QuerySettings, ApiClient], LoadResult] = load_layer,
        debounce_delay: float = DEBOUNCE_DELAY_SECONDS,
        auto_refresh_interval: float = AUTO_REFRESH_INTERVAL_SECONDS,
    ):
        self.api_client = api_client
        self.settings = settings or QuerySettings()
        self.scheduler = scheduler or ThreadingScheduler()
        self.map_source = map_source if map_source is not None else InMemoryMapSource()
        self.table_view = table_view or TableView()
        self.json_view = json_view or JsonTreeView()
        self.stats_panel = stats_panel or StatsPanel()
        self.notify = notify
        self.loader = loader
        self.debounce_delay = debounce_delay
        self.auto_refresh_interval = auto_refresh_interval

        self.result: Optional[LoadResult] = None

        self._lock = threading.Lock()
        self._debounce_task: Optional[ScheduledTask] = None
        self._debounce_deadline: Optional[float] = None
        self._auto_task: Optional[ScheduledTask] = None
        self._in_flight: Optional[int] = None
        self._sequence = 0
        self._accepted_sequence = 0

    # ========================================================================
    # State
    # ========================================================================

    @property
    def state(self) -> CoordinatorState:
        with self._lock:
            if self._in_flight is not None:
                return Refreshing(self._in_flight)
            if self._debounce_deadline is not None:
                return Pending(self._debounce_deadline)
            return Idle()

    @property
    def is_refreshing(self) -> bool:
        return isinstance(self.state, Refreshing)

    # ========================================================================
    # Settings
    # ========================================================================

    def update_setting(self, name: str, value: Any) -> Effect:
        """Apply one UI change; any real change (re)arms the debounce timer."""
        with self._lock:
            self.settings, effect = apply_setting(self.settings, name, value)
            if effect is Effect.DEBOUNCED_REFRESH:
                self._arm_debounce()
        return effect

    def _arm_debounce(self):
        if self._debounce_task is not None:
            self._debounce_task.cancel()
        self._debounce_deadline = self.scheduler.now() + self.debounce_delay
        self._debounce_task = self.scheduler.call_later(self.debounce_delay, self._on_debounce)

    def _disarm_debounce(self):
        if self._debounce_task is not None:
            self._debounce_task.cancel()
        self._debounce_task = None
        self._debounce_deadline = None

    def _on_debounce(self):
        with self._lock:
            self._debounce_task = None
            self._debounce_deadline = None
        self.refresh()

    # ========================================================================
    # Refresh
    # ========================================================================

    def refresh_now(self) -> bool:
        """Manual refresh: skip the debounce wait."""
        with self._lock:
            self._disarm_debounce()
        return self.refresh()

    def refresh(self) -> bool:
        """
        Load data for the current settings and update every view.

        Returns:
            True if a new result was accepted. False when skipped (already
            loading), failed, or superseded by a newer response.
        """
        with self._lock:
            if self._in_flight is not None:
                logger.info("Already loading data, skipping...")
                return False
            self._sequence += 1
            sequence = self._sequence
            self._in_flight = sequence
            settings = self.settings

        logger.info(f"Loading data with settings: {settings.as_dict()}")
        try:
            result = self.loader(settings, self.api_client)
        except LOAD_ERRORS as e:
            logger.error(f"Failed to load data: {e}")
            self.notify(LOAD_FAILED_NOTICE)
            return False
        except SHAPING_ERRORS as e:
            # malformed features or properties
            logger.error(f"Failed to process data: {e}", exc_info=True)
            self.notify(LOAD_FAILED_NOTICE)
            return False
        finally:
            with self._lock:
                self._in_flight = None

        return self._accept(result, sequence, settings)

    def _accept(self, result: LoadResult, sequence: int, settings: QuerySettings) -> bool:
        with self._lock:
            if sequence <= self._accepted_sequence:
                logger.info(f"Discarding stale response #{sequence} (have #{self._accepted_sequence})")
                return False
            self._accepted_sequence = sequence
            self.result = LoadResult(
                data=result.data,
                metadata=result.metadata,
                stats=result.stats,
                data_source=result.data_source,
                sequence=sequence,
            )
            self._render(self.result, settings)

        logger.info(f"Data loaded successfully: {result.stats.as_dict()}")
        return True

    def _render(self, result: LoadResult, settings: QuerySettings):
        set_layers = getattr(self.map_source, "set_layers", None)
        if set_layers is not None:
            set_layers(styling.layers_for(
                result.data_source, settings.show_both_spoofing_layers, settings.severity_scheme
            ))
        self.map_source.set_data(result.data)
        self.table_view.update(result.data)
        self.json_view.update(result.data)
        self.stats_panel.update(result)

    # ========================================================================
    # Auto-refresh + table
    # ========================================================================

    def start_auto_refresh(self, interval: Optional[float] = None):
        if interval is not None:
            self.auto_refresh_interval = interval
        self.stop_auto_refresh()
        with self._lock:
            self._auto_task = self.scheduler.call_later(self.auto_refresh_interval, self._on_auto_refresh)
        logger.info(f"Auto-refresh started (every {self.auto_refresh_interval:g}s)")

    def stop_auto_refresh(self):
        with self._lock:
            if self._auto_task is None:
                return
            self._auto_task.cancel()
            self._auto_task = None
        logger.info("Auto-refresh stopped")

    def _on_auto_refresh(self):
        with self._lock:
            if self._auto_task is None:
                return
            self._auto_task = self.scheduler.call_later(self.auto_refresh_interval, self._on_auto_refresh)
        self.refresh()

    def sort_table(self, column: str):
        self.table_view.sort_by(column)
