"""Main chime scheduler service.

This is the single entry point for all scheduler operations:
- start/stop of the repeating chime
- countdown and target display for the presentation layer
- configuration updates with persistence and restart
- event subscription
"""
from __future__ import annotations

import asyncio
from typing import Any, Callable

from loguru import logger

from ..schedule import countdown_snapshot, format_boundary, interval_to_human
from ..types import (
    ChimeConfig,
    ChimeError,
    ClockComputationError,
    CountdownSnapshot,
    SchedulerStatus,
)
from .events import EventEmitter, emit_event, EventTypes
from .json_store import JsonSettingsStore
from .state import (
    Clock,
    SchedulerOptions,
    SchedulerServiceDeps,
    SchedulerServiceState,
    Sound,
)
from . import timer

logger = logger.bind(module="scheduler.service")


class SchedulerService:
    """Chimes a configurable number of seconds before each interval boundary.

    States are Idle and Armed. ``start()`` arms, every firing re-arms from
    the current wall clock, ``stop()`` or an error returns to Idle.
    Errors never escape ``start()``; they leave the scheduler idle with a
    human-readable status message.
    """

    def __init__(
        self,
        clock: Clock,
        sound: Sound,
        settings_store: JsonSettingsStore | None = None,
        options: SchedulerOptions | None = None,
        config: ChimeConfig | None = None,
    ):
        """Initialize the scheduler service.

        Args:
            clock: Wall-clock source
            sound: Chime playback
            settings_store: Where configuration changes are persisted
            options: Missed-chime policy and tick cadence
            config: Initial configuration, defaults to 15 minutes / 20 seconds
        """
        self.deps = SchedulerServiceDeps(
            clock=clock,
            sound=sound,
            settings_store=settings_store,
        )
        self.options = options or SchedulerOptions()
        self.events = EventEmitter()
        self.state = SchedulerServiceState(config=config or ChimeConfig())

    @classmethod
    async def from_store(
        cls,
        clock: Clock,
        sound: Sound,
        settings_store: JsonSettingsStore,
        options: SchedulerOptions | None = None,
    ) -> SchedulerService:
        """Create a service configured from persisted settings."""
        config = await settings_store.load()
        return cls(clock, sound, settings_store=settings_store, options=options, config=config)

    # ============== Lifecycle ==============

    async def start(self, config: ChimeConfig | None = None) -> bool:
        """Start (or restart) chiming.

        Args:
            config: New configuration; keeps the current one when omitted

        Returns:
            True if the scheduler is armed
        """
        async with self.state.lock:
            return await self._start_locked(config)

    async def _start_locked(self, config: ChimeConfig | None = None) -> bool:
        await self._stop_locked()

        if config is not None:
            self.state.config = config

        try:
            timer.arm_timer(self)
        except ChimeError as e:
            self.fail(e)
            return False

        self.state.last_error = None
        self.state.status_message = "Chiming started!"
        emit_event(self.events, EventTypes.SCHEDULER_STARTED, self.state.config.to_dict())
        logger.info(f"Chime scheduler started: {interval_to_human(self.state.config)}")
        return True

    async def stop(self) -> None:
        """Stop chiming. Safe to call when already idle."""
        async with self.state.lock:
            await self._stop_locked()

    async def _stop_locked(self) -> None:
        if not self.state.active:
            return

        cancelled = timer.disarm_timer(self)
        for task in cancelled:
            try:
                await task
            except asyncio.CancelledError:
                pass

        self.state.status_message = "Chiming stopped"
        emit_event(self.events, EventTypes.SCHEDULER_STOPPED)
        logger.info("Chime scheduler stopped")

    def fail(self, error: Exception) -> None:
        """Degrade to Idle after an error, without retrying."""
        timer.disarm_timer(self)
        self.state.last_error = str(error)
        if isinstance(error, ClockComputationError):
            self.state.status_message = "Error calculating next chime time"
        else:
            self.state.status_message = f"Chime timer unavailable: {error}"
        emit_event(self.events, EventTypes.SCHEDULER_ERROR, {
            "error": str(error),
            "error_type": type(error).__name__,
        })
        logger.error(f"Chime scheduler stopped after error: {error}")

    def is_active(self) -> bool:
        return self.state.active

    # ============== Presentation ==============

    def current_countdown(self) -> CountdownSnapshot:
        """Time left until the next chime, derived from the live clock."""
        return countdown_snapshot(self.state.next_target_at, self.deps.clock.now())

    def current_target_display(self) -> str:
        """The boundary being chimed for, as HH:MM; empty when idle."""
        return format_boundary(self.state.next_boundary_at, self.deps.clock)

    def status(self) -> SchedulerStatus:
        """Snapshot of the scheduler for display."""
        state = self.state
        return SchedulerStatus(
            active=state.active,
            interval_minutes=state.config.interval_minutes,
            lead_seconds=state.config.lead_seconds,
            next_target_at=state.next_target_at,
            next_boundary_at=state.next_boundary_at,
            target_display=self.current_target_display(),
            countdown=self.current_countdown() if state.active else None,
            status_message=state.status_message,
            last_error=state.last_error,
            chime_count=state.chime_count,
            last_chime_at=state.last_chime_at,
        )

    @property
    def config(self) -> ChimeConfig:
        return self.state.config

    # ============== Configuration ==============

    async def update_config(self, config: ChimeConfig) -> bool:
        """Replace the configuration, persist it, and restart if chiming.

        Returns:
            True if the scheduler is armed afterwards
        """
        async with self.state.lock:
            self.state.config = config

            if self.deps.settings_store is not None:
                await self.deps.settings_store.save(config)

            emit_event(self.events, EventTypes.CONFIG_UPDATED, config.to_dict())
            logger.info(f"Settings updated: {interval_to_human(config)}")

            if self.state.active:
                return await self._start_locked(config)
            return False

    def play_test_sound(self) -> None:
        """Play the chime once without touching the schedule."""
        timer.play_sound(self)

    # ============== Event Handling ==============

    def on_event(self, handler: Callable[[Any], None]) -> None:
        """Register an event handler.

        Args:
            handler: Function to call when events are emitted
        """
        self.events.add_handler(handler)

    def off_event(self, handler: Callable[[Any], None]) -> None:
        """Unregister an event handler.

        Args:
            handler: Handler to remove
        """
        self.events.remove_handler(handler)
