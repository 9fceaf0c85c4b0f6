"""Timer management for the chime scheduler.

Arms the one-shot alarm loop and the countdown tick loop, fires chimes and
re-arms from the then-current wall clock after every firing.
"""
import asyncio
from datetime import timezone
from typing import TYPE_CHECKING

from loguru import logger

from ..schedule import compute_next_chime, format_boundary
from ..types import (
    ChimeTarget,
    ClockComputationError,
    MissedChimePolicy,
    TimerArmingFailure,
)
from .events import emit_event, EventTypes

if TYPE_CHECKING:
    from .service import SchedulerService

logger = logger.bind(module="scheduler.timer")


def set_target(service: "SchedulerService", target: ChimeTarget) -> None:
    """Store a freshly computed target and announce it."""
    state = service.state
    state.next_target_at = target.target_at
    state.next_boundary_at = target.boundary_at
    state.status_message = "Next Westminster chime scheduled"

    boundary_display = format_boundary(target.boundary_at, service.deps.clock)
    logger.info(
        f"Chime armed for {target.target_at.isoformat()} "
        f"({service.state.config.lead_seconds}s before {boundary_display}), "
        f"in {target.delay_seconds:.0f}s"
    )
    emit_event(service.events, EventTypes.CHIME_ARMED, {
        "target_at": target.target_at.isoformat(),
        "boundary_at": target.boundary_at.isoformat(),
        "boundary_display": boundary_display,
        "delay_seconds": target.delay_seconds,
        "corrected": target.corrected,
    })


def arm_timer(service: "SchedulerService") -> None:
    """Compute the first target and start the alarm and tick loops.

    Raises:
        ClockComputationError: if the first target cannot be computed
        TimerArmingFailure: if the event loop refuses to schedule the loops
    """
    state = service.state
    clock = service.deps.clock

    target = compute_next_chime(state.config, clock.now(), clock)

    try:
        loop = asyncio.get_running_loop()
    except RuntimeError as e:
        raise TimerArmingFailure(f"No running event loop to arm the chime timer: {e}") from e

    state.active = True
    state.wake_event.clear()
    set_target(service, target)

    try:
        state.alarm_task = loop.create_task(alarm_loop(service), name="westminster-alarm")
        state.tick_task = loop.create_task(tick_loop(service), name="westminster-tick")
    except RuntimeError as e:
        disarm_timer(service)
        raise TimerArmingFailure(f"Failed to schedule chime timer: {e}") from e


def disarm_timer(service: "SchedulerService") -> list[asyncio.Task]:
    """Cancel the alarm and tick loops and clear the target.

    Cancellation is requested synchronously, so no further chime can fire
    once this returns. The caller's own task is never cancelled.

    Returns:
        Tasks that were cancelled and may still need to be awaited
    """
    state = service.state
    current = asyncio.current_task() if _loop_running() else None

    cancelled = []
    for task in (state.alarm_task, state.tick_task):
        if task is None or task.done() or task is current:
            continue
        task.cancel()
        cancelled.append(task)

    state.reset()
    return cancelled


def _loop_running() -> bool:
    try:
        asyncio.get_running_loop()
        return True
    except RuntimeError:
        return False


async def alarm_loop(service: "SchedulerService") -> None:
    """One-shot alarm, re-armed after every firing.

    This loop:
    1. Waits until the target instant (or until woken early by a tick)
    2. Re-reads the wall clock; waits again if the target is still ahead
    3. Fires the chime, subject to the missed-chime policy
    4. Computes the next target from the current time
    """
    state = service.state
    clock = service.deps.clock
    logger.debug("Alarm loop started")

    try:
        while state.active and state.next_target_at is not None:
            now = clock.now().astimezone(timezone.utc)
            remaining = (state.next_target_at - now).total_seconds()

            if remaining > 0:
                # Wait until the target or until a tick notices the clock moved
                state.wake_event.clear()
                try:
                    await asyncio.wait_for(state.wake_event.wait(), timeout=remaining)
                except asyncio.TimeoutError:
                    pass
                continue

            fire_chime(service, lateness_seconds=-remaining)

            try:
                target = compute_next_chime(state.config, clock.now(), clock)
            except ClockComputationError as e:
                service.fail(e)
                break
            set_target(service, target)

    except asyncio.CancelledError:
        logger.debug("Alarm loop cancelled")

    logger.debug("Alarm loop stopped")


def fire_chime(service: "SchedulerService", lateness_seconds: float) -> bool:
    """Play the chime for the current target.

    Args:
        service: The scheduler service
        lateness_seconds: How long after the target this is running

    Returns:
        True if the chime was played
    """
    state = service.state
    options = service.options
    clock = service.deps.clock
    target_at = state.next_target_at
    boundary_display = format_boundary(state.next_boundary_at, clock)

    catch_up = False
    if lateness_seconds > options.missed_grace_seconds:
        logger.warning(
            f"Chime for {boundary_display} missed by {lateness_seconds:.0f}s "
            f"(policy: {options.missed_policy.value})"
        )
        if options.missed_policy == MissedChimePolicy.SKIP:
            state.status_message = f"Missed chime before {boundary_display} skipped"
            emit_event(service.events, EventTypes.CHIME_SKIPPED, {
                "target_at": target_at.isoformat() if target_at else None,
                "boundary_display": boundary_display,
                "lateness_seconds": lateness_seconds,
            })
            return False
        catch_up = True

    play_sound(service)

    now = clock.now()
    state.chime_count += 1
    state.last_chime_at = now
    parts = clock.decompose(now)
    state.status_message = f"🔔 Chimed at {parts.hour:02d}:{parts.minute:02d}:{parts.second:02d}"

    logger.info(f"Chimed for {boundary_display}" + (" (catch-up)" if catch_up else ""))
    emit_event(service.events, EventTypes.CHIME_FIRED, {
        "target_at": target_at.isoformat() if target_at else None,
        "boundary_display": boundary_display,
        "lateness_seconds": lateness_seconds,
        "catch_up": catch_up,
    })
    return True


def play_sound(service: "SchedulerService") -> None:
    """Fire-and-forget playback; a broken sound never stops the scheduler."""
    try:
        service.deps.sound.play()
    except Exception as e:
        logger.error(f"Chime playback failed: {e}")


async def tick_loop(service: "SchedulerService") -> None:
    """Countdown tick on a fixed cadence.

    Each tick publishes the countdown and wakes the alarm loop once the
    wall clock has reached the target, which covers clock jumps and
    resumes from suspension.
    """
    state = service.state
    clock = service.deps.clock
    interval = service.options.tick_interval_seconds
    loop = asyncio.get_running_loop()
    next_tick = loop.time()

    try:
        while state.active:
            snapshot = service.current_countdown()

            target_at = state.next_target_at
            if target_at is not None and clock.now() >= target_at:
                state.wake_event.set()

            emit_event(service.events, EventTypes.COUNTDOWN_TICK, {
                **snapshot.to_dict(),
                "target_display": service.current_target_display(),
            })

            # Stay on cadence instead of drifting by the loop body's runtime
            next_tick += interval
            delay = next_tick - loop.time()
            if delay < 0:
                # Fell behind (process was blocked or suspended): resync
                next_tick = loop.time() + interval
                delay = interval
            await asyncio.sleep(delay)

    except asyncio.CancelledError:
        logger.debug("Tick loop cancelled")
