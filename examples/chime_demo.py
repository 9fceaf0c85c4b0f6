"""Chime demo: run the scheduler against the system clock and print its events.

This example demonstrates:
- Wiring SystemClock and a sound backend into SchedulerService
- Subscribing to lifecycle, chime and countdown events
- Restarting with a new configuration while armed
"""
import asyncio
import os
import sys

from loguru import logger

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from westminster.clock import SystemClock
from westminster.scheduler import (
    ChimeConfig,
    EventTypes,
    SchedulerEvent,
    SchedulerService,
    interval_to_human,
)
from westminster.sound import BellSound


def print_event(event: SchedulerEvent) -> None:
    if event.type == EventTypes.COUNTDOWN_TICK:
        payload = event.payload
        print(f"\r  {payload['display']:>8} until the {payload['target_display']} chime", end="")
        return
    print()
    logger.info(f"[{event.type}] {event.payload}")


async def main():
    scheduler = SchedulerService(clock=SystemClock(), sound=BellSound())
    scheduler.on_event(print_event)

    # 1. Start with the defaults (every 15 minutes, 20 seconds early)
    await scheduler.start()
    logger.info(interval_to_human(scheduler.config))
    await asyncio.sleep(3)

    # 2. Switch to hourly with a 10 second lead; the schedule restarts
    await scheduler.update_config(ChimeConfig(interval_minutes=60, lead_seconds=10))
    logger.info(interval_to_human(scheduler.config))

    # 3. Keep running (Ctrl+C to stop)
    try:
        while True:
            await asyncio.sleep(60)
    finally:
        await scheduler.stop()
        logger.info("Scheduler stopped!")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
