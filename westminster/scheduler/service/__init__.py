"""Chime scheduler service package.

This package contains the core scheduler service components:
- state.py: State management and dependencies
- json_store.py: JSON file persistence for settings
- timer.py: Alarm and countdown tick loops
- events.py: Event system
"""
from .service import SchedulerService

__all__ = ["SchedulerService"]
