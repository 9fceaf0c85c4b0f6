"""Westminster Reminder: chimes a few seconds before each interval boundary."""

__version__ = "0.1.0"
