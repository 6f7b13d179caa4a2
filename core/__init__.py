"""
Core Module Package.

Shared infrastructure used by the scoring packages.

Components:
- clock: Unified, mockable time abstraction
"""

from .clock import ClockProtocol, MockClock, SystemClock, TickingClock

__all__ = [
    "ClockProtocol",
    "SystemClock",
    "MockClock",
    "TickingClock",
]
