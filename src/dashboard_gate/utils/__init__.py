"""Utility modules for the dashboard gate."""

from dashboard_gate.utils.exceptions import (
    DashboardGateError,
    ConfigurationError,
    NotificationError,
    SchedulerError,
)
from dashboard_gate.utils.logging import setup_logging

__all__ = [
    "DashboardGateError",
    "ConfigurationError",
    "NotificationError",
    "SchedulerError",
    "setup_logging",
]
