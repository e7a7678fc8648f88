"""
Background jobs.
"""
from kindred.services.scheduler.housekeeping import (
    get_scheduler,
    run_housekeeping,
    start_housekeeping,
    stop_housekeeping,
)

__all__ = ["get_scheduler", "run_housekeeping", "start_housekeeping", "stop_housekeeping"]
