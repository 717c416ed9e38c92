"""Read-only selectors returning frozen DTOs."""

from wbs_kernel.selectors.calendar_selector import CalendarSelector
from wbs_kernel.selectors.schedule_selector import ScheduleSelector
from wbs_kernel.selectors.wbs_selector import WbsSelector

__all__ = [
    "CalendarSelector",
    "ScheduleSelector",
    "WbsSelector",
]
