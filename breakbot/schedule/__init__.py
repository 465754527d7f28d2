"""提醒调度引擎：cron 求值器与单计时器调度器。"""

from breakbot.schedule.cron import CronExpression, is_valid, next_match
from breakbot.schedule.errors import InvalidExpression, InvalidInterval, ScheduleError
from breakbot.schedule.service import ReminderScheduler
from breakbot.schedule.types import FireEvent, QuietWindow, ReminderMode, ScheduleConfig

__all__ = [
    "ReminderScheduler",
    "CronExpression",
    "next_match",
    "is_valid",
    "ScheduleError",
    "InvalidExpression",
    "InvalidInterval",
    "FireEvent",
    "QuietWindow",
    "ReminderMode",
    "ScheduleConfig",
]
