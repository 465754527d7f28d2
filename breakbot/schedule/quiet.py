"""作息时间门控：只在工作时段内、午休之外提醒。"""

from datetime import datetime, time

from breakbot.schedule.types import QuietWindow


def minutes_of_day(value: time | datetime) -> int:
    """自午夜起的分钟数（0-1439）。"""
    return value.hour * 60 + value.minute


def in_range(now_mins: int, start: int, end: int) -> bool:
    """
    检查 now_mins 是否落在半开区间 [start, end) 内。

    start >= end 表示区间跨越午夜。
    """
    if start < end:
        return start <= now_mins < end
    return now_mins >= start or now_mins < end


def is_allowed(window: QuietWindow, at: time | datetime) -> bool:
    """在工作时段内且不在午休时段内时允许提醒。"""
    now_mins = minutes_of_day(at)
    in_work = in_range(now_mins, minutes_of_day(window.work_start), minutes_of_day(window.work_end))
    if not in_work:
        return False
    in_lunch = in_range(now_mins, minutes_of_day(window.lunch_start), minutes_of_day(window.lunch_end))
    return not in_lunch
