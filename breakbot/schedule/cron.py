"""
Cron 表达式求值器。

标准 Cron 格式：分 时 日 月 周
示例：30 * * * *（每小时的第 30 分）
示例：*/15 * * * *（每 15 分钟）

五个字段必须同时匹配（逻辑 AND）。与传统 cron 不同，
"日" 和 "周" 同时受限时也不会退化为 OR。
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterator

from breakbot.schedule.errors import InvalidExpression

# (名称, 最小值, 最大值)
FIELDS: tuple[tuple[str, int, int], ...] = (
    ("minute", 0, 59),
    ("hour", 0, 23),
    ("day", 1, 31),
    ("month", 1, 12),
    ("weekday", 0, 6),  # 0 = 周日
)

# 向后查找的上限
SEARCH_YEARS = 1

_STEP = re.compile(r"^(\*|\d+)/(\d+)$")
_LIST = re.compile(r"^\d+(?:,\d+)+$")
_RANGE = re.compile(r"^(\d+)-(\d+)$")
_LITERAL = re.compile(r"^\d+$")


def is_field_valid(field: str) -> bool:
    """检查单个字段是否符合支持的语法之一。"""
    if field == "*":
        return True
    step = _STEP.match(field)
    if step:
        return int(step.group(2)) > 0
    return bool(_LIST.match(field) or _RANGE.match(field) or _LITERAL.match(field))


def field_matches(field: str, value: int, lo: int, hi: int) -> bool:
    """
    检查单个字段是否匹配给定的日历分量。

    无法识别的字段不会引发异常，只是永远不匹配。

    参数：
        field：字段文本，例如 "*"、"*/15"、"5/10"、"1,3,5"、"1-5"、"30"。
        value：日历分量的值。
        lo：字段的最小值。
        hi：字段的最大值。
    """
    if value < lo or value > hi:
        return False
    if field == "*":
        return True

    step = _STEP.match(field)
    if step:
        base, interval = step.group(1), int(step.group(2))
        if interval <= 0:
            return False
        if base == "*":
            return (value - lo) % interval == 0
        start = int(base)
        return value >= start and (value - start) % interval == 0

    if _LIST.match(field):
        return value in {int(part) for part in field.split(",")}

    rng = _RANGE.match(field)
    if rng:
        return int(rng.group(1)) <= value <= int(rng.group(2))

    if _LITERAL.match(field):
        return int(field) == value

    return False


def cron_weekday(dt: datetime) -> int:
    """将日期的星期转换为 cron 约定（0 = 周日）。"""
    return dt.isoweekday() % 7


def _add_years(dt: datetime, years: int) -> datetime:
    try:
        return dt.replace(year=dt.year + years)
    except ValueError:
        # 2 月 29 日
        return dt.replace(year=dt.year + years, day=28)


@dataclass(frozen=True)
class CronExpression:
    """已解析的五字段 cron 表达式。"""
    text: str
    fields: tuple[str, ...]
    allowed: tuple[frozenset[int], ...]

    @classmethod
    def parse(cls, text: str) -> "CronExpression":
        """
        解析 cron 表达式。

        引发：
            InvalidExpression：字段数不为 5 或任一字段无法解析。
        """
        parts = tuple(text.split())
        if len(parts) != len(FIELDS):
            raise InvalidExpression(text, f"需要 5 个字段，实际为 {len(parts)} 个")

        allowed = []
        for part, (name, lo, hi) in zip(parts, FIELDS):
            if not is_field_valid(part):
                raise InvalidExpression(text, f"无法解析 {name} 字段 {part!r}")
            allowed.append(frozenset(v for v in range(lo, hi + 1) if field_matches(part, v, lo, hi)))

        return cls(text=text, fields=parts, allowed=tuple(allowed))

    def matches(self, dt: datetime) -> bool:
        """检查某个时刻的日历分量是否匹配全部五个字段。"""
        minutes, hours, days, months, weekdays = self.allowed
        return (
            dt.minute in minutes
            and dt.hour in hours
            and dt.day in days
            and dt.month in months
            and cron_weekday(dt) in weekdays
        )

    def next_after(self, after: datetime) -> datetime | None:
        """
        查找严格晚于 after 的最早匹配时刻（秒归零）。

        从 after 的下一分钟开始，最多向后查找一年。整月、整天、整小时
        不可能匹配时直接跳过，结果与逐分钟查找相同。
        """
        minutes, hours, days, months, weekdays = self.allowed
        if not all(self.allowed):
            return None

        candidate = after.replace(second=0, microsecond=0) + timedelta(minutes=1)
        limit = _add_years(after, SEARCH_YEARS)

        while candidate < limit:
            if candidate.month not in months:
                if candidate.month == 12:
                    candidate = candidate.replace(year=candidate.year + 1, month=1, day=1, hour=0, minute=0)
                else:
                    candidate = candidate.replace(month=candidate.month + 1, day=1, hour=0, minute=0)
                continue
            if candidate.day not in days or cron_weekday(candidate) not in weekdays:
                candidate = candidate.replace(hour=0, minute=0) + timedelta(days=1)
                continue
            if candidate.hour not in hours:
                candidate = candidate.replace(minute=0) + timedelta(hours=1)
                continue
            if candidate.minute not in minutes:
                later = [m for m in minutes if m > candidate.minute]
                if later:
                    candidate = candidate.replace(minute=min(later))
                else:
                    candidate = candidate.replace(minute=0) + timedelta(hours=1)
                continue
            return candidate

        return None


def next_match(expression: str, after: datetime) -> datetime:
    """
    计算 cron 表达式在 after 之后的下一次匹配时刻。

    参数：
        expression：五字段 cron 表达式。
        after：参考时刻（本地时间）。

    返回：
        严格晚于 after 的整分钟时刻。

    引发：
        InvalidExpression：表达式无法解析，或一年内没有匹配。
    """
    found = CronExpression.parse(expression).next_after(after)
    if found is None:
        raise InvalidExpression(expression, f"{SEARCH_YEARS} 年内没有匹配的时间")
    return found


def is_valid(expression: str) -> bool:
    """检查表达式能否被解析（不保证一年内存在匹配）。"""
    try:
        CronExpression.parse(expression)
    except InvalidExpression:
        return False
    return True


def iter_matches(expression: str, after: datetime, count: int) -> Iterator[datetime]:
    """依次产生最多 count 个匹配时刻。"""
    cron = CronExpression.parse(expression)
    current = after
    for _ in range(count):
        found = cron.next_after(current)
        if found is None:
            return
        yield found
        current = found
