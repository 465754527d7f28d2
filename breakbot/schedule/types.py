"""调度引擎类型。"""

from dataclasses import dataclass
from datetime import datetime, time
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from breakbot.utils.helpers import format_hhmm, parse_hhmm


class ReminderMode(str, Enum):
    """提醒模式：固定间隔或 cron 规则。"""
    INTERVAL = "interval"
    CRON = "cron"


class SchedulerPhase(str, Enum):
    """调度器状态机的状态。"""
    STOPPED = "stopped"
    ARMED_INTERVAL = "armed_interval"
    ARMED_CRON = "armed_cron"


class QuietWindow(BaseModel):
    """作息时间限制：仅在工作时段内提醒，并跳过午休。"""
    model_config = ConfigDict(validate_assignment=True)

    enabled: bool = False
    work_start: time = time(9, 30)
    work_end: time = time(18, 30)
    lunch_start: time = time(12, 0)
    lunch_end: time = time(14, 0)

    @field_validator("work_start", "work_end", "lunch_start", "lunch_end", mode="before")
    @classmethod
    def _parse_time(cls, value):
        if isinstance(value, str):
            return parse_hhmm(value)
        if isinstance(value, time):
            return value.replace(second=0, microsecond=0, tzinfo=None)
        return value

    @field_serializer("work_start", "work_end", "lunch_start", "lunch_end")
    def _dump_time(self, value: time) -> str:
        return format_hhmm(value)


class ScheduleConfig(BaseModel):
    """声明式调度配置。"""
    mode: ReminderMode = ReminderMode.INTERVAL
    interval_minutes: int = 60  # 非正数由调度器拒绝，而不是在这里
    cron_expression: str = "*/60 * * * *"
    quiet_window: QuietWindow = Field(default_factory=QuietWindow)


@dataclass(frozen=True)
class FireEvent:
    """一次提醒触发。"""
    fired_at: datetime


@dataclass
class SchedulerState:
    """调度器的运行时状态（不持久化）。"""
    running: bool = False
    phase: SchedulerPhase = SchedulerPhase.STOPPED
    next_fire_at: datetime | None = None
    expression_valid: bool = True
    last_fired_at: datetime | None = None
    fire_count: int = 0
    suppressed_count: int = 0
