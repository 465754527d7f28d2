"""调度引擎的错误类型。"""


class ScheduleError(Exception):
    """所有调度错误的基类。"""


class InvalidExpression(ScheduleError):
    """Cron 表达式格式错误，或在一年内没有任何匹配时间。"""

    def __init__(self, expression: str, reason: str):
        self.expression = expression
        self.reason = reason
        super().__init__(f"无效的 cron 表达式 {expression!r}：{reason}")


class InvalidInterval(ScheduleError):
    """间隔分钟数不是正整数。"""

    def __init__(self, minutes: int):
        self.minutes = minutes
        super().__init__(f"无效的间隔：{minutes} 分钟（必须 > 0）")
