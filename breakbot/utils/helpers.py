"""breakbot 的实用函数。"""

import re
from datetime import datetime, time
from pathlib import Path

_HHMM = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::\d{2})?\s*$")


def ensure_dir(path: Path) -> Path:
    """确保目录存在，如有必要则创建它。"""
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_path() -> Path:
    """获取 breakbot 数据目录（~/.breakbot）。"""
    return ensure_dir(Path.home() / ".breakbot")


def parse_hhmm(value: str) -> time:
    """
    将 "H:MM" 或 "HH:MM" 解析为一天中的时间。

    参数：
        value：时间字符串，允许带秒（秒会被丢弃）。

    返回：
        只包含小时和分钟的 time 对象。

    引发：
        ValueError：如果字符串不是有效的时间。
    """
    match = _HHMM.match(value)
    if not match:
        raise ValueError(f"无效的时间格式：{value!r}（应为 HH:MM）")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValueError(f"时间超出范围：{value!r}")
    return time(hour, minute)


def parse_hhmm_range(value: str) -> tuple[time, time]:
    """将 "HH:MM-HH:MM" 解析为 (开始, 结束)。"""
    start, sep, end = value.partition("-")
    if not sep:
        raise ValueError(f"无效的时间段：{value!r}（应为 HH:MM-HH:MM）")
    return parse_hhmm(start), parse_hhmm(end)


def format_hhmm(value: time | datetime) -> str:
    """格式化为 HH:MM。"""
    return f"{value.hour:02d}:{value.minute:02d}"
