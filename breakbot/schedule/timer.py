"""调度器使用的时钟与计时器抽象。"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable

from loguru import logger


class Clock(ABC):
    """当前时刻的来源。"""

    @abstractmethod
    def now(self) -> datetime:
        pass


class SystemClock(Clock):
    """宿主的本地民用时间。"""

    def now(self) -> datetime:
        return datetime.now()


def seconds_between(start: datetime, end: datetime) -> float:
    """两个时刻之间的秒数，按时间戳计算以避开夏令时跳变。"""
    return end.timestamp() - start.timestamp()


class TimerHandle:
    """
    已装定计时器的不透明句柄。

    由调度器独占持有；取消后回调永远不会再被调用。
    """

    def __init__(self, delay_s: float, repeat: bool = False):
        self.delay_s = delay_s
        self.repeat = repeat
        self._active = True
        self._task: asyncio.Task | None = None

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        """取消计时器（重复调用无副作用）。"""
        if not self._active:
            return
        self._active = False
        if self._task:
            self._task.cancel()
            self._task = None

    def _expire(self) -> None:
        # 一次性计时器在回调之前失效
        self._active = False
        self._task = None


class Timer(ABC):
    """计时器能力：arm 返回句柄，cancel 使句柄失效。"""

    @abstractmethod
    def arm(self, delay_s: float, callback: Callable[[], None], repeat: bool = False) -> TimerHandle:
        """
        装定计时器。

        参数：
            delay_s：首次触发前的秒数（重复计时器也作为周期）。
            callback：到期时在控制流上调用的回调。
            repeat：是否按 delay_s 周期重复触发。
        """
        pass

    def cancel(self, handle: TimerHandle | None) -> None:
        if handle:
            handle.cancel()


class AsyncioTimer(Timer):
    """在运行中的事件循环上装定的计时器。"""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    def arm(self, delay_s: float, callback: Callable[[], None], repeat: bool = False) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        handle = TimerHandle(max(0.0, delay_s), repeat)

        async def tick():
            while handle.active:
                await asyncio.sleep(handle.delay_s)
                if not handle.active:
                    return
                if not handle.repeat:
                    handle._expire()
                try:
                    callback()
                except Exception as e:
                    logger.error(f"计时器回调失败：{e}")
                if not handle.repeat:
                    return

        handle._task = loop.create_task(tick())
        return handle
