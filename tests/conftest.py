from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

import pytest

from breakbot.schedule.timer import Clock, Timer, TimerHandle


class FakeClock(Clock):
    def __init__(self, now: datetime):
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


@dataclass
class ArmedTimer:
    handle: TimerHandle
    due: datetime
    callback: Callable[[], None]


class FakeTimer(Timer):
    """手动推进的计时器：fire_next() 把时钟拨到最早的到期时刻并调用回调。"""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.armed: list[ArmedTimer] = []

    def arm(self, delay_s, callback, repeat=False) -> TimerHandle:
        handle = TimerHandle(delay_s, repeat)
        self.armed.append(ArmedTimer(handle, self.clock.now() + timedelta(seconds=delay_s), callback))
        return handle

    @property
    def live(self) -> list[ArmedTimer]:
        return [t for t in self.armed if t.handle.active]

    def fire_next(self) -> ArmedTimer:
        entry = min(self.live, key=lambda t: t.due)
        self.clock.current = entry.due
        if entry.handle.repeat:
            entry.due += timedelta(seconds=entry.handle.delay_s)
        else:
            entry.handle.cancel()
        entry.callback()
        return entry


@pytest.fixture
def clock() -> FakeClock:
    # 2026-06-10 是周三
    return FakeClock(datetime(2026, 6, 10, 10, 0, 0))


@pytest.fixture
def timer(clock: FakeClock) -> FakeTimer:
    return FakeTimer(clock)
