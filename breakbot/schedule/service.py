"""提醒调度服务：把间隔/cron 调度转换为自我重新装定的触发流。"""

from dataclasses import replace
from datetime import datetime, time, timedelta
from typing import Any, Callable

from loguru import logger

from breakbot.schedule.cron import next_match
from breakbot.schedule.errors import InvalidExpression, InvalidInterval
from breakbot.schedule.quiet import is_allowed
from breakbot.schedule.timer import Clock, SystemClock, Timer, AsyncioTimer, TimerHandle, seconds_between
from breakbot.schedule.types import (
    FireEvent,
    ReminderMode,
    ScheduleConfig,
    SchedulerPhase,
    SchedulerState,
)


class ReminderScheduler:
    """
    持有运行/暂停状态、当前模式和唯一一个计时器的调度器。

    间隔模式使用按固定周期重复的计时器；cron 模式使用一次性计时器，
    每次触发后重新装定，因为两次匹配之间的间隔通常不均匀。

    所有状态转换都在同一个控制流上执行。任何时刻最多只有一个
    计时器句柄处于活动状态：装定新计时器之前总是先取消旧的。
    """

    def __init__(
        self,
        config: ScheduleConfig | None = None,
        on_fire: Callable[[FireEvent], Any] | None = None,
        clock: Clock | None = None,
        timer: Timer | None = None,
        on_running_change: Callable[[bool], Any] | None = None,
    ):
        self._config = (config or ScheduleConfig()).model_copy(deep=True)
        self.on_fire = on_fire  # 每次未被屏蔽的触发调用一次
        self.on_running_change = on_running_change  # 宿主用来持久化运行标志
        self._clock = clock or SystemClock()
        self._timer = timer or AsyncioTimer()
        self._handle: TimerHandle | None = None
        self._state = SchedulerState()
        self._validate_expression()

    # ========== 可观察状态 ==========

    @property
    def running(self) -> bool:
        return self._state.running

    @property
    def next_fire_at(self) -> datetime | None:
        return self._state.next_fire_at

    @property
    def expression_valid(self) -> bool:
        return self._state.expression_valid

    @property
    def phase(self) -> SchedulerPhase:
        return self._state.phase

    @property
    def state(self) -> SchedulerState:
        """运行时状态的副本。"""
        return replace(self._state)

    @property
    def config(self) -> ScheduleConfig:
        """当前配置的副本；修改请使用 set_* 方法。"""
        return self._config.model_copy(deep=True)

    def status(self) -> dict:
        """获取调度器状态。"""
        s = self._state
        return {
            "running": s.running,
            "phase": s.phase.value,
            "mode": self._config.mode.value,
            "next_fire_at": s.next_fire_at.isoformat() if s.next_fire_at else None,
            "expression_valid": s.expression_valid,
            "last_fired_at": s.last_fired_at.isoformat() if s.last_fired_at else None,
            "fire_count": s.fire_count,
            "suppressed_count": s.suppressed_count,
        }

    # ========== 运行控制 ==========

    def start(self) -> None:
        """按当前模式（重新）开始调度。"""
        self._cancel_timer()
        if self._config.mode is ReminderMode.INTERVAL:
            self._start_interval()
        else:
            self._start_cron(self._clock.now())

    def stop(self) -> None:
        """停止调度；已停止时为空操作。"""
        was_running = self._state.running
        self._halt()
        if was_running:
            logger.info("提醒已暂停")

    def set_running(self, running: bool) -> None:
        if running == self._state.running:
            return
        if running:
            self.start()
        else:
            self.stop()

    # ========== 配置变更 ==========

    def set_mode(self, mode: ReminderMode | str) -> None:
        mode = ReminderMode(mode)
        if mode is self._config.mode:
            return
        self._config.mode = mode
        logger.info(f"提醒模式切换为 {mode.value}")
        self._reschedule()

    def set_interval(self, minutes: int) -> None:
        if minutes == self._config.interval_minutes:
            return
        self._config.interval_minutes = minutes
        if self._config.mode is ReminderMode.INTERVAL:
            self._reschedule()

    def set_cron_expression(self, expression: str) -> None:
        if expression == self._config.cron_expression:
            return
        self._config.cron_expression = expression
        self._validate_expression()
        if self._config.mode is ReminderMode.CRON:
            self._reschedule()

    def set_quiet_window_enabled(self, enabled: bool) -> None:
        self._config.quiet_window.enabled = enabled

    def set_work_start(self, value: time | str) -> None:
        self._config.quiet_window.work_start = value

    def set_work_end(self, value: time | str) -> None:
        self._config.quiet_window.work_end = value

    def set_lunch_start(self, value: time | str) -> None:
        self._config.quiet_window.lunch_start = value

    def set_lunch_end(self, value: time | str) -> None:
        self._config.quiet_window.lunch_end = value

    def apply_config(self, config: ScheduleConfig) -> None:
        """
        一次性替换整份配置。

        先写入所有字段，再按新配置最多重新调度一次，
        因此结果与字段的变更顺序无关。
        """
        old = self._config
        new = config.model_copy(deep=True)
        self._config = new

        if new.cron_expression != old.cron_expression:
            self._validate_expression()
        if new.mode is not old.mode:
            logger.info(f"提醒模式切换为 {new.mode.value}")

        if new.mode is ReminderMode.INTERVAL:
            affected = new.interval_minutes != old.interval_minutes
        else:
            affected = new.cron_expression != old.cron_expression
        if new.mode is not old.mode or affected:
            self._reschedule()

    def trigger_now(self) -> bool:
        """立即执行一次触发流程，不影响已装定的计时器。"""
        return self._fire(self._clock.now())

    # ========== 内部逻辑 ==========

    def _validate_expression(self) -> None:
        try:
            next_match(self._config.cron_expression, self._clock.now())
            self._state.expression_valid = True
        except InvalidExpression as e:
            logger.warning(str(e))
            self._state.expression_valid = False

    def _reschedule(self) -> None:
        if self._state.running:
            self.start()

    def _start_interval(self) -> None:
        minutes = self._config.interval_minutes
        if minutes <= 0:
            logger.warning(str(InvalidInterval(minutes)))
            self._halt()
            return

        period = timedelta(minutes=minutes)
        self._state.next_fire_at = self._clock.now() + period
        self._handle = self._timer.arm(period.total_seconds(), self._on_interval_timer, repeat=True)
        self._state.phase = SchedulerPhase.ARMED_INTERVAL
        self._set_running(True)
        logger.info(f"提醒已启动：每 {minutes} 分钟，下次 {self._state.next_fire_at:%H:%M}")

    def _start_cron(self, after: datetime) -> None:
        try:
            fire_at = next_match(self._config.cron_expression, after)
        except InvalidExpression as e:
            logger.warning(f"{e}，停止提醒")
            self._halt()
            return

        delay = max(0.0, seconds_between(self._clock.now(), fire_at))
        self._state.next_fire_at = fire_at
        self._handle = self._timer.arm(delay, self._on_cron_timer)
        self._state.phase = SchedulerPhase.ARMED_CRON
        self._set_running(True)
        logger.debug(f"Cron 计时器已装定：{fire_at:%Y-%m-%d %H:%M}（{delay:.0f} 秒后）")

    def _on_interval_timer(self) -> None:
        handle = self._handle
        fired_at = self._clock.now()
        self._fire(fired_at)
        # 触发回调中可能已停止或重新调度
        if self._state.running and self._handle is handle:
            self._state.next_fire_at = fired_at + timedelta(minutes=self._config.interval_minutes)

    def _on_cron_timer(self) -> None:
        fired_at = self._clock.now()
        scheduled = self._state.next_fire_at
        self._handle = None
        self._fire(fired_at)
        if not self._state.running or self._handle is not None:
            return
        # 计时器可能略早于整分钟醒来，从计划时刻之后继续查找
        self._start_cron(max(fired_at, scheduled) if scheduled else fired_at)

    def _fire(self, fired_at: datetime) -> bool:
        """触发流程：作息门控，然后通知所有触发接收器。返回是否真正触发。"""
        window = self._config.quiet_window
        if window.enabled and not is_allowed(window, fired_at):
            self._state.suppressed_count += 1
            logger.info("不在工作时间或处于午休，跳过本次提醒")
            return False

        self._state.last_fired_at = fired_at
        self._state.fire_count += 1
        logger.info(f"提醒触发：{fired_at:%H:%M}")

        if self.on_fire:
            try:
                self.on_fire(FireEvent(fired_at=fired_at))
            except Exception as e:
                logger.error(f"触发回调失败：{e}")
        return True

    def _cancel_timer(self) -> None:
        self._timer.cancel(self._handle)
        self._handle = None
        self._state.next_fire_at = None

    def _halt(self) -> None:
        self._cancel_timer()
        self._state.phase = SchedulerPhase.STOPPED
        self._set_running(False)

    def _set_running(self, running: bool) -> None:
        if running == self._state.running:
            return
        self._state.running = running
        if self.on_running_change:
            try:
                self.on_running_change(running)
            except Exception as e:
                logger.error(f"运行状态回调失败：{e}")
