from datetime import datetime, time

import pytest

from breakbot.schedule.service import ReminderScheduler
from breakbot.schedule.types import (
    FireEvent,
    QuietWindow,
    ReminderMode,
    ScheduleConfig,
    SchedulerPhase,
)


@pytest.fixture
def fired() -> list[FireEvent]:
    return []


def make_scheduler(clock, timer, fired, **config) -> ReminderScheduler:
    return ReminderScheduler(
        ScheduleConfig(**config),
        on_fire=fired.append,
        clock=clock,
        timer=timer,
    )


# 测试间隔模式启动：下次触发 = 现在 + 间隔，重复计时器
def test_start_interval(clock, timer, fired) -> None:
    scheduler = make_scheduler(clock, timer, fired, interval_minutes=45)
    scheduler.start()

    assert scheduler.running
    assert scheduler.phase is SchedulerPhase.ARMED_INTERVAL
    assert scheduler.next_fire_at == datetime(2026, 6, 10, 10, 45)
    assert len(timer.live) == 1
    assert timer.live[0].handle.repeat


# 测试间隔计时器触发后重新计算下次触发时间
def test_interval_fires_and_rearms(clock, timer, fired) -> None:
    scheduler = make_scheduler(clock, timer, fired, interval_minutes=30)
    scheduler.start()

    timer.fire_next()
    assert [e.fired_at for e in fired] == [datetime(2026, 6, 10, 10, 30)]
    assert scheduler.next_fire_at == datetime(2026, 6, 10, 11, 0)

    timer.fire_next()
    assert len(fired) == 2
    assert scheduler.next_fire_at == datetime(2026, 6, 10, 11, 30)
    assert len(timer.live) == 1


# 测试非正间隔：start() 为空操作
@pytest.mark.parametrize("minutes", [0, -5])
def test_non_positive_interval_stays_stopped(clock, timer, fired, minutes: int) -> None:
    scheduler = make_scheduler(clock, timer, fired, interval_minutes=minutes)
    scheduler.start()

    assert not scheduler.running
    assert scheduler.next_fire_at is None
    assert scheduler.phase is SchedulerPhase.STOPPED
    assert timer.live == []


# 测试 cron 模式：一次性计时器，每次触发后重新装定
def test_cron_fires_and_rearms_one_shot(clock, timer, fired) -> None:
    scheduler = make_scheduler(
        clock, timer, fired, mode=ReminderMode.CRON, cron_expression="*/15 * * * *"
    )
    clock.advance(minutes=7)
    scheduler.start()

    assert scheduler.phase is SchedulerPhase.ARMED_CRON
    assert scheduler.next_fire_at == datetime(2026, 6, 10, 10, 15)
    assert not timer.live[0].handle.repeat
    assert timer.live[0].handle.delay_s == 8 * 60

    timer.fire_next()
    assert fired[0].fired_at == datetime(2026, 6, 10, 10, 15)
    assert scheduler.next_fire_at == datetime(2026, 6, 10, 10, 30)
    assert len(timer.live) == 1


# 测试 cron 计时器提前醒来时不会重复触发同一分钟
def test_cron_early_wakeup_does_not_refire_same_minute(clock, timer, fired) -> None:
    scheduler = make_scheduler(
        clock, timer, fired, mode=ReminderMode.CRON, cron_expression="0 * * * *"
    )
    scheduler.start()
    entry = timer.live[0]
    entry.due = datetime(2026, 6, 10, 10, 59, 59, 900000)

    timer.fire_next()
    assert scheduler.next_fire_at == datetime(2026, 6, 10, 12, 0)


# 测试无法匹配的 cron 表达式强制停止
def test_unmatchable_cron_forces_stop(clock, timer, fired) -> None:
    scheduler = make_scheduler(
        clock, timer, fired, mode=ReminderMode.CRON, cron_expression="0 0 31 2 *"
    )
    assert not scheduler.expression_valid

    scheduler.start()
    assert not scheduler.running
    assert scheduler.next_fire_at is None
    assert timer.live == []


# 测试重复调用 stop() 是空操作
def test_stop_is_idempotent(clock, timer, fired) -> None:
    scheduler = make_scheduler(clock, timer, fired)
    scheduler.stop()
    scheduler.stop()
    assert not scheduler.running
    assert scheduler.next_fire_at is None

    scheduler.start()
    handle = timer.live[0].handle
    scheduler.stop()
    scheduler.stop()
    assert not handle.active
    assert scheduler.next_fire_at is None
    assert scheduler.phase is SchedulerPhase.STOPPED


# 测试运行中修改间隔：旧计时器被取消，从当前时刻重新计算
def test_reconfigure_interval_while_running(clock, timer, fired) -> None:
    scheduler = make_scheduler(clock, timer, fired, interval_minutes=60)
    scheduler.start()
    old = timer.live[0].handle

    clock.advance(minutes=20)
    scheduler.set_interval(30)

    assert not old.active
    assert len(timer.live) == 1
    assert scheduler.next_fire_at == datetime(2026, 6, 10, 10, 50)

    timer.fire_next()
    assert [e.fired_at for e in fired] == [datetime(2026, 6, 10, 10, 50)]


# 测试运行中切换模式
def test_switch_mode_while_running(clock, timer, fired) -> None:
    scheduler = make_scheduler(clock, timer, fired, cron_expression="30 * * * *")
    scheduler.start()
    assert scheduler.phase is SchedulerPhase.ARMED_INTERVAL

    scheduler.set_mode("cron")
    assert scheduler.phase is SchedulerPhase.ARMED_CRON
    assert scheduler.next_fire_at == datetime(2026, 6, 10, 10, 30)
    assert len(timer.live) == 1

    scheduler.set_mode(ReminderMode.INTERVAL)
    assert scheduler.phase is SchedulerPhase.ARMED_INTERVAL
    assert scheduler.next_fire_at == datetime(2026, 6, 10, 11, 0)
    assert len(timer.live) == 1


# 测试停止状态下修改配置不会启动
def test_mutations_while_stopped_do_not_arm(clock, timer, fired) -> None:
    scheduler = make_scheduler(clock, timer, fired)
    scheduler.set_interval(10)
    scheduler.set_mode(ReminderMode.CRON)
    scheduler.set_cron_expression("*/5 * * * *")

    assert not scheduler.running
    assert timer.live == []
    assert scheduler.config.interval_minutes == 10


# 测试编辑 cron 表达式：在 cron 模式运行时变为无效会停止
def test_invalid_cron_edit_stops_running_cron(clock, timer, fired) -> None:
    scheduler = make_scheduler(
        clock, timer, fired, mode=ReminderMode.CRON, cron_expression="*/5 * * * *"
    )
    scheduler.start()
    assert scheduler.expression_valid

    scheduler.set_cron_expression("not a cron")
    assert not scheduler.expression_valid
    assert not scheduler.running
    assert timer.live == []

    # 修正后不会自动恢复，需要重新开始
    scheduler.set_cron_expression("*/5 * * * *")
    assert scheduler.expression_valid
    assert not scheduler.running


# 测试间隔模式下编辑 cron 表达式只更新有效性
def test_cron_edit_in_interval_mode_keeps_running(clock, timer, fired) -> None:
    scheduler = make_scheduler(clock, timer, fired)
    scheduler.start()
    handle = timer.live[0].handle

    scheduler.set_cron_expression("0 0 31 2 *")
    assert not scheduler.expression_valid
    assert scheduler.running
    assert handle.active


# 测试运行中编辑有效的 cron 表达式会重新装定
def test_valid_cron_edit_reschedules(clock, timer, fired) -> None:
    scheduler = make_scheduler(
        clock, timer, fired, mode=ReminderMode.CRON, cron_expression="0 * * * *"
    )
    scheduler.start()
    old = timer.live[0].handle

    scheduler.set_cron_expression("20 * * * *")
    assert not old.active
    assert scheduler.next_fire_at == datetime(2026, 6, 10, 10, 20)
    assert len(timer.live) == 1


# 测试作息门控屏蔽触发，但仍然重新装定
def test_quiet_window_suppresses_but_reschedules(clock, timer, fired) -> None:
    clock.current = datetime(2026, 6, 10, 11, 30)
    scheduler = make_scheduler(
        clock,
        timer,
        fired,
        interval_minutes=60,
        quiet_window=QuietWindow(enabled=True),
    )
    scheduler.start()

    timer.fire_next()  # 12:30 午休
    assert fired == []
    assert scheduler.state.suppressed_count == 1
    assert scheduler.next_fire_at == datetime(2026, 6, 10, 13, 30)

    timer.fire_next()  # 13:30 午休
    timer.fire_next()  # 14:30
    assert [e.fired_at for e in fired] == [datetime(2026, 6, 10, 14, 30)]
    assert scheduler.running


# 测试运行时开关作息门控
def test_quiet_window_toggle_takes_effect_at_fire_time(clock, timer, fired) -> None:
    clock.current = datetime(2026, 6, 10, 20, 0)
    scheduler = make_scheduler(clock, timer, fired, interval_minutes=10)
    scheduler.start()
    handle = timer.live[0].handle

    scheduler.set_quiet_window_enabled(True)
    assert handle.active  # 不会重新装定
    timer.fire_next()
    assert fired == []

    scheduler.set_work_start(time(0, 0))
    scheduler.set_work_end(time(23, 0))
    timer.fire_next()
    assert len(fired) == 1

    scheduler.set_lunch_start(time(20, 0))
    scheduler.set_lunch_end(time(21, 0))
    timer.fire_next()
    assert len(fired) == 1


# 测试触发回调异常不影响重新装定
def test_failing_on_fire_does_not_break_rescheduling(clock, timer) -> None:
    def boom(event: FireEvent) -> None:
        raise RuntimeError("sink down")

    scheduler = ReminderScheduler(
        ScheduleConfig(mode=ReminderMode.CRON, cron_expression="*/10 * * * *"),
        on_fire=boom,
        clock=clock,
        timer=timer,
    )
    scheduler.start()
    timer.fire_next()

    assert scheduler.running
    assert scheduler.next_fire_at == datetime(2026, 6, 10, 10, 20)
    assert scheduler.state.fire_count == 1


# 测试 cron 在查找窗口内不再匹配时停止
def test_cron_stops_when_no_further_match(clock, timer, fired) -> None:
    clock.current = datetime(2027, 3, 1, 8, 0)
    scheduler = make_scheduler(
        clock, timer, fired, mode=ReminderMode.CRON, cron_expression="0 0 29 2 *"
    )
    assert scheduler.expression_valid
    scheduler.start()
    assert scheduler.next_fire_at == datetime(2028, 2, 29, 0, 0)

    timer.fire_next()
    assert len(fired) == 1
    assert not scheduler.running
    assert scheduler.phase is SchedulerPhase.STOPPED
    assert timer.live == []


# 测试运行状态回调（宿主用于持久化）
def test_on_running_change_reports_transitions(clock, timer, fired) -> None:
    changes: list[bool] = []
    scheduler = ReminderScheduler(
        ScheduleConfig(mode=ReminderMode.CRON, cron_expression="*/5 * * * *"),
        clock=clock,
        timer=timer,
        on_running_change=changes.append,
    )
    scheduler.set_running(True)
    scheduler.set_running(True)
    scheduler.set_cron_expression("0 0 31 2 *")
    scheduler.stop()

    assert changes == [True, False]


# 测试 apply_config 只在影响调度的字段变化时重新调度
def test_apply_config(clock, timer, fired) -> None:
    scheduler = make_scheduler(clock, timer, fired, interval_minutes=60)
    scheduler.start()
    handle = timer.live[0].handle

    same = scheduler.config
    same.quiet_window.enabled = True
    scheduler.apply_config(same)
    assert handle.active

    new = ScheduleConfig(mode=ReminderMode.CRON, cron_expression="45 10 * * *")
    scheduler.apply_config(new)
    assert not handle.active
    assert scheduler.phase is SchedulerPhase.ARMED_CRON
    assert scheduler.next_fire_at == datetime(2026, 6, 10, 10, 45)
    assert not scheduler.config.quiet_window.enabled


# 测试在任何转换序列中最多只有一个活动计时器
def test_at_most_one_live_timer(clock, timer, fired) -> None:
    scheduler = make_scheduler(clock, timer, fired, cron_expression="*/7 * * * *")
    steps = [
        scheduler.start,
        lambda: scheduler.set_interval(5),
        lambda: scheduler.set_mode(ReminderMode.CRON),
        timer.fire_next,
        lambda: scheduler.set_cron_expression("*/3 * * * *"),
        timer.fire_next,
        lambda: scheduler.set_mode(ReminderMode.INTERVAL),
        timer.fire_next,
        scheduler.start,
        scheduler.stop,
    ]
    for step in steps:
        step()
        assert len(timer.live) <= 1
        assert (scheduler.next_fire_at is None) == (not scheduler.running)


# 测试手动触发不影响计时器
def test_trigger_now(clock, timer, fired) -> None:
    scheduler = make_scheduler(clock, timer, fired)
    scheduler.start()
    next_fire = scheduler.next_fire_at

    assert scheduler.trigger_now()
    assert len(fired) == 1
    assert scheduler.next_fire_at == next_fire


# 测试调度器持有配置副本
def test_config_is_copied(clock, timer, fired) -> None:
    config = ScheduleConfig(interval_minutes=15)
    scheduler = ReminderScheduler(config, clock=clock, timer=timer)
    config.interval_minutes = 99
    assert scheduler.config.interval_minutes == 15

    status = scheduler.status()
    assert status["running"] is False
    assert status["mode"] == "interval"
    assert status["next_fire_at"] is None


# 测试在 cron 触发回调中停止后不再重新装定
def test_stop_inside_cron_fire_is_final(clock, timer) -> None:
    scheduler = ReminderScheduler(
        ScheduleConfig(mode=ReminderMode.CRON, cron_expression="*/15 * * * *"),
        clock=clock,
        timer=timer,
    )
    scheduler.on_fire = lambda event: scheduler.stop()
    scheduler.start()

    timer.fire_next()

    assert not scheduler.running
    assert scheduler.phase is SchedulerPhase.STOPPED
    assert scheduler.next_fire_at is None
    assert timer.live == []


# 测试在 cron 触发回调中切换模式，只保留新装定的计时器
def test_reschedule_inside_cron_fire_keeps_new_timer(clock, timer) -> None:
    scheduler = ReminderScheduler(
        ScheduleConfig(mode=ReminderMode.CRON, cron_expression="*/15 * * * *", interval_minutes=60),
        clock=clock,
        timer=timer,
    )
    scheduler.on_fire = lambda event: scheduler.set_mode(ReminderMode.INTERVAL)
    scheduler.start()

    timer.fire_next()

    assert scheduler.running
    assert scheduler.phase is SchedulerPhase.ARMED_INTERVAL
    assert scheduler.next_fire_at == datetime(2026, 6, 10, 11, 15)
    assert len(timer.live) == 1
    assert timer.live[0].handle.repeat


# 测试在间隔触发回调中停止后 next_fire_at 保持为空
def test_stop_inside_interval_fire(clock, timer) -> None:
    scheduler = ReminderScheduler(ScheduleConfig(interval_minutes=30), clock=clock, timer=timer)
    scheduler.on_fire = lambda event: scheduler.stop()
    scheduler.start()

    timer.fire_next()

    assert not scheduler.running
    assert scheduler.next_fire_at is None
    assert timer.live == []


# 测试在间隔触发回调中修改间隔，保留回调中计算出的下次触发时间
def test_reconfigure_inside_interval_fire(clock, timer) -> None:
    scheduler = ReminderScheduler(ScheduleConfig(interval_minutes=30), clock=clock, timer=timer)
    scheduler.on_fire = lambda event: scheduler.set_interval(10)
    scheduler.start()

    timer.fire_next()

    assert scheduler.running
    assert scheduler.next_fire_at == datetime(2026, 6, 10, 10, 40)
    assert len(timer.live) == 1


# 测试 apply_config 的结果与字段变更顺序无关
def test_apply_config_switches_mode_despite_invalid_interval(clock, timer, fired) -> None:
    scheduler = make_scheduler(clock, timer, fired, interval_minutes=60)
    scheduler.start()

    scheduler.apply_config(
        ScheduleConfig(mode=ReminderMode.CRON, interval_minutes=0, cron_expression="*/5 * * * *")
    )

    assert scheduler.running
    assert scheduler.phase is SchedulerPhase.ARMED_CRON
    assert scheduler.next_fire_at == datetime(2026, 6, 10, 10, 5)
    assert len(timer.live) == 1


# 测试 apply_config 只修改与当前模式无关的字段时不重新装定
def test_apply_config_ignores_unrelated_fields(clock, timer, fired) -> None:
    scheduler = make_scheduler(clock, timer, fired, interval_minutes=60)
    scheduler.start()
    handle = timer.live[0].handle

    scheduler.apply_config(ScheduleConfig(interval_minutes=60, cron_expression="0 0 31 2 *"))

    assert handle.active
    assert scheduler.running
    assert not scheduler.expression_valid


# 测试作息时间的设置方法接受字符串并校验
def test_quiet_window_setters_accept_strings(clock, timer, fired) -> None:
    scheduler = make_scheduler(clock, timer, fired)
    scheduler.set_quiet_window_enabled(True)
    scheduler.set_work_start("10:30")
    scheduler.set_lunch_end("13:00")

    window = scheduler.config.quiet_window
    assert window.work_start == time(10, 30)
    assert window.lunch_end == time(13, 0)

    # 10:00 早于工作开始时间
    assert not scheduler.trigger_now()

    with pytest.raises(ValueError):
        scheduler.set_work_end("noon")
    assert scheduler.config.quiet_window.work_end == time(18, 30)
