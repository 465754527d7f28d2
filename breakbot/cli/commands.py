"""breakbot 的 CLI 命令。"""

import asyncio
import sys
from datetime import datetime

import typer
from rich.console import Console
from rich.table import Table

from breakbot import __version__, __logo__

app = typer.Typer(
    name="breakbot",
    help=f"{__logo__} breakbot - 久坐提醒",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} breakbot v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """breakbot - 久坐提醒。"""
    pass


def _setup_logging(verbose: bool) -> None:
    from loguru import logger

    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


def _check_schedule(config) -> str | None:
    """返回当前调度无法运行的原因；可以运行时返回 None。"""
    from breakbot.schedule.cron import next_match
    from breakbot.schedule.errors import InvalidExpression
    from breakbot.schedule.types import ReminderMode

    schedule = config.schedule
    if schedule.mode is ReminderMode.INTERVAL:
        if schedule.interval_minutes <= 0:
            return f"间隔必须大于 0（当前为 {schedule.interval_minutes}）"
        return None
    try:
        next_match(schedule.cron_expression, datetime.now())
    except InvalidExpression as e:
        return str(e)
    return None


def _describe_schedule(config) -> str:
    from breakbot.schedule.types import ReminderMode

    if config.schedule.mode is ReminderMode.INTERVAL:
        return f"每 {config.schedule.interval_minutes} 分钟"
    return f"cron: {config.schedule.cron_expression}"


# ============================================================================
# Onboard / Setup
# ============================================================================


@app.command()
def onboard():
    """初始化 breakbot 配置。"""
    from breakbot.config.loader import get_config_path, save_config
    from breakbot.config.schema import Config

    config_path = get_config_path()

    if config_path.exists():
        console.print(f"[yellow]配置已存在于 {config_path}[/yellow]")
        if not typer.confirm("覆盖？"):
            raise typer.Exit()

    save_config(Config())
    console.print(f"[green]✓[/green] 已在 {config_path} 创建配置")

    console.print(f"\n{__logo__} breakbot 已就绪！")
    console.print("\n后续步骤：")
    console.print("  1. 设置提醒规则：[cyan]breakbot schedule interval 45[/cyan]")
    console.print("     或：[cyan]breakbot schedule cron \"0 * * * 1-5\"[/cyan]")
    console.print("  2. 开始提醒：[cyan]breakbot start[/cyan]")
    console.print("  3. 运行守护进程：[cyan]breakbot run[/cyan]")


# ============================================================================
# Daemon
# ============================================================================


@app.command()
def run(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="详细输出"),
):
    """启动提醒守护进程。"""
    from breakbot.config.loader import get_config_path, load_config, save_config
    from breakbot.config.schema import Config
    from breakbot.schedule.service import ReminderScheduler
    from breakbot.sinks.manager import SinkManager
    from breakbot.watcher.service import ConfigWatcher

    _setup_logging(verbose)

    config_path = get_config_path()
    config = load_config()
    sinks = SinkManager(config.sinks)
    watcher = ConfigWatcher(config_path)

    def persist_running(running: bool) -> None:
        """调度器改变运行状态时（包括因规则无效而强制停止）写回配置。"""
        current = load_config(config_path)
        if current.running != running:
            current.running = running
            save_config(current, config_path)
            watcher.mark_seen()

    scheduler = ReminderScheduler(
        config.schedule,
        on_fire=sinks.dispatch,
        on_running_change=persist_running,
    )

    async def on_config_change(new: Config) -> None:
        sinks.update_config(new.sinks)
        scheduler.apply_config(new.schedule)
        scheduler.set_running(new.running)
        if new.running and not scheduler.running:
            persist_running(False)

    watcher.on_change = on_config_change

    console.print(f"{__logo__} 正在启动 breakbot...")
    console.print(f"[green]✓[/green] 规则：{_describe_schedule(config)}")
    if sinks.enabled_sinks:
        console.print(f"[green]✓[/green] 已启用提醒方式：{', '.join(sinks.enabled_sinks)}")
    else:
        console.print("[yellow]警告：未启用任何提醒方式[/yellow]")

    async def run_daemon():
        if config.running:
            scheduler.start()
            if not scheduler.running:
                persist_running(False)
        else:
            console.print("[dim]提醒未开始，使用 breakbot start 开始[/dim]")
        await watcher.start()
        try:
            await asyncio.Event().wait()
        finally:
            # 关闭进程不是用户暂停，保留持久化的运行标志
            scheduler.on_running_change = None
            watcher.stop()
            scheduler.stop()
            await sinks.stop_all()

    try:
        asyncio.run(run_daemon())
    except KeyboardInterrupt:
        console.print("\n正在关闭...")


@app.command()
def start():
    """开始提醒（运行中的守护进程会自动生效）。"""
    from breakbot.config.loader import load_config, save_config

    config = load_config()
    problem = _check_schedule(config)
    if problem:
        console.print(f"[red]错误：{problem}[/red]")
        raise typer.Exit(1)

    config.running = True
    save_config(config)
    console.print(f"[green]✓[/green] 提醒已开始（{_describe_schedule(config)}）")


@app.command()
def stop():
    """暂停提醒。"""
    from breakbot.config.loader import load_config, save_config

    config = load_config()
    config.running = False
    save_config(config)
    console.print("[green]✓[/green] 提醒已暂停")


@app.command()
def trigger():
    """立即通过所有已启用的提醒方式提醒一次。"""
    from breakbot.config.loader import load_config
    from breakbot.schedule.types import FireEvent
    from breakbot.sinks.manager import SinkManager

    config = load_config()
    sinks = SinkManager(config.sinks)

    async def fire_once() -> int:
        count = sinks.dispatch(FireEvent(fired_at=datetime.now()))
        await sinks.wait_idle()
        return count

    count = asyncio.run(fire_once())
    if count:
        console.print(f"[green]✓[/green] 已通过 {count} 种方式提醒")
    else:
        console.print("[yellow]未启用任何提醒方式[/yellow]")


# ============================================================================
# Cron preview
# ============================================================================


@app.command("next")
def next_fires(
    expression: str = typer.Argument(..., help="Cron 表达式（例如 '*/15 * * * *'）"),
    count: int = typer.Option(5, "--count", "-n", help="显示的次数"),
    start_at: str = typer.Option(None, "--from", help="起始时间（ISO 格式），默认为现在"),
):
    """预览 cron 表达式接下来的触发时间。"""
    from breakbot.schedule.cron import iter_matches
    from breakbot.schedule.errors import InvalidExpression

    try:
        after = datetime.fromisoformat(start_at) if start_at else datetime.now()
    except ValueError:
        console.print(f"[red]错误：无效的起始时间 {start_at!r}[/red]")
        raise typer.Exit(1)

    try:
        matches = list(iter_matches(expression, after, count))
    except InvalidExpression as e:
        console.print(f"[red]错误：{e}[/red]")
        raise typer.Exit(1)

    if not matches:
        console.print("[yellow]一年内没有匹配的时间[/yellow]")
        raise typer.Exit(1)

    table = Table(title=f"Next runs: {expression}")
    table.add_column("#", style="cyan")
    table.add_column("Time")
    for i, fire_at in enumerate(matches, 1):
        table.add_row(str(i), fire_at.strftime("%Y-%m-%d %H:%M (%a)"))
    console.print(table)


# ============================================================================
# Schedule Commands
# ============================================================================

schedule_app = typer.Typer(help="设置提醒规则")
app.add_typer(schedule_app, name="schedule")


@schedule_app.command("interval")
def schedule_interval(
    minutes: int = typer.Argument(..., help="每 N 分钟提醒一次"),
):
    """使用固定间隔。"""
    from breakbot.config.loader import load_config, save_config
    from breakbot.schedule.types import ReminderMode

    if minutes <= 0:
        console.print("[red]错误：间隔必须大于 0[/red]")
        raise typer.Exit(1)

    config = load_config()
    config.schedule.mode = ReminderMode.INTERVAL
    config.schedule.interval_minutes = minutes
    save_config(config)
    console.print(f"[green]✓[/green] 每 {minutes} 分钟提醒一次")


@schedule_app.command("cron")
def schedule_cron(
    expression: str = typer.Argument(..., help="Cron 表达式，例如 \"0 * * * *\"（每小时整点）"),
):
    """使用 cron 规则。"""
    from breakbot.config.loader import load_config, save_config
    from breakbot.schedule.cron import next_match
    from breakbot.schedule.errors import InvalidExpression
    from breakbot.schedule.types import ReminderMode

    try:
        fire_at = next_match(expression, datetime.now())
    except InvalidExpression as e:
        console.print(f"[red]错误：{e}[/red]")
        raise typer.Exit(1)

    config = load_config()
    config.schedule.mode = ReminderMode.CRON
    config.schedule.cron_expression = expression
    save_config(config)
    console.print(f"[green]✓[/green] 已设置 cron 规则，下次：{fire_at:%Y-%m-%d %H:%M}")


# ============================================================================
# Quiet Window Commands
# ============================================================================

quiet_app = typer.Typer(help="作息时间限制")
app.add_typer(quiet_app, name="quiet")


def _set_quiet_enabled(enabled: bool) -> None:
    from breakbot.config.loader import load_config, save_config

    config = load_config()
    config.schedule.quiet_window.enabled = enabled
    save_config(config)
    status = "已启用" if enabled else "已禁用"
    console.print(f"[green]✓[/green] 作息限制{status}")


@quiet_app.command("enable")
def quiet_enable():
    """仅在工作时间内提醒，并跳过午休。"""
    _set_quiet_enabled(True)


@quiet_app.command("disable")
def quiet_disable():
    """全天提醒。"""
    _set_quiet_enabled(False)


@quiet_app.command("set")
def quiet_set(
    work: str = typer.Option(None, "--work", "-w", help="工作时段，例如 09:30-18:30"),
    lunch: str = typer.Option(None, "--lunch", "-l", help="午休时段，例如 12:00-14:00"),
):
    """设置工作时段和午休时段（支持跨午夜）。"""
    from breakbot.config.loader import load_config, save_config
    from breakbot.utils.helpers import format_hhmm, parse_hhmm_range

    if not work and not lunch:
        console.print("[red]错误：必须指定 --work 或 --lunch[/red]")
        raise typer.Exit(1)

    config = load_config()
    window = config.schedule.quiet_window
    try:
        if work:
            window.work_start, window.work_end = parse_hhmm_range(work)
        if lunch:
            window.lunch_start, window.lunch_end = parse_hhmm_range(lunch)
    except ValueError as e:
        console.print(f"[red]错误：{e}[/red]")
        raise typer.Exit(1)

    save_config(config)
    console.print(
        f"[green]✓[/green] 工作时段 {format_hhmm(window.work_start)}-{format_hhmm(window.work_end)}，"
        f"午休 {format_hhmm(window.lunch_start)}-{format_hhmm(window.lunch_end)}"
    )


# ============================================================================
# Sink Commands
# ============================================================================

sinks_app = typer.Typer(help="管理提醒方式")
app.add_typer(sinks_app, name="sinks")


@sinks_app.command("status")
def sinks_status():
    """显示提醒方式状态。"""
    from breakbot.config.loader import load_config

    config = load_config()
    sinks = config.sinks

    table = Table(title="Reminder Sinks")
    table.add_column("Sink", style="cyan")
    table.add_column("Enabled", style="green")
    table.add_column("Configuration", style="yellow")

    table.add_row(
        "notification",
        "✓" if sinks.notification.enabled else "✗",
        f"{sinks.notification.title}: {sinks.notification.body}",
    )
    for name in ("popup", "fullscreen"):
        overlay = getattr(sinks, name)
        table.add_row(
            name,
            "✓" if overlay.enabled else "✗",
            f"{overlay.duration_s:g}s" + (", dismissible" if overlay.dismissible else ""),
        )
    table.add_row(
        "icon",
        "✓" if sinks.icon.enabled else "✗",
        f"{sinks.icon.flips} flips / {sinks.icon.flip_interval_s:g}s",
    )

    console.print(table)


def _set_sink_enabled(name: str, enabled: bool) -> None:
    from breakbot.config.loader import load_config, save_config
    from breakbot.config.schema import SinksConfig

    if name not in SinksConfig.model_fields:
        console.print(f"[red]未知的提醒方式 {name}（可选：{', '.join(SinksConfig.model_fields)}）[/red]")
        raise typer.Exit(1)

    config = load_config()
    getattr(config.sinks, name).enabled = enabled
    save_config(config)
    status = "已启用" if enabled else "已禁用"
    console.print(f"[green]✓[/green] {name} {status}")


@sinks_app.command("enable")
def sinks_enable(
    name: str = typer.Argument(..., help="提醒方式：notification、popup、fullscreen、icon"),
):
    """启用一种提醒方式。"""
    _set_sink_enabled(name, True)


@sinks_app.command("disable")
def sinks_disable(
    name: str = typer.Argument(..., help="提醒方式：notification、popup、fullscreen、icon"),
):
    """禁用一种提醒方式。"""
    _set_sink_enabled(name, False)


@sinks_app.command("message")
def sinks_message(
    title: str = typer.Option(None, "--title", "-t", help="通知标题"),
    body: str = typer.Option(None, "--body", "-b", help="通知内容"),
):
    """设置系统通知的标题和内容。"""
    from breakbot.config.loader import load_config, save_config

    config = load_config()
    if title is not None:
        config.sinks.notification.title = title
    if body is not None:
        config.sinks.notification.body = body
    save_config(config)
    console.print("[green]✓[/green] 通知文案已更新")


# ============================================================================
# Status Commands
# ============================================================================


@app.command()
def status():
    """显示 breakbot 状态。"""
    from breakbot.config.loader import get_config_path, load_config
    from breakbot.schedule.cron import next_match
    from breakbot.schedule.errors import InvalidExpression
    from breakbot.schedule.types import ReminderMode
    from breakbot.utils.helpers import format_hhmm

    config_path = get_config_path()
    config = load_config()
    schedule = config.schedule
    window = schedule.quiet_window

    console.print(f"{__logo__} breakbot 状态\n")

    console.print(f"Config: {config_path} {'[green]✓[/green]' if config_path.exists() else '[red]✗[/red]'}")
    console.print(f"Running: {'[green]✓[/green]' if config.running else '[dim]已暂停[/dim]'}")
    console.print(f"Schedule: {_describe_schedule(config)}")

    try:
        preview = next_match(schedule.cron_expression, datetime.now())
        console.print(f"Cron: [green]✓[/green] {schedule.cron_expression} (next {preview:%Y-%m-%d %H:%M})")
    except InvalidExpression as e:
        console.print(f"Cron: [red]✗ {e.reason}[/red]")

    if config.running and schedule.mode is ReminderMode.INTERVAL and schedule.interval_minutes <= 0:
        console.print("[red]间隔无效，提醒不会触发[/red]")

    if window.enabled:
        console.print(
            f"Quiet window: {format_hhmm(window.work_start)}-{format_hhmm(window.work_end)}, "
            f"lunch {format_hhmm(window.lunch_start)}-{format_hhmm(window.lunch_end)}"
        )
    else:
        console.print("Quiet window: [dim]off[/dim]")

    enabled = [name for name in type(config.sinks).model_fields if getattr(config.sinks, name).enabled]
    console.print(f"Sinks: {', '.join(enabled) if enabled else '[dim]none[/dim]'}")


if __name__ == "__main__":
    app()
