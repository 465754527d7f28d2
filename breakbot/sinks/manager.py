"""用于协调触发接收器的管理器。"""

import asyncio
from typing import Any

from loguru import logger

from breakbot.config.schema import SinksConfig
from breakbot.schedule.types import FireEvent
from breakbot.sinks.base import BaseSink
from breakbot.sinks.icon import IconAnimationSink
from breakbot.sinks.notification import NotificationSink
from breakbot.sinks.overlay import OverlaySink


class SinkManager:
    """
    管理触发接收器并分发触发事件。

    职责：
    - 根据配置初始化接收器
    - 把每次触发以即发即忘的方式扇出到所有已启用的接收器
    - 单个接收器失败只记录日志，不影响其他接收器和调度
    """

    def __init__(self, config: SinksConfig, sinks: list[BaseSink] | None = None):
        self.config = config
        self.sinks: dict[str, BaseSink] = {}
        self._tasks: set[asyncio.Task] = set()

        if sinks is None:
            self._init_sinks()
        else:
            for sink in sinks:
                self.sinks[sink.name] = sink

    def _init_sinks(self) -> None:
        """根据配置初始化接收器。"""
        self.sinks["notification"] = NotificationSink(self.config.notification)
        self.sinks["popup"] = OverlaySink("popup", self.config.popup)
        self.sinks["fullscreen"] = OverlaySink("fullscreen", self.config.fullscreen)
        self.sinks["icon"] = IconAnimationSink(self.config.icon)

    def update_config(self, config: SinksConfig) -> None:
        """就地更新各接收器的配置（启用状态、文案、时长）。"""
        self.config = config
        for name, sink in self.sinks.items():
            new = getattr(config, name, None)
            if new is not None:
                sink.config = new

    def dispatch(self, event: FireEvent) -> int:
        """
        将触发事件分发到所有已启用的接收器，不等待它们完成。

        返回：
            已分发的接收器数量。
        """
        count = 0
        for name, sink in self.sinks.items():
            if not sink.enabled:
                continue
            task = asyncio.create_task(self._deliver(name, sink, event))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            count += 1
        return count

    async def _deliver(self, name: str, sink: BaseSink, event: FireEvent) -> None:
        """调用单个接收器并记录任何异常。"""
        try:
            await sink.on_fire(event)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"接收器 {name} 处理触发失败：{e}")

    async def wait_idle(self) -> None:
        """等待所有进行中的分发完成。"""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def stop_all(self) -> None:
        """取消进行中的分发并停止所有接收器。"""
        for task in list(self._tasks):
            task.cancel()
        await self.wait_idle()

        for name, sink in self.sinks.items():
            try:
                await sink.stop()
            except Exception as e:
                logger.error(f"停止 {name} 时出错：{e}")

    def get_sink(self, name: str) -> BaseSink | None:
        """根据名称获取接收器。"""
        return self.sinks.get(name)

    def get_status(self) -> dict[str, Any]:
        """获取所有接收器的状态。"""
        return {
            name: {"enabled": sink.enabled}
            for name, sink in self.sinks.items()
        }

    @property
    def enabled_sinks(self) -> list[str]:
        """获取已启用接收器名称的列表。"""
        return [name for name, sink in self.sinks.items() if sink.enabled]
