"""覆盖层接收器：屏幕中央弹窗和全屏遮罩的显示状态。"""

import asyncio
from datetime import datetime
from typing import Callable

from loguru import logger

from breakbot.config.schema import OverlaySinkConfig
from breakbot.schedule.types import FireEvent
from breakbot.sinks.base import BaseSink


class OverlaySink(BaseSink):
    """
    定时显示的覆盖层。

    只维护 visible 状态；实际绘制由 on_show/on_hide 回调交给界面。
    显示期间再次触发会重新计时。
    """

    def __init__(
        self,
        name: str,
        config: OverlaySinkConfig,
        on_show: Callable[[FireEvent], None] | None = None,
        on_hide: Callable[[], None] | None = None,
    ):
        super().__init__(config)
        self.name = name
        self.config: OverlaySinkConfig = config
        self.on_show = on_show
        self.on_hide = on_hide
        self.visible = False
        self.shown_at: datetime | None = None
        self._hide_task: asyncio.Task | None = None

    async def on_fire(self, event: FireEvent) -> None:
        self._cancel_hide()
        self.visible = True
        self.shown_at = event.fired_at
        if self.on_show:
            self.on_show(event)
        logger.debug(f"{self.name} 覆盖层已显示（{self.config.duration_s} 秒）")
        self._hide_task = asyncio.create_task(self._hide_later(self.config.duration_s))

    def dismiss(self) -> bool:
        """提前关闭覆盖层。仅在允许关闭且正在显示时生效。"""
        if not (self.config.dismissible and self.visible):
            return False
        self._cancel_hide()
        self._hide()
        logger.info(f"{self.name} 覆盖层已被跳过")
        return True

    async def stop(self) -> None:
        self._cancel_hide()
        if self.visible:
            self._hide()

    async def _hide_later(self, delay_s: float) -> None:
        await asyncio.sleep(delay_s)
        self._hide_task = None
        self._hide()

    def _hide(self) -> None:
        self.visible = False
        if self.on_hide:
            self.on_hide()

    def _cancel_hide(self) -> None:
        if self._hide_task:
            self._hide_task.cancel()
            self._hide_task = None
