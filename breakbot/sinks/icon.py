"""图标闪烁动画接收器。"""

import asyncio
from typing import Callable

from breakbot.config.schema import IconAnimationConfig
from breakbot.schedule.types import FireEvent
from breakbot.sinks.base import BaseSink


class IconAnimationSink(BaseSink):
    """在默认图标和提醒图标之间切换若干次，最后恢复默认图标。"""

    name = "icon"

    def __init__(self, config: IconAnimationConfig, on_change: Callable[[str], None] | None = None):
        super().__init__(config)
        self.config: IconAnimationConfig = config
        self.on_change = on_change
        self.current_icon = config.default_icon
        self._task: asyncio.Task | None = None

    async def on_fire(self, event: FireEvent) -> None:
        # 上一次动画未结束时重新开始
        current = asyncio.current_task()
        if self._task and self._task is not current and not self._task.done():
            self._task.cancel()
        self._task = current
        try:
            for _ in range(self.config.flips):
                if self.current_icon == self.config.default_icon:
                    self._set_icon(self.config.alert_icon)
                else:
                    self._set_icon(self.config.default_icon)
                await asyncio.sleep(self.config.flip_interval_s)
        finally:
            self._set_icon(self.config.default_icon)

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
        self._set_icon(self.config.default_icon)

    def _set_icon(self, icon: str) -> None:
        if icon == self.current_icon:
            return
        self.current_icon = icon
        if self.on_change:
            self.on_change(icon)
