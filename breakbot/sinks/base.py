"""触发接收器的基类接口。"""

from abc import ABC, abstractmethod
from typing import Any

from breakbot.schedule.types import FireEvent


class BaseSink(ABC):
    """
    触发接收器实现的抽象基类。

    每个接收器（系统通知、弹窗、全屏遮罩、图标动画）都独立地
    响应触发事件。接收器是否启用由配置决定，而不是失败。
    """

    name: str = "base"

    def __init__(self, config: Any):
        """
        初始化接收器。

        参数:
            config: 接收器特定的配置。
        """
        self.config = config

    @property
    def enabled(self) -> bool:
        """每次分发时从配置读取。"""
        return bool(getattr(self.config, "enabled", True))

    @abstractmethod
    async def on_fire(self, event: FireEvent) -> None:
        """
        响应一次提醒触发。

        参数:
            event: 触发事件。
        """
        pass

    async def stop(self) -> None:
        """停止接收器并清理资源。"""
        pass
