"""系统通知横幅接收器。"""

import asyncio
import platform
import shutil
from typing import Awaitable, Callable

from loguru import logger

from breakbot.config.schema import NotificationSinkConfig
from breakbot.schedule.types import FireEvent
from breakbot.sinks.base import BaseSink

FALLBACK_TITLE = "久坐提醒"
FALLBACK_BODY = "该起来活动啦！"

Sender = Callable[[str, str, bool], Awaitable[None]]


def _osascript_quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


async def send_system_notification(title: str, body: str, sound: bool = True) -> None:
    """
    通过平台命令发送系统通知。

    macOS 使用 osascript，Linux 使用 notify-send。
    """
    system = platform.system()
    if system == "Darwin":
        script = f"display notification {_osascript_quote(body)} with title {_osascript_quote(title)}"
        if sound:
            script += ' sound name "default"'
        cmd = ["osascript", "-e", script]
    elif shutil.which("notify-send"):
        cmd = ["notify-send", "--app-name=breakbot", title, body]
    else:
        raise RuntimeError(f"当前平台（{system}）没有可用的通知命令")

    process = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.DEVNULL,
        stderr=asyncio.subprocess.PIPE,
    )
    _, stderr = await process.communicate()
    if process.returncode != 0:
        raise RuntimeError(f"{cmd[0]} 退出码 {process.returncode}：{stderr.decode(errors='replace').strip()}")


class NotificationSink(BaseSink):
    """发送系统通知横幅。"""

    name = "notification"

    def __init__(self, config: NotificationSinkConfig, sender: Sender | None = None):
        super().__init__(config)
        self.config: NotificationSinkConfig = config
        self._sender = sender or send_system_notification

    @property
    def title(self) -> str:
        return self.config.title or FALLBACK_TITLE

    @property
    def body(self) -> str:
        return self.config.body or FALLBACK_BODY

    async def on_fire(self, event: FireEvent) -> None:
        await self._sender(self.title, self.body, self.config.sound)
        logger.debug(f"已发送系统通知：{self.title}")
