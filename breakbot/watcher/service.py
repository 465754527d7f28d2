"""配置监视服务 - 定期检查配置文件并把变更应用到运行中的调度器。"""

import asyncio
from pathlib import Path
from typing import Any, Callable, Coroutine

from loguru import logger

from breakbot.config.loader import load_config
from breakbot.config.schema import Config

# 默认间隔：2 秒
DEFAULT_WATCH_INTERVAL_S = 2.0


class ConfigWatcher:
    """
    定期轮询配置文件的服务。

    CLI 命令（start、stop、schedule、quiet、sinks）只写配置文件；
    运行中的守护进程通过此服务发现变更并调用 on_change。
    """

    def __init__(
        self,
        config_path: Path,
        on_change: Callable[[Config], Coroutine[Any, Any, None]] | None = None,
        interval_s: float = DEFAULT_WATCH_INTERVAL_S,
    ):
        self.config_path = config_path
        self.on_change = on_change
        self.interval_s = interval_s
        self._running = False
        self._task: asyncio.Task | None = None
        self._last_content: str | None = None

    def _read_config_file(self) -> str | None:
        """读取配置文件内容。"""
        if self.config_path.exists():
            try:
                return self.config_path.read_text()
            except OSError:
                return None
        return None

    async def start(self) -> None:
        """启动监视服务。"""
        self._last_content = self._read_config_file()
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"配置监视已启动（每 {self.interval_s} 秒）")

    def stop(self) -> None:
        """停止监视服务。"""
        self._running = False
        if self._task:
            self._task.cancel()
            self._task = None

    async def _run_loop(self) -> None:
        """主监视循环。"""
        while self._running:
            try:
                await asyncio.sleep(self.interval_s)
                if self._running:
                    await self.check_now()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"配置监视错误：{e}")

    def mark_seen(self) -> None:
        """将当前文件内容记为已处理（守护进程自己写入配置后调用）。"""
        self._last_content = self._read_config_file()

    async def check_now(self) -> bool:
        """检查一次配置文件。如果发现变更并已应用则返回 True。"""
        content = self._read_config_file()
        if content is None or content == self._last_content:
            return False

        self._last_content = content
        logger.info(f"配置已变更：{self.config_path}")
        config = load_config(self.config_path)
        if self.on_change:
            await self.on_change(config)
        return True
