"""breakbot 的配置模块。"""

from breakbot.config.loader import load_config, save_config, get_config_path
from breakbot.config.schema import Config

__all__ = ["Config", "load_config", "save_config", "get_config_path"]
