"""配置加载实用工具。"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any

from breakbot.config.schema import Config
from breakbot.utils.helpers import get_data_path

# 旧版扁平设置键 → 新版嵌套路径
_LEGACY_KEYS: dict[str, tuple[str, ...]] = {
    "isRunning": ("running",),
    "intervalMinutes": ("schedule", "intervalMinutes"),
    "cronExpression": ("schedule", "cronExpression"),
    "isScheduleEnabled": ("schedule", "quietWindow", "enabled"),
    "workStartTime": ("schedule", "quietWindow", "workStart"),
    "workEndTime": ("schedule", "quietWindow", "workEnd"),
    "lunchStartTime": ("schedule", "quietWindow", "lunchStart"),
    "lunchEndTime": ("schedule", "quietWindow", "lunchEnd"),
    "notificationTitle": ("sinks", "notification", "title"),
    "notificationBody": ("sinks", "notification", "body"),
    "isStandardNotificationEnabled": ("sinks", "notification", "enabled"),
    "isPopupEnabled": ("sinks", "popup", "enabled"),
    "isFullScreenEnabled": ("sinks", "fullscreen", "enabled"),
}

_LEGACY_MODES = {0: "interval", 1: "cron"}


def get_config_path() -> Path:
    """获取默认配置文件路径（~/.breakbot/config.json），必要时创建数据目录。"""
    return get_data_path() / "config.json"


def load_config(config_path: Path | None = None) -> Config:
    """
    从文件加载配置或创建默认配置。

    参数：
        config_path：配置文件的可选路径。如果未提供，则使用默认路径。

    返回：
        已加载的配置对象。
    """
    path = config_path or get_config_path()

    if path.exists():
        try:
            with open(path) as f:
                data = json.load(f)
            data = _migrate_config(data)
            return Config.model_validate(convert_keys(data))
        except (json.JSONDecodeError, ValueError) as e:
            print(f"警告：无法从 {path} 加载配置：{e}")
            print("使用默认配置。")

    return Config()


def save_config(config: Config, config_path: Path | None = None) -> None:
    """
    将配置保存到文件。

    参数：
        config：要保存的配置。
        config_path：要保存到的可选路径。如果未提供，则使用默认路径。
    """
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    # 转换为 camelCase 格式
    data = config.model_dump(mode="json")
    data = convert_to_camel(data)

    with open(path, "w") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def _migrate_config(data: dict) -> dict:
    """将旧版扁平设置（每个键一个值）迁移到当前的嵌套格式。"""
    if "mode" in data and not isinstance(data.get("schedule"), dict):
        mode = data.pop("mode")
        data.setdefault("schedule", {})["mode"] = _LEGACY_MODES.get(mode, mode)

    for key, target in _LEGACY_KEYS.items():
        if key not in data:
            continue
        value = data.pop(key)
        if key.endswith("Time") and isinstance(value, (int, float)):
            # 旧版以 Unix 时间戳保存时刻，只保留本地的时和分
            if value <= 0:
                continue
            value = datetime.fromtimestamp(value).strftime("%H:%M")
        node = data
        for part in target[:-1]:
            node = node.setdefault(part, {})
        node.setdefault(target[-1], value)
    return data


def convert_keys(data: Any) -> Any:
    """将 camelCase 键转换为 snake_case 以用于 Pydantic。"""
    if isinstance(data, dict):
        return {camel_to_snake(k): convert_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def convert_to_camel(data: Any) -> Any:
    """将 snake_case 键转换为 camelCase。"""
    if isinstance(data, dict):
        return {snake_to_camel(k): convert_to_camel(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_to_camel(item) for item in data]
    return data


def camel_to_snake(name: str) -> str:
    """将 camelCase 转换为 snake_case。"""
    result = []
    for i, char in enumerate(name):
        if char.isupper() and i > 0:
            result.append("_")
        result.append(char.lower())
    return "".join(result)


def snake_to_camel(name: str) -> str:
    """将 snake_case 转换为 camelCase。"""
    components = name.split("_")
    return components[0] + "".join(x.title() for x in components[1:])
