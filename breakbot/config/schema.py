"""使用 Pydantic 的配置模式。"""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from breakbot.schedule.types import ScheduleConfig

DEFAULT_TITLE = "久坐提醒"
DEFAULT_BODY = "已经过去一段时间了，起来活动一下，喝口水吧！💺☕️"


class NotificationSinkConfig(BaseModel):
    """系统通知横幅配置。"""
    enabled: bool = True
    title: str = DEFAULT_TITLE
    body: str = DEFAULT_BODY
    sound: bool = True


class OverlaySinkConfig(BaseModel):
    """覆盖层配置（屏幕中央弹窗或全屏遮罩）。"""
    enabled: bool = False
    duration_s: float = 5.0  # 自动消失前的显示时长
    dismissible: bool = False  # 是否允许提前关闭（"跳过本次提醒"）


class IconAnimationConfig(BaseModel):
    """菜单栏图标闪烁动画配置。"""
    enabled: bool = True
    flips: int = 10
    flip_interval_s: float = 0.5
    default_icon: str = "figure.seated.side.air.distribution.upper"
    alert_icon: str = "figure.walk"


class SinksConfig(BaseModel):
    """触发接收器的配置。"""
    notification: NotificationSinkConfig = Field(default_factory=NotificationSinkConfig)
    popup: OverlaySinkConfig = Field(
        default_factory=lambda: OverlaySinkConfig(enabled=True, duration_s=5.0)
    )
    fullscreen: OverlaySinkConfig = Field(
        default_factory=lambda: OverlaySinkConfig(enabled=False, duration_s=8.0, dismissible=True)
    )
    icon: IconAnimationConfig = Field(default_factory=IconAnimationConfig)


class Config(BaseSettings):
    """breakbot 的根配置。"""
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    running: bool = False  # 重启后据此恢复提醒
    sinks: SinksConfig = Field(default_factory=SinksConfig)

    model_config = SettingsConfigDict(env_prefix="BREAKBOT_", env_nested_delimiter="__")
