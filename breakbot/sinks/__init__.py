"""触发接收器：系统通知、覆盖层和图标动画。"""

from breakbot.sinks.base import BaseSink
from breakbot.sinks.manager import SinkManager

__all__ = ["BaseSink", "SinkManager"]
