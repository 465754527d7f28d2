"""
breakbot - 轻量级久坐提醒工具
"""

__version__ = "0.1.0"
__logo__ = "🪑"
