"""termlayout - 分屏 session 布局引擎"""

__version__ = "0.1.0"
