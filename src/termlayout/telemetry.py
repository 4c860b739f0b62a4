"""Telemetry - 日志与计数器

- get_logger / setup_logging: 标准库 logging，消息以 [Component] 开头
- format_tab_log: 带 tab 短 id 的消息前缀
- metrics: 进程内计数器（reducer.ok/noop/error, persist.error, restoration.*）
"""

import logging

from .config import LOG_LEVEL

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def get_logger(name: str) -> logging.Logger:
    """按模块名获取 logger（传入 __name__）"""
    return logging.getLogger(name)


def setup_logging(level: str | None = None) -> None:
    """配置根 logger，只在 main() 中调用一次

    Args:
        level: 日志级别，None 时取 TERMLAYOUT_LOG_LEVEL
    """
    logging.basicConfig(level=(level or LOG_LEVEL).upper(), format=_LOG_FORMAT)


def format_tab_log(module: str, tab_id: str, msg: str) -> str:
    """[module:tab_id 前 8 位] msg"""
    tab_short = tab_id[:8] if tab_id else "unknown"
    return f"[{module}:{tab_short}] {msg}"


class Metrics:
    """内存计数器

    key 由指标名和排序后的标签组成，如 `persist.error{op=save}`。
    测试通过 get_counter 断言，conftest 在每个用例前后 reset。
    """

    def __init__(self):
        self._counters: dict[str, int] = {}

    def inc(self, name: str, labels: dict[str, str] | None = None, value: int = 1) -> None:
        """计数器 +value

        Args:
            name: 指标名（如 "reducer.noop"）
            labels: 可选标签（如 {"action": "ADD_TAB"}）
            value: 增量
        """
        key = self._key(name, labels)
        self._counters[key] = self._counters.get(key, 0) + value

    def get_counter(self, name: str, labels: dict[str, str] | None = None) -> int:
        return self._counters.get(self._key(name, labels), 0)

    def reset(self) -> None:
        self._counters.clear()

    @staticmethod
    def _key(name: str, labels: dict[str, str] | None) -> str:
        if not labels:
            return name
        return name + "{" + ",".join(f"{k}={v}" for k, v in sorted(labels.items())) + "}"


# 全局计数器，METRICS_ENABLED 关闭时调用方不写入
metrics = Metrics()
