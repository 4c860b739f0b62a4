"""RestorationBarrier - session 恢复就绪屏障

布局从磁盘恢复后，session 需要按顺序重新建立连接。
后续步骤等待前一个 session 的就绪信号，而不是固定延迟：

    barrier = RestorationBarrier()

    # 重连流程
    ready = await barrier.register(tab_id, timeout=5.0)

    # 连接服务回调
    barrier.signal_ready(tab_id)

语义：
- register 返回的 Future 在 signal_ready 或超时后完成（超时放行，结果为 False）
- signal_ready 先于 register 到达时记入 early signals，下一次 register 立即完成
- 同一 id 重复 register 时新注册替换旧注册，旧等待者立即放行（结果为 False）
- clear_all 取消所有定时器、放行所有等待者并清空 early signals
"""

import asyncio
from dataclasses import dataclass

from ..config import METRICS_ENABLED, RESTORATION_TIMEOUT_SECONDS
from ..telemetry import format_tab_log, get_logger, metrics

logger = get_logger(__name__)


@dataclass
class PendingRestoration:
    """等待中的注册"""
    session_id: str
    future: "asyncio.Future[bool]"
    timeout_handle: asyncio.TimerHandle


class RestorationBarrier:
    """按 session id 的一次性就绪屏障

    所有方法需在同一个 event loop 中调用。
    """

    def __init__(self, default_timeout: float = RESTORATION_TIMEOUT_SECONDS):
        self._default_timeout = default_timeout
        self._pending: dict[str, PendingRestoration] = {}
        self._early_signals: set[str] = set()

    def register(self, session_id: str, timeout: float | None = None) -> "asyncio.Future[bool]":
        """注册等待

        Args:
            session_id: session 标识
            timeout: 超时（秒），None 使用默认值

        Returns:
            Future，就绪时结果为 True，超时/被替换/被清理时为 False
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[bool] = loop.create_future()

        if session_id in self._early_signals:
            self._early_signals.discard(session_id)
            future.set_result(True)
            logger.info(format_tab_log("Restoration", session_id, "Early signal consumed"))
            if METRICS_ENABLED:
                metrics.inc("restoration.early")
            return future

        previous = self._pending.pop(session_id, None)
        if previous is not None:
            logger.debug(format_tab_log("Restoration", session_id, "Replacing pending registration"))
            self._release(previous)

        delay = self._default_timeout if timeout is None else timeout
        handle = loop.call_later(delay, self._on_timeout, session_id, future)
        self._pending[session_id] = PendingRestoration(session_id, future, handle)
        return future

    async def wait(self, session_id: str, timeout: float | None = None) -> bool:
        """register 后等待完成

        Returns:
            是否收到就绪信号（False 表示超时放行）
        """
        return await self.register(session_id, timeout)

    def signal_ready(self, session_id: str) -> None:
        """发送就绪信号

        没有等待中的注册时记为 early signal。
        """
        entry = self._pending.pop(session_id, None)
        if entry is None:
            self._early_signals.add(session_id)
            logger.debug(format_tab_log("Restoration", session_id, "Early signal stored"))
            return

        entry.timeout_handle.cancel()
        if not entry.future.done():
            entry.future.set_result(True)
        logger.info(format_tab_log("Restoration", session_id, "Ready signal received"))
        if METRICS_ENABLED:
            metrics.inc("restoration.ready")

    def clear_all(self) -> None:
        """取消所有定时器并清空 early signals

        已完成的注册不受影响；等待中的注册被放行。
        """
        for entry in self._pending.values():
            self._release(entry)
        count = len(self._pending)
        self._pending.clear()
        self._early_signals.clear()
        if count:
            logger.info(f"[Restoration] Cleared {count} pending registrations")

    def _on_timeout(self, session_id: str, future: "asyncio.Future[bool]") -> None:
        entry = self._pending.get(session_id)
        if entry is not None and entry.future is future:
            del self._pending[session_id]
        if not future.done():
            future.set_result(False)
            logger.info(format_tab_log("Restoration", session_id, "Timeout, proceeding"))
            if METRICS_ENABLED:
                metrics.inc("restoration.timeout")

    @staticmethod
    def _release(entry: PendingRestoration) -> None:
        entry.timeout_handle.cancel()
        if not entry.future.done():
            entry.future.set_result(False)

    # === 状态查询（用于测试）===

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def has_pending(self, session_id: str) -> bool:
        return session_id in self._pending

    def has_early_signal(self, session_id: str) -> bool:
        return session_id in self._early_signals
