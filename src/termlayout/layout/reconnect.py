"""启动时按顺序重连 session

按活动 session 排序记录依次调用外部连接服务，
每个 session 通过 RestorationBarrier 等待就绪（或超时放行）后再处理下一个。
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from ..telemetry import format_tab_log, get_logger
from .actions import UpdateTabStatus
from .restoration import RestorationBarrier
from .sessions import ActiveSession, restoration_order
from .store import LayoutStore
from .types import ConnectionStatus

logger = get_logger(__name__)

# 外部连接服务：发起连接，返回是否成功发起
Connector = Callable[[ActiveSession], Awaitable[bool]]


@dataclass
class ReconnectResult:
    """重连结果"""
    restored: list[str] = field(default_factory=list)  # 收到就绪信号
    timed_out: list[str] = field(default_factory=list)  # 超时放行
    failed: list[str] = field(default_factory=list)  # 连接发起失败
    skipped: list[str] = field(default_factory=list)  # tab 已不在布局中


async def reconnect_sessions(
    store: LayoutStore,
    barrier: RestorationBarrier,
    connect: Connector,
    sessions: list[ActiveSession] | None = None,
    timeout: float | None = None,
) -> ReconnectResult:
    """依次重连 session

    Args:
        store: 布局容器
        barrier: 就绪屏障
        connect: 外部连接服务
        sessions: 要重连的 session，None 使用 store 当前记录
        timeout: 每个 session 的等待超时（秒），None 使用屏障默认值

    Returns:
        ReconnectResult
    """
    result = ReconnectResult()
    ordered = restoration_order(sessions if sessions is not None else store.active_sessions)

    for session in ordered:
        tab_id = session.tab_id
        if tab_id not in store.state.tab_to_pane_index:
            result.skipped.append(tab_id)
            continue

        store.dispatch(UpdateTabStatus(tab_id=tab_id, status=ConnectionStatus.CONNECTING))
        try:
            started = await connect(session)
        except Exception as e:
            logger.error(format_tab_log("Reconnect", tab_id, f"Connect failed: {e}"))
            started = False

        if not started:
            store.dispatch(UpdateTabStatus(tab_id=tab_id, status=ConnectionStatus.DISCONNECTED))
            result.failed.append(tab_id)
            continue

        if await barrier.wait(tab_id, timeout):
            store.dispatch(UpdateTabStatus(tab_id=tab_id, status=ConnectionStatus.CONNECTED))
            result.restored.append(tab_id)
        else:
            result.timed_out.append(tab_id)

    logger.info(
        f"[Reconnect] restored={len(result.restored)} timed_out={len(result.timed_out)} "
        f"failed={len(result.failed)} skipped={len(result.skipped)}"
    )
    return result
