"""活动 session 排序记录

记录当前打开的 tab 及其顺序，启动时据此决定重连哪些 session、按什么顺序。
每次 tab 结构变化后由 LayoutStore 从 flatten_tabs 重建。
"""

import json
from dataclasses import dataclass

from ..config import ACTIVE_CONNECTIONS_KEY, METRICS_ENABLED
from ..telemetry import get_logger, metrics
from .invariants import flatten_tabs
from .persistence import KeyValueStore
from .types import LayoutState, TabKind

logger = get_logger(__name__)


@dataclass(frozen=True)
class ActiveSession:
    """单个活动 session

    Attributes:
        tab_id: tab 标识
        session_id: 要重连的连接（复制出的 tab 指向原连接）
        order: 重连顺序
        tab_kind: terminal / file-browser
        protocol: SSH / SFTP / FTP
    """
    tab_id: str
    session_id: str
    order: int
    tab_kind: TabKind = TabKind.TERMINAL
    protocol: str | None = None

    def to_dict(self) -> dict:
        return {
            "tabId": self.tab_id,
            "sessionId": self.session_id,
            "order": self.order,
            "tabKind": self.tab_kind.value,
            "protocol": self.protocol,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ActiveSession":
        return cls(
            tab_id=data["tabId"],
            session_id=data["sessionId"],
            order=int(data["order"]),
            tab_kind=TabKind(data.get("tabKind", TabKind.TERMINAL.value)),
            protocol=data.get("protocol"),
        )


def build_active_sessions(state: LayoutState) -> list[ActiveSession]:
    """由布局状态生成排序记录"""
    return [
        ActiveSession(
            tab_id=tab.id,
            session_id=tab.original_session_id or tab.id,
            order=order,
            tab_kind=tab.kind,
            protocol=tab.protocol,
        )
        for order, tab in enumerate(flatten_tabs(state))
    ]


def save_active_sessions(sessions: list[ActiveSession], store: KeyValueStore) -> bool:
    try:
        store.set(ACTIVE_CONNECTIONS_KEY, json.dumps([s.to_dict() for s in sessions]))
        return True
    except Exception as e:
        logger.warning(f"[Sessions] Save failed: {e}")
        if METRICS_ENABLED:
            metrics.inc("persist.error", {"op": "save_sessions"})
        return False


def load_active_sessions(store: KeyValueStore) -> list[ActiveSession]:
    """读取排序记录，任何失败返回空列表"""
    try:
        raw = store.get(ACTIVE_CONNECTIONS_KEY)
        if raw is None:
            return []
        return [ActiveSession.from_dict(item) for item in json.loads(raw)]
    except Exception as e:
        logger.warning(f"[Sessions] Load failed: {e}")
        if METRICS_ENABLED:
            metrics.inc("persist.error", {"op": "load_sessions"})
        return []


def restoration_order(sessions: list[ActiveSession]) -> list[ActiveSession]:
    """按 order 排序"""
    return sorted(sessions, key=lambda s: s.order)
