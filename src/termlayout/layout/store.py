"""LayoutStore - 布局状态容器

单写者容器，串行化所有 action：
- dispatch: 通过 reducer 流转状态
- 状态变化后持久化快照、刷新活动 session 排序记录
- 通知订阅者（异常隔离）
- 提供派生视图（活动 pane / tab / 连接）

启动流程（LayoutStore.open）：
1. 清理旧格式数据
2. 加载快照（失败降级为初始状态）
3. 重建索引，所有 tab 置为 disconnected
"""

import logging
from collections.abc import Callable
from typing import Any

from ..config import METRICS_ENABLED
from ..telemetry import get_logger, metrics
from .actions import Action, action_name
from .invariants import check_invariants, flatten_tabs
from .persistence import KeyValueStore, load_state, migrate_from_legacy, save_state
from .reducer import create_default_state, initialize_state, reduce
from .sessions import ActiveSession, build_active_sessions, save_active_sessions
from .types import LayoutState, Pane, Tab

logger = get_logger(__name__)

# 订阅回调 (old_state, new_state, action)
Subscriber = Callable[[LayoutState, LayoutState, Any], Any]


class LayoutStore:
    """布局状态容器

    Attributes:
        state: 当前状态（不可变，每次 dispatch 替换）
        kv_store: 持久化存储，None 表示仅内存
    """

    def __init__(
        self,
        state: LayoutState | None = None,
        kv_store: KeyValueStore | None = None,
        autosave: bool = True,
    ):
        self._state = state if state is not None else create_default_state()
        self._kv_store = kv_store
        self._autosave = autosave and kv_store is not None
        self._subscribers: list[Subscriber] = []
        self._active_sessions = build_active_sessions(self._state)

    @classmethod
    def open(cls, kv_store: KeyValueStore, autosave: bool = True) -> "LayoutStore":
        """从持久化存储打开

        Args:
            kv_store: 持久化存储
            autosave: 是否在每次变化后保存
        """
        migrate_from_legacy(kv_store)
        state = initialize_state(load_state(kv_store))
        logger.info(f"[Store] Opened with {len(state.panes)} panes")
        return cls(state=state, kv_store=kv_store, autosave=autosave)

    # === 属性 ===

    @property
    def state(self) -> LayoutState:
        return self._state

    @property
    def active_sessions(self) -> list[ActiveSession]:
        return list(self._active_sessions)

    # === 核心方法 ===

    def dispatch(self, action: Action) -> LayoutState:
        """应用 action

        Returns:
            流转后的状态；无变化时为原状态对象
        """
        old_state = self._state
        new_state = reduce(old_state, action)
        if new_state is old_state:
            logger.debug(f"[Store] {action_name(action)} made no change")
            return old_state

        self._state = new_state

        if logger.isEnabledFor(logging.DEBUG):
            violations = check_invariants(new_state)
            if violations:
                logger.warning(f"[Store] Invariant violations after {action_name(action)}: {violations}")

        if self._autosave:
            save_state(new_state, self._kv_store)

        sessions = build_active_sessions(new_state)
        if sessions != self._active_sessions:
            self._active_sessions = sessions
            if self._autosave:
                save_active_sessions(sessions, self._kv_store)

        self._notify(old_state, new_state, action)
        return new_state

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """订阅状态变化

        Returns:
            取消订阅函数
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def save(self) -> bool:
        """立即保存当前状态"""
        if self._kv_store is None:
            return False
        return save_state(self._state, self._kv_store)

    def _notify(self, old_state: LayoutState, new_state: LayoutState, action: Action) -> None:
        for callback in list(self._subscribers):
            try:
                callback(old_state, new_state, action)
            except Exception as e:
                logger.error(f"[Store] Subscriber failed: {e}")
                if METRICS_ENABLED:
                    metrics.inc("store.subscriber_error")

    # === 派生视图 ===

    @property
    def active_pane(self) -> Pane | None:
        return self._state.active_pane

    @property
    def active_tab(self) -> Tab | None:
        pane = self.active_pane
        return pane.active_tab if pane else None

    @property
    def active_connection(self) -> dict | None:
        """当前活动 tab 的连接信息（驱动侧边面板联动）"""
        tab = self.active_tab
        if tab is None:
            return None
        return {
            "connectionId": tab.id,
            "name": tab.name,
            "protocol": tab.protocol or "",
            "host": tab.host,
            "username": tab.username,
            "status": tab.connection_status.value,
        }

    def tabs(self) -> list[Tab]:
        """按稳定顺序展开所有 tab"""
        return flatten_tabs(self._state)
