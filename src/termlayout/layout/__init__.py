"""Layout 模块

提供分屏布局引擎的核心组件：
- types: 数据类型定义（GridNode, Tab, Pane, LayoutState 等）
- grid: 网格树纯函数操作
- actions: reducer action 定义
- reducer: 布局状态流转
- invariants: 不变量检查、tab 展开
- snapshot: 快照编解码与结构校验
- persistence: 键值存储、快照加载/保存、旧格式迁移
- restoration: session 恢复就绪屏障
- sessions: 活动 session 排序记录
- store: LayoutStore 状态容器
- reconnect: 启动时按顺序重连 session
"""

from .types import (
    Orientation,
    SplitDirection,
    TabKind,
    ConnectionStatus,
    Leaf,
    Branch,
    GridNode,
    Tab,
    Pane,
    LayoutState,
)
from .grid import (
    find_leaf_path,
    insert_split,
    remove_leaf,
    simplify_tree,
    update_sizes,
    normalize_sizes,
    collect_leaf_ids,
)
from .actions import (
    SplitPane,
    RemovePane,
    ActivatePane,
    AddTab,
    RemoveTab,
    ActivateTab,
    MoveTab,
    ReorderTab,
    CloseOtherTabs,
    CloseTabsToRight,
    CloseTabsToLeft,
    MoveTabToNewPane,
    UpdateTabStatus,
    ReconnectTab,
    UpdateGridSizes,
    ResetLayout,
    RestoreLayout,
    action_from_dict,
)
from .reducer import reduce, create_default_state, initialize_state, rebuild_tab_index
from .invariants import check_invariants, flatten_tabs
from .snapshot import encode, decode
from .persistence import KeyValueStore, save_state, load_state, migrate_from_legacy
from .restoration import RestorationBarrier
from .sessions import ActiveSession, build_active_sessions, load_active_sessions
from .store import LayoutStore
from .reconnect import ReconnectResult, reconnect_sessions

__all__ = [
    # Types
    "Orientation",
    "SplitDirection",
    "TabKind",
    "ConnectionStatus",
    "Leaf",
    "Branch",
    "GridNode",
    "Tab",
    "Pane",
    "LayoutState",
    # Grid
    "find_leaf_path",
    "insert_split",
    "remove_leaf",
    "simplify_tree",
    "update_sizes",
    "normalize_sizes",
    "collect_leaf_ids",
    # Actions
    "SplitPane",
    "RemovePane",
    "ActivatePane",
    "AddTab",
    "RemoveTab",
    "ActivateTab",
    "MoveTab",
    "ReorderTab",
    "CloseOtherTabs",
    "CloseTabsToRight",
    "CloseTabsToLeft",
    "MoveTabToNewPane",
    "UpdateTabStatus",
    "ReconnectTab",
    "UpdateGridSizes",
    "ResetLayout",
    "RestoreLayout",
    "action_from_dict",
    # Reducer
    "reduce",
    "create_default_state",
    "initialize_state",
    "rebuild_tab_index",
    "check_invariants",
    "flatten_tabs",
    # Snapshot / Persistence
    "encode",
    "decode",
    "KeyValueStore",
    "save_state",
    "load_state",
    "migrate_from_legacy",
    # Restoration
    "RestorationBarrier",
    "ActiveSession",
    "build_active_sessions",
    "load_active_sessions",
    # Store
    "LayoutStore",
    "ReconnectResult",
    "reconnect_sessions",
]
