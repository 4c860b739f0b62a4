"""Reducer Action 定义

每个 action 是一个不可变 dataclass，ACTION_TYPES 维护
wire 名称（如 "SPLIT_PANE"）到类型的映射，供 HTTP 层反序列化。
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Union

from .snapshot import is_valid_tab
from .types import ConnectionStatus, SplitDirection, Tab

if TYPE_CHECKING:
    from .types import LayoutState


@dataclass(frozen=True)
class SplitPane:
    pane_id: str
    direction: SplitDirection
    tab: Tab | None = None


@dataclass(frozen=True)
class RemovePane:
    pane_id: str


@dataclass(frozen=True)
class ActivatePane:
    pane_id: str


@dataclass(frozen=True)
class AddTab:
    pane_id: str
    tab: Tab


@dataclass(frozen=True)
class RemoveTab:
    pane_id: str
    tab_id: str


@dataclass(frozen=True)
class ActivateTab:
    pane_id: str
    tab_id: str


@dataclass(frozen=True)
class MoveTab:
    """跨 pane 移动 tab；source == target 时为同 pane 重排"""
    source_pane_id: str
    target_pane_id: str
    tab_id: str
    target_index: int | None = None  # None = 末尾


@dataclass(frozen=True)
class ReorderTab:
    pane_id: str
    from_index: int
    to_index: int


@dataclass(frozen=True)
class CloseOtherTabs:
    pane_id: str
    tab_id: str


@dataclass(frozen=True)
class CloseTabsToRight:
    pane_id: str
    tab_id: str


@dataclass(frozen=True)
class CloseTabsToLeft:
    pane_id: str
    tab_id: str


@dataclass(frozen=True)
class MoveTabToNewPane:
    pane_id: str
    tab_id: str
    direction: SplitDirection


@dataclass(frozen=True)
class UpdateTabStatus:
    tab_id: str
    status: ConnectionStatus


@dataclass(frozen=True)
class ReconnectTab:
    """标记 tab 重新连接：状态置为 connecting，重连次数 +1"""
    tab_id: str


@dataclass(frozen=True)
class UpdateGridSizes:
    path: tuple[int, ...]
    sizes: tuple[float, ...]


@dataclass(frozen=True)
class ResetLayout:
    pass


@dataclass(frozen=True)
class RestoreLayout:
    state: "LayoutState" = field(compare=False)


Action = Union[
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
]

# wire 名称 → action 类型
ACTION_TYPES: dict[str, type] = {
    "SPLIT_PANE": SplitPane,
    "REMOVE_PANE": RemovePane,
    "ACTIVATE_PANE": ActivatePane,
    "ADD_TAB": AddTab,
    "REMOVE_TAB": RemoveTab,
    "ACTIVATE_TAB": ActivateTab,
    "MOVE_TAB": MoveTab,
    "REORDER_TAB": ReorderTab,
    "CLOSE_OTHER_TABS": CloseOtherTabs,
    "CLOSE_TABS_TO_RIGHT": CloseTabsToRight,
    "CLOSE_TABS_TO_LEFT": CloseTabsToLeft,
    "MOVE_TAB_TO_NEW_PANE": MoveTabToNewPane,
    "UPDATE_TAB_STATUS": UpdateTabStatus,
    "RECONNECT_TAB": ReconnectTab,
    "UPDATE_GRID_SIZES": UpdateGridSizes,
    "RESET_LAYOUT": ResetLayout,
}

_ACTION_NAMES = {cls: name for name, cls in ACTION_TYPES.items()}
_ACTION_NAMES[RestoreLayout] = "RESTORE_LAYOUT"


def action_name(action: object) -> str:
    """获取 action 的 wire 名称（用于日志和指标）"""
    return _ACTION_NAMES.get(type(action), type(action).__name__)


def action_from_dict(data: dict) -> Action:
    """从 wire 字典构造 action

    字段使用 camelCase（paneId, tabId, targetIndex ...）。
    RESTORE_LAYOUT 不支持从外部构造。

    Raises:
        ValueError: 未知 type、枚举值非法或 tab 结构非法
        KeyError: 缺少必填字段
        TypeError: 字段类型错误
    """
    kind = data.get("type")
    cls = ACTION_TYPES.get(kind)
    if cls is None:
        raise ValueError(f"Unknown action type: {kind}")

    if cls is SplitPane:
        tab = data.get("tab")
        return SplitPane(
            pane_id=_str(data, "paneId"),
            direction=SplitDirection(data["direction"]),
            tab=_tab(tab) if tab is not None else None,
        )
    if cls is AddTab:
        return AddTab(pane_id=_str(data, "paneId"), tab=_tab(data["tab"]))
    if cls is MoveTab:
        target_index = data.get("targetIndex")
        return MoveTab(
            source_pane_id=_str(data, "sourcePaneId"),
            target_pane_id=_str(data, "targetPaneId"),
            tab_id=_str(data, "tabId"),
            target_index=_int(data, "targetIndex") if target_index is not None else None,
        )
    if cls is ReorderTab:
        return ReorderTab(
            pane_id=_str(data, "paneId"),
            from_index=_int(data, "fromIndex"),
            to_index=_int(data, "toIndex"),
        )
    if cls is MoveTabToNewPane:
        return MoveTabToNewPane(
            pane_id=_str(data, "paneId"),
            tab_id=_str(data, "tabId"),
            direction=SplitDirection(data["direction"]),
        )
    if cls is UpdateTabStatus:
        return UpdateTabStatus(tab_id=_str(data, "tabId"), status=ConnectionStatus(data["status"]))
    if cls is ReconnectTab:
        return ReconnectTab(tab_id=_str(data, "tabId"))
    if cls is UpdateGridSizes:
        return UpdateGridSizes(
            path=tuple(int(i) for i in data["path"]),
            sizes=tuple(float(s) for s in data["sizes"]),
        )
    if cls is ResetLayout:
        return ResetLayout()
    if cls in (RemovePane, ActivatePane):
        return cls(pane_id=_str(data, "paneId"))
    # RemoveTab / ActivateTab / CloseOtherTabs / CloseTabsToRight / CloseTabsToLeft
    return cls(pane_id=_str(data, "paneId"), tab_id=_str(data, "tabId"))


def _str(data: dict, key: str) -> str:
    value = data[key]
    if not isinstance(value, str):
        raise TypeError(f"{key} must be a string")
    return value


def _int(data: dict, key: str) -> int:
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{key} must be an integer")
    return value


def _tab(value: object) -> Tab:
    """按快照的 tab 校验规则构造，保证写入状态的 tab 能被重新加载"""
    if not is_valid_tab(value):
        raise ValueError("tab must be an object with string id/name and valid kind/status")
    return Tab.from_dict(value)
