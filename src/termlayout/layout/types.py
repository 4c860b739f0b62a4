"""Layout 模块数据类型定义

包含：
- Orientation / SplitDirection: 分屏方向
- TabKind / ConnectionStatus: tab 元数据枚举
- Leaf / Branch: 网格树节点（GridNode）
- Tab / Pane / LayoutState: 布局状态

所有类型均为不可变 dataclass，reducer 每次流转生成新对象。
to_dict / from_dict 使用快照格式的 camelCase 字段名。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class Orientation(Enum):
    """Branch 排列方向"""
    HORIZONTAL = "horizontal"  # 子节点左右排列
    VERTICAL = "vertical"  # 子节点上下排列


class SplitDirection(Enum):
    """分屏方向

    新 pane 相对原 pane 的位置。
    """
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"

    @property
    def orientation(self) -> Orientation:
        """left/right → horizontal，up/down → vertical"""
        if self in (SplitDirection.LEFT, SplitDirection.RIGHT):
            return Orientation.HORIZONTAL
        return Orientation.VERTICAL

    @property
    def new_first(self) -> bool:
        """新 pane 是否排在原 pane 之前"""
        return self in (SplitDirection.LEFT, SplitDirection.UP)


class TabKind(Enum):
    """Tab 类型"""
    TERMINAL = "terminal"  # SSH PTY
    FILE_BROWSER = "file-browser"  # SFTP / FTP


class ConnectionStatus(Enum):
    """连接状态（仅展示用，权威状态在外部连接服务）"""
    CONNECTED = "connected"
    CONNECTING = "connecting"
    DISCONNECTED = "disconnected"
    PENDING = "pending"


@dataclass(frozen=True)
class Leaf:
    """叶子节点，对应一个 pane"""
    group_id: str

    def to_dict(self) -> dict:
        return {"type": "leaf", "groupId": self.group_id}


@dataclass(frozen=True)
class Branch:
    """分支节点

    Attributes:
        orientation: 子节点排列方向
        children: 子节点（至少 2 个）
        sizes: 百分比尺寸，与 children 一一对应，总和约 100
    """
    orientation: Orientation
    children: tuple["GridNode", ...]
    sizes: tuple[float, ...]

    def to_dict(self) -> dict:
        return {
            "type": "branch",
            "orientation": self.orientation.value,
            "children": [child.to_dict() for child in self.children],
            "sizes": list(self.sizes),
        }


GridNode = Union[Leaf, Branch]


def grid_from_dict(data: dict) -> GridNode:
    """从字典构造网格树（调用方需先校验结构）"""
    if data["type"] == "leaf":
        return Leaf(group_id=data["groupId"])
    return Branch(
        orientation=Orientation(data["orientation"]),
        children=tuple(grid_from_dict(child) for child in data["children"]),
        sizes=tuple(float(size) for size in data["sizes"]),
    )


@dataclass(frozen=True)
class Tab:
    """Tab - 一个交互式 session 的句柄

    身份由 id 决定，其余字段为展示/重连元数据。

    Attributes:
        id: tab 标识（同时作为连接标识）
        name: 显示名称
        kind: terminal / file-browser
        protocol: SSH / SFTP / FTP
        host: 主机
        username: 用户名
        original_session_id: 复制出的 tab 指向的原连接
        connection_status: 连接状态
        reconnect_count: 重连次数
    """
    id: str
    name: str
    kind: TabKind = TabKind.TERMINAL
    protocol: str | None = None
    host: str | None = None
    username: str | None = None
    original_session_id: str | None = None
    connection_status: ConnectionStatus = ConnectionStatus.PENDING
    reconnect_count: int = 0

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "kind": self.kind.value,
            "connectionStatus": self.connection_status.value,
            "reconnectCount": self.reconnect_count,
        }
        # 可选字段为空时不输出
        for key, value in (
            ("protocol", self.protocol),
            ("host", self.host),
            ("username", self.username),
            ("originalSessionId", self.original_session_id),
        ):
            if value is not None:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Tab":
        return cls(
            id=data["id"],
            name=data["name"],
            kind=TabKind(data.get("kind", TabKind.TERMINAL.value)),
            protocol=data.get("protocol"),
            host=data.get("host"),
            username=data.get("username"),
            original_session_id=data.get("originalSessionId"),
            connection_status=ConnectionStatus(
                data.get("connectionStatus", ConnectionStatus.DISCONNECTED.value)
            ),
            reconnect_count=int(data.get("reconnectCount", 0)),
        )


@dataclass(frozen=True)
class Pane:
    """Pane（Group）- 承载若干 tab 的矩形区域"""
    id: str
    tabs: tuple[Tab, ...] = ()
    active_tab_id: str | None = None

    def index_of(self, tab_id: str) -> int:
        """tab 在 pane 中的位置，不存在返回 -1"""
        for i, tab in enumerate(self.tabs):
            if tab.id == tab_id:
                return i
        return -1

    def get_tab(self, tab_id: str) -> Tab | None:
        index = self.index_of(tab_id)
        return self.tabs[index] if index >= 0 else None

    @property
    def active_tab(self) -> Tab | None:
        if self.active_tab_id is None:
            return None
        return self.get_tab(self.active_tab_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tabs": [tab.to_dict() for tab in self.tabs],
            "activeTabId": self.active_tab_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Pane":
        return cls(
            id=data["id"],
            tabs=tuple(Tab.from_dict(tab) for tab in data["tabs"]),
            active_tab_id=data.get("activeTabId"),
        )


@dataclass(frozen=True)
class LayoutState:
    """完整布局状态

    Attributes:
        panes: {pane_id: Pane}
        active_pane_id: 当前活动 pane
        grid_layout: 网格树
        next_pane_id: 下一个 pane id 计数器
        tab_to_pane_index: {tab_id: pane_id}，可由 panes 重建的缓存
    """
    panes: dict[str, Pane]
    active_pane_id: str
    grid_layout: GridNode
    next_pane_id: int
    tab_to_pane_index: dict[str, str] = field(default_factory=dict)

    @property
    def active_pane(self) -> Pane | None:
        return self.panes.get(self.active_pane_id)

    def to_dict(self) -> dict:
        return {
            "panes": {pane_id: pane.to_dict() for pane_id, pane in self.panes.items()},
            "activePaneId": self.active_pane_id,
            "gridLayout": self.grid_layout.to_dict(),
            "nextPaneId": self.next_pane_id,
            "tabToPaneIndex": dict(self.tab_to_pane_index),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LayoutState":
        """从字典反序列化

        tabToPaneIndex 缺失时（旧格式）由 panes 重建。
        """
        panes = {pane_id: Pane.from_dict(pane) for pane_id, pane in data["panes"].items()}
        index = data.get("tabToPaneIndex")
        if index is None:
            index = {tab.id: pane_id for pane_id, pane in panes.items() for tab in pane.tabs}
        return cls(
            panes=panes,
            active_pane_id=data["activePaneId"],
            grid_layout=grid_from_dict(data["gridLayout"]),
            next_pane_id=int(data["nextPaneId"]),
            tab_to_pane_index=dict(index),
        )
