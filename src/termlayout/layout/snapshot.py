"""快照编解码

快照格式: {"version": 1, "data": <LayoutState>}

- encode: 包装版本信封并序列化为 JSON
- decode: 解析并校验，任何失败返回 None（不抛异常，不部分应用）

结构校验递归覆盖整棵网格树，拒绝任何既不是合法 leaf
也不是合法 branch 的节点。
"""

import json
from typing import Any

from ..config import STATE_VERSION
from ..telemetry import get_logger
from .invariants import check_invariants
from .types import ConnectionStatus, LayoutState, Orientation, TabKind

logger = get_logger(__name__)

_ORIENTATIONS = {o.value for o in Orientation}
_STATUSES = {s.value for s in ConnectionStatus}
_KINDS = {k.value for k in TabKind}


def encode(state: LayoutState) -> str:
    """序列化为带版本的 JSON 文本"""
    return json.dumps({"version": STATE_VERSION, "data": state.to_dict()}, ensure_ascii=False)


def decode(text: str) -> LayoutState | None:
    """解析快照文本

    以下情况返回 None：
    - 非合法 JSON
    - 信封结构错误（缺少 version / data）
    - version 不等于当前版本
    - data 结构校验失败
    - 解码后的状态违反布局不变量（叶子与 pane 不对应、空 branch 等）

    Args:
        text: 快照文本

    Returns:
        LayoutState，失败返回 None
    """
    try:
        parsed = json.loads(text)
    except (TypeError, ValueError) as e:
        logger.debug(f"[Snapshot] Invalid JSON: {e}")
        return None

    if not is_envelope(parsed):
        logger.debug("[Snapshot] Bad envelope")
        return None
    if parsed["version"] != STATE_VERSION:
        logger.debug(f"[Snapshot] Version mismatch: {parsed['version']} != {STATE_VERSION}")
        return None
    try:
        if not is_valid_state(parsed["data"]):
            logger.debug("[Snapshot] Structural validation failed")
            return None
        state = LayoutState.from_dict(parsed["data"])
    except Exception as e:
        logger.debug(f"[Snapshot] Conversion failed: {e!r}")
        return None

    # 形状正确但违反布局不变量的快照同样整体拒绝
    violations = check_invariants(state)
    if violations:
        logger.debug(f"[Snapshot] Invariant violations: {violations}")
        return None
    return state


# === 结构校验 ===

def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_choice(value: Any, choices: set[str]) -> bool:
    """枚举字段：必须是字符串且在取值集合内（list/dict 不可哈希）"""
    return isinstance(value, str) and value in choices


def is_envelope(value: Any) -> bool:
    """{version: int, data: object}"""
    return (
        isinstance(value, dict)
        and _is_int(value.get("version"))
        and isinstance(value.get("data"), dict)
    )


def is_valid_grid_node(value: Any) -> bool:
    """递归校验网格节点"""
    if not isinstance(value, dict):
        return False

    node_type = value.get("type")
    if node_type == "leaf":
        return isinstance(value.get("groupId"), str)

    if node_type == "branch":
        children = value.get("children")
        sizes = value.get("sizes")
        if not _is_choice(value.get("orientation"), _ORIENTATIONS):
            return False
        if not isinstance(children, list) or not isinstance(sizes, list):
            return False
        if len(children) != len(sizes):
            return False
        if not all(_is_number(size) for size in sizes):
            return False
        return all(is_valid_grid_node(child) for child in children)

    return False


def is_valid_tab(value: Any) -> bool:
    """tab 必须有字符串 id/name，枚举字段取值合法"""
    if not isinstance(value, dict):
        return False
    if not isinstance(value.get("id"), str) or not isinstance(value.get("name"), str):
        return False
    if "kind" in value and not _is_choice(value["kind"], _KINDS):
        return False
    if "connectionStatus" in value and not _is_choice(value["connectionStatus"], _STATUSES):
        return False
    if "reconnectCount" in value and not _is_int(value["reconnectCount"]):
        return False
    for key in ("protocol", "host", "username", "originalSessionId"):
        if value.get(key) is not None and not isinstance(value[key], str):
            return False
    return True


def is_valid_pane(value: Any) -> bool:
    if not isinstance(value, dict):
        return False
    if not isinstance(value.get("id"), str):
        return False
    if not isinstance(value.get("tabs"), list):
        return False
    active = value.get("activeTabId")
    if active is not None and not isinstance(active, str):
        return False
    return all(is_valid_tab(tab) for tab in value["tabs"])


def is_valid_state(value: Any) -> bool:
    """校验 LayoutState 结构

    tabToPaneIndex 可选（旧格式没有，加载时重建）。
    """
    if not isinstance(value, dict):
        return False
    panes = value.get("panes")
    if not isinstance(panes, dict):
        return False
    if not isinstance(value.get("activePaneId"), str):
        return False
    if not _is_int(value.get("nextPaneId")):
        return False
    if not is_valid_grid_node(value.get("gridLayout")):
        return False

    index = value.get("tabToPaneIndex")
    if index is not None and not isinstance(index, dict):
        return False

    return all(is_valid_pane(pane) for pane in panes.values())
