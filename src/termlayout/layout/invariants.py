"""布局不变量检查与派生视图

check_invariants 返回违反项列表（空列表表示一致），
供测试断言和 LayoutStore 调试日志使用。
"""

from collections import Counter

from .grid import collect_leaf_ids, iter_branches
from .types import LayoutState, Tab


def check_invariants(state: LayoutState) -> list[str]:
    """检查布局状态不变量

    - 网格叶子与 panes 一一对应
    - branch 至少 2 个子节点，sizes 与 children 等长
    - tab_to_pane_index 与 panes 中的 tabs 一致
    - 至少一个 pane
    - active_pane_id / active_tab_id 有效
    """
    violations: list[str] = []

    if not state.panes:
        violations.append("no panes")

    leaf_counts = Counter(collect_leaf_ids(state.grid_layout))
    for leaf_id, count in leaf_counts.items():
        if count > 1:
            violations.append(f"leaf {leaf_id} appears {count} times")
    if set(leaf_counts) != set(state.panes):
        violations.append(
            f"leaves {sorted(leaf_counts)} do not match panes {sorted(state.panes)}"
        )

    for branch in iter_branches(state.grid_layout):
        if len(branch.children) < 2:
            violations.append(f"branch with {len(branch.children)} children")
        if len(branch.sizes) != len(branch.children):
            violations.append(
                f"branch sizes {len(branch.sizes)} != children {len(branch.children)}"
            )

    expected_index: dict[str, str] = {}
    for pane_id, pane in state.panes.items():
        if pane.id != pane_id:
            violations.append(f"pane key {pane_id} holds pane {pane.id}")
        for tab in pane.tabs:
            if tab.id in expected_index:
                violations.append(f"tab {tab.id} appears in more than one place")
            expected_index[tab.id] = pane_id
        if pane.active_tab_id is not None and pane.index_of(pane.active_tab_id) == -1:
            violations.append(f"pane {pane_id} active tab {pane.active_tab_id} not in pane")
    if expected_index != state.tab_to_pane_index:
        violations.append("tab_to_pane_index out of sync with panes")

    if state.active_pane_id not in state.panes:
        violations.append(f"active pane {state.active_pane_id} does not exist")

    return violations


def flatten_tabs(state: LayoutState) -> list[Tab]:
    """按稳定顺序展开所有 tab

    pane 按网格树深度优先顺序，pane 内按 tab 顺序。
    """
    result: list[Tab] = []
    for pane_id in collect_leaf_ids(state.grid_layout):
        pane = state.panes.get(pane_id)
        if pane is not None:
            result.extend(pane.tabs)
    return result
