"""Layout Reducer - 布局状态流转

reduce(state, action) -> state'，纯函数：
- 每个 action 类型对应一个 handler（见 _HANDLERS 流转表）
- 前置条件不满足时返回同一个 state 对象（调用方可用 `is` 判断无变化）
- 任何 action 都不会抛出异常

流转表：
| Action | 前置条件 | 效果 |
|--------|----------|------|
| SplitPane | pane 存在 | 分配新 pane，插入网格树，新 pane 激活 |
| RemovePane | pane 存在 | 唯一 pane 清空 tabs 保留；否则删除并折叠网格树 |
| ActivatePane | pane 存在 | 切换活动 pane |
| AddTab | pane 存在 | 追加 tab 并激活 |
| RemoveTab | tab 在 pane 中 | 删除，相邻激活（优先右侧，否则左侧），空 pane 回收 |
| ActivateTab | tab 在 pane 中 | 切换活动 tab |
| MoveTab | tab 在 source 中 | 移到 target 指定位置并激活，source 空则回收 |
| ReorderTab | 下标合法且不同 | pane 内重排 |
| CloseOtherTabs / CloseTabsToRight / CloseTabsToLeft | tab 存在 | 批量关闭 |
| MoveTabToNewPane | tab 存在 | 以该 tab 分屏，source 空则回收 |
| UpdateTabStatus / ReconnectTab | tab 已登记 | 更新连接状态 |
| UpdateGridSizes | - | 更新 branch 尺寸 |
| ResetLayout / RestoreLayout | - | 重置 / 整体替换 |
"""

from collections.abc import Callable, Sequence
from dataclasses import replace
from typing import Any

from ..config import DEFAULT_PANE_ID, METRICS_ENABLED
from ..telemetry import get_logger, metrics
from . import actions
from .grid import collect_leaf_ids, insert_split, remove_leaf, simplify_tree, update_sizes
from .types import ConnectionStatus, LayoutState, Leaf, Pane, Tab

logger = get_logger(__name__)

Handler = Callable[[LayoutState, Any], LayoutState]


# === 初始状态 ===

def create_default_state() -> LayoutState:
    """单个空 pane 的初始状态"""
    return LayoutState(
        panes={DEFAULT_PANE_ID: Pane(id=DEFAULT_PANE_ID)},
        active_pane_id=DEFAULT_PANE_ID,
        grid_layout=Leaf(DEFAULT_PANE_ID),
        next_pane_id=int(DEFAULT_PANE_ID) + 1,
        tab_to_pane_index={},
    )


def rebuild_tab_index(panes: dict[str, Pane]) -> dict[str, str]:
    """由 panes 重建 tab → pane 索引"""
    return {tab.id: pane_id for pane_id, pane in panes.items() for tab in pane.tabs}


def initialize_state(loaded: LayoutState | None) -> LayoutState:
    """从快照初始化运行时状态

    - 无快照时返回初始状态
    - 重建 tab_to_pane_index
    - 所有 tab 置为 disconnected（session 不会跨重启存活，由重连流程更新）
    """
    if loaded is None:
        return create_default_state()

    panes = {
        pane_id: replace(
            pane,
            tabs=tuple(
                replace(tab, connection_status=ConnectionStatus.DISCONNECTED) for tab in pane.tabs
            ),
        )
        for pane_id, pane in loaded.panes.items()
    }
    return replace(loaded, panes=panes, tab_to_pane_index=rebuild_tab_index(panes))


# === 辅助函数 ===

def _pick_adjacent_tab(tabs: Sequence[Tab], removed_index: int) -> str | None:
    """删除 removed_index 处的 tab 后选择新的活动 tab

    优先右侧（删除后占据同一下标的 tab），否则左侧（新的最后一个）。
    """
    if not tabs:
        return None
    if removed_index < len(tabs):
        return tabs[removed_index].id
    return tabs[-1].id


def _without_tab(pane: Pane, index: int) -> Pane:
    """从 pane 中移除 index 处的 tab，应用相邻激活规则"""
    removed = pane.tabs[index]
    tabs = pane.tabs[:index] + pane.tabs[index + 1:]
    active = pane.active_tab_id
    if active == removed.id:
        active = _pick_adjacent_tab(tabs, index)
    return replace(pane, tabs=tabs, active_tab_id=active)


def _drop_from_index(index: dict[str, str], tabs: Sequence[Tab]) -> dict[str, str]:
    result = dict(index)
    for tab in tabs:
        result.pop(tab.id, None)
    return result


def _allocate_pane_id(state: LayoutState) -> tuple[str, int]:
    """分配新 pane id

    Returns:
        (新 pane id, 更新后的计数器)
    """
    counter = state.next_pane_id
    # 计数器落后于已有 id 时（外部恢复的状态）继续向后找
    while str(counter) in state.panes:
        counter += 1
    return str(counter), counter + 1


def _remove_pane_from_state(state: LayoutState, pane_id: str) -> LayoutState:
    """删除 pane：剪枝网格树，必要时重新选择活动 pane"""
    pane = state.panes[pane_id]
    panes = {pid: p for pid, p in state.panes.items() if pid != pane_id}

    grid = remove_leaf(state.grid_layout, pane_id)
    if grid is None:
        # 保留最后一个 pane 时不会发生，兜底使用剩余 pane
        grid = Leaf(next(iter(panes)))
    grid = simplify_tree(grid)

    active_pane_id = state.active_pane_id
    if active_pane_id == pane_id:
        leaf_ids = collect_leaf_ids(grid)
        active_pane_id = leaf_ids[0] if leaf_ids else next(iter(panes))

    logger.debug(f"[Reducer] Pruned pane {pane_id}, active={active_pane_id}")
    return replace(
        state,
        panes=panes,
        grid_layout=grid,
        active_pane_id=active_pane_id,
        tab_to_pane_index=_drop_from_index(state.tab_to_pane_index, pane.tabs),
    )


def _maybe_remove_empty_pane(state: LayoutState, pane_id: str) -> LayoutState:
    """pane 为空且不是唯一 pane 时删除"""
    pane = state.panes.get(pane_id)
    if pane is None or pane.tabs:
        return state
    if len(state.panes) <= 1:
        return state
    return _remove_pane_from_state(state, pane_id)


def _with_pane(state: LayoutState, pane: Pane, **changes) -> LayoutState:
    return replace(state, panes={**state.panes, pane.id: pane}, **changes)


# === Handlers ===

def _split_pane(state: LayoutState, action: actions.SplitPane) -> LayoutState:
    if action.pane_id not in state.panes:
        return state
    tab = action.tab
    if tab is not None and tab.id in state.tab_to_pane_index:
        return state

    new_id, next_counter = _allocate_pane_id(state)
    new_pane = Pane(
        id=new_id,
        tabs=(tab,) if tab else (),
        active_tab_id=tab.id if tab else None,
    )
    index = state.tab_to_pane_index
    if tab is not None:
        index = {**index, tab.id: new_id}

    return _with_pane(
        state,
        new_pane,
        grid_layout=insert_split(state.grid_layout, action.pane_id, new_id, action.direction),
        next_pane_id=next_counter,
        active_pane_id=new_id,
        tab_to_pane_index=index,
    )


def _remove_pane(state: LayoutState, action: actions.RemovePane) -> LayoutState:
    pane = state.panes.get(action.pane_id)
    if pane is None:
        return state
    if len(state.panes) > 1:
        return _remove_pane_from_state(state, action.pane_id)

    # 保留最后一个 pane：原地清空
    if not pane.tabs and pane.active_tab_id is None:
        return state
    return _with_pane(
        state,
        replace(pane, tabs=(), active_tab_id=None),
        tab_to_pane_index=_drop_from_index(state.tab_to_pane_index, pane.tabs),
    )


def _activate_pane(state: LayoutState, action: actions.ActivatePane) -> LayoutState:
    if action.pane_id not in state.panes or action.pane_id == state.active_pane_id:
        return state
    return replace(state, active_pane_id=action.pane_id)


def _add_tab(state: LayoutState, action: actions.AddTab) -> LayoutState:
    pane = state.panes.get(action.pane_id)
    if pane is None or action.tab.id in state.tab_to_pane_index:
        return state
    return _with_pane(
        state,
        replace(pane, tabs=pane.tabs + (action.tab,), active_tab_id=action.tab.id),
        tab_to_pane_index={**state.tab_to_pane_index, action.tab.id: pane.id},
    )


def _remove_tab(state: LayoutState, action: actions.RemoveTab) -> LayoutState:
    pane = state.panes.get(action.pane_id)
    if pane is None:
        return state
    index = pane.index_of(action.tab_id)
    if index == -1:
        return state

    new_state = _with_pane(
        state,
        _without_tab(pane, index),
        tab_to_pane_index=_drop_from_index(state.tab_to_pane_index, [pane.tabs[index]]),
    )
    return _maybe_remove_empty_pane(new_state, pane.id)


def _activate_tab(state: LayoutState, action: actions.ActivateTab) -> LayoutState:
    pane = state.panes.get(action.pane_id)
    if pane is None or pane.index_of(action.tab_id) == -1:
        return state
    if pane.active_tab_id == action.tab_id:
        return state
    return _with_pane(state, replace(pane, active_tab_id=action.tab_id))


def _insert_at(tabs: tuple[Tab, ...], target_index: int | None, tab: Tab) -> tuple[Tab, ...]:
    """在 target_index 处插入（None = 末尾，越界截断到 [0, len]）"""
    if target_index is None:
        position = len(tabs)
    else:
        position = max(0, min(target_index, len(tabs)))
    return tabs[:position] + (tab,) + tabs[position:]


def _move_tab(state: LayoutState, action: actions.MoveTab) -> LayoutState:
    source = state.panes.get(action.source_pane_id)
    target = state.panes.get(action.target_pane_id)
    if source is None or target is None:
        return state
    index = source.index_of(action.tab_id)
    if index == -1:
        return state
    tab = source.tabs[index]

    if source.id == target.id:
        # 同 pane：纯重排
        remaining = source.tabs[:index] + source.tabs[index + 1:]
        tabs = _insert_at(remaining, action.target_index, tab)
        if tabs == source.tabs and source.active_tab_id == tab.id:
            return state
        return _with_pane(state, replace(source, tabs=tabs, active_tab_id=tab.id))

    new_source = _without_tab(source, index)
    new_target = replace(
        target,
        tabs=_insert_at(target.tabs, action.target_index, tab),
        active_tab_id=tab.id,
    )
    new_state = replace(
        state,
        panes={**state.panes, source.id: new_source, target.id: new_target},
        tab_to_pane_index={**state.tab_to_pane_index, tab.id: target.id},
    )
    return _maybe_remove_empty_pane(new_state, source.id)


def _reorder_tab(state: LayoutState, action: actions.ReorderTab) -> LayoutState:
    pane = state.panes.get(action.pane_id)
    if pane is None:
        return state
    count = len(pane.tabs)
    if not (0 <= action.from_index < count and 0 <= action.to_index < count):
        return state
    if action.from_index == action.to_index:
        return state

    tabs = list(pane.tabs)
    moved = tabs.pop(action.from_index)
    tabs.insert(action.to_index, moved)
    return _with_pane(state, replace(pane, tabs=tuple(tabs)))


def _close_other_tabs(state: LayoutState, action: actions.CloseOtherTabs) -> LayoutState:
    pane = state.panes.get(action.pane_id)
    if pane is None:
        return state
    tab = pane.get_tab(action.tab_id)
    if tab is None:
        return state
    if len(pane.tabs) == 1 and pane.active_tab_id == tab.id:
        return state

    removed = [t for t in pane.tabs if t.id != tab.id]
    return _with_pane(
        state,
        replace(pane, tabs=(tab,), active_tab_id=tab.id),
        tab_to_pane_index=_drop_from_index(state.tab_to_pane_index, removed),
    )


def _close_tabs_to_right(state: LayoutState, action: actions.CloseTabsToRight) -> LayoutState:
    pane = state.panes.get(action.pane_id)
    if pane is None:
        return state
    index = pane.index_of(action.tab_id)
    if index == -1 or index == len(pane.tabs) - 1:
        return state

    kept, removed = pane.tabs[:index + 1], pane.tabs[index + 1:]
    active = pane.active_tab_id
    if not any(t.id == active for t in kept):
        active = kept[-1].id
    return _with_pane(
        state,
        replace(pane, tabs=kept, active_tab_id=active),
        tab_to_pane_index=_drop_from_index(state.tab_to_pane_index, removed),
    )


def _close_tabs_to_left(state: LayoutState, action: actions.CloseTabsToLeft) -> LayoutState:
    pane = state.panes.get(action.pane_id)
    if pane is None:
        return state
    index = pane.index_of(action.tab_id)
    if index <= 0:
        return state

    kept, removed = pane.tabs[index:], pane.tabs[:index]
    active = pane.active_tab_id
    if not any(t.id == active for t in kept):
        active = kept[0].id
    return _with_pane(
        state,
        replace(pane, tabs=kept, active_tab_id=active),
        tab_to_pane_index=_drop_from_index(state.tab_to_pane_index, removed),
    )


def _move_tab_to_new_pane(state: LayoutState, action: actions.MoveTabToNewPane) -> LayoutState:
    pane = state.panes.get(action.pane_id)
    if pane is None:
        return state
    index = pane.index_of(action.tab_id)
    if index == -1:
        return state
    tab = pane.tabs[index]

    new_id, next_counter = _allocate_pane_id(state)
    new_state = replace(
        state,
        panes={
            **state.panes,
            pane.id: _without_tab(pane, index),
            new_id: Pane(id=new_id, tabs=(tab,), active_tab_id=tab.id),
        },
        grid_layout=insert_split(state.grid_layout, pane.id, new_id, action.direction),
        next_pane_id=next_counter,
        active_pane_id=new_id,
        tab_to_pane_index={**state.tab_to_pane_index, tab.id: new_id},
    )
    return _maybe_remove_empty_pane(new_state, pane.id)


def _replace_tab(state: LayoutState, tab_id: str, update: Callable[[Tab], Tab]) -> LayoutState:
    """通过索引定位 tab 并替换"""
    pane_id = state.tab_to_pane_index.get(tab_id)
    if pane_id is None:
        return state
    pane = state.panes.get(pane_id)
    if pane is None:
        return state
    index = pane.index_of(tab_id)
    if index == -1:
        return state

    tab = pane.tabs[index]
    new_tab = update(tab)
    if new_tab == tab:
        return state
    tabs = pane.tabs[:index] + (new_tab,) + pane.tabs[index + 1:]
    return _with_pane(state, replace(pane, tabs=tabs))


def _update_tab_status(state: LayoutState, action: actions.UpdateTabStatus) -> LayoutState:
    return _replace_tab(
        state, action.tab_id, lambda tab: replace(tab, connection_status=action.status)
    )


def _reconnect_tab(state: LayoutState, action: actions.ReconnectTab) -> LayoutState:
    return _replace_tab(
        state,
        action.tab_id,
        lambda tab: replace(
            tab,
            connection_status=ConnectionStatus.CONNECTING,
            reconnect_count=tab.reconnect_count + 1,
        ),
    )


def _update_grid_sizes(state: LayoutState, action: actions.UpdateGridSizes) -> LayoutState:
    grid = update_sizes(state.grid_layout, action.path, action.sizes)
    if grid is state.grid_layout:
        return state
    return replace(state, grid_layout=grid)


def _reset_layout(state: LayoutState, action: actions.ResetLayout) -> LayoutState:
    return create_default_state()


def _restore_layout(state: LayoutState, action: actions.RestoreLayout) -> LayoutState:
    if not isinstance(action.state, LayoutState):
        return state
    return action.state


# === 流转表 ===

_HANDLERS: dict[type, Handler] = {
    actions.SplitPane: _split_pane,
    actions.RemovePane: _remove_pane,
    actions.ActivatePane: _activate_pane,
    actions.AddTab: _add_tab,
    actions.RemoveTab: _remove_tab,
    actions.ActivateTab: _activate_tab,
    actions.MoveTab: _move_tab,
    actions.ReorderTab: _reorder_tab,
    actions.CloseOtherTabs: _close_other_tabs,
    actions.CloseTabsToRight: _close_tabs_to_right,
    actions.CloseTabsToLeft: _close_tabs_to_left,
    actions.MoveTabToNewPane: _move_tab_to_new_pane,
    actions.UpdateTabStatus: _update_tab_status,
    actions.ReconnectTab: _reconnect_tab,
    actions.UpdateGridSizes: _update_grid_sizes,
    actions.ResetLayout: _reset_layout,
    actions.RestoreLayout: _restore_layout,
}


def reduce(state: LayoutState, action: actions.Action) -> LayoutState:
    """执行一次状态流转

    Args:
        state: 当前状态（不会被修改）
        action: 要应用的 action

    Returns:
        新状态；无变化时返回同一个 state 对象
    """
    name = actions.action_name(action)
    handler = _HANDLERS.get(type(action))
    if handler is None:
        logger.debug(f"[Reducer] Unknown action ignored: {name}")
        return state

    try:
        new_state = handler(state, action)
    except Exception as e:
        # 畸形输入（如字段类型错误）按无变化处理，不向上抛出
        logger.error(f"[Reducer] {name} failed: {e}")
        if METRICS_ENABLED:
            metrics.inc("reducer.error", {"action": name})
        return state

    if METRICS_ENABLED:
        metrics.inc("reducer.noop" if new_state is state else "reducer.ok", {"action": name})
    return new_state
