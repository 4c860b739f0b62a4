"""不变量检查与随机 action 序列测试"""

import random

import pytest

from termlayout.layout import (
    ActivatePane,
    ActivateTab,
    AddTab,
    Branch,
    CloseOtherTabs,
    CloseTabsToLeft,
    CloseTabsToRight,
    ConnectionStatus,
    Leaf,
    LayoutState,
    MoveTab,
    MoveTabToNewPane,
    Orientation,
    Pane,
    ReconnectTab,
    RemovePane,
    RemoveTab,
    ReorderTab,
    SplitDirection,
    SplitPane,
    Tab,
    UpdateGridSizes,
    UpdateTabStatus,
    check_invariants,
    create_default_state,
    decode,
    encode,
    flatten_tabs,
    reduce,
)


def make_tab(tab_id: str) -> Tab:
    return Tab(id=tab_id, name=tab_id)


class TestCheckInvariants:
    """违反项检测"""

    def test_default_state_is_consistent(self):
        assert check_invariants(create_default_state()) == []

    def test_leaf_without_pane(self):
        state = LayoutState(
            panes={"1": Pane("1")},
            active_pane_id="1",
            grid_layout=Branch(Orientation.HORIZONTAL, (Leaf("1"), Leaf("2")), (50.0, 50.0)),
            next_pane_id=3,
        )
        assert any("do not match" in v for v in check_invariants(state))

    def test_duplicate_leaf(self):
        state = LayoutState(
            panes={"1": Pane("1")},
            active_pane_id="1",
            grid_layout=Branch(Orientation.HORIZONTAL, (Leaf("1"), Leaf("1")), (50.0, 50.0)),
            next_pane_id=2,
        )
        assert any("appears 2 times" in v for v in check_invariants(state))

    def test_single_child_branch(self):
        state = LayoutState(
            panes={"1": Pane("1")},
            active_pane_id="1",
            grid_layout=Branch(Orientation.VERTICAL, (Leaf("1"),), (100.0,)),
            next_pane_id=2,
        )
        assert "branch with 1 children" in check_invariants(state)

    def test_stale_index(self):
        state = LayoutState(
            panes={"1": Pane("1", tabs=(make_tab("a"),), active_tab_id="a")},
            active_pane_id="1",
            grid_layout=Leaf("1"),
            next_pane_id=2,
            tab_to_pane_index={},
        )
        assert "tab_to_pane_index out of sync with panes" in check_invariants(state)

    def test_bad_active_ids(self):
        state = LayoutState(
            panes={"1": Pane("1", active_tab_id="ghost")},
            active_pane_id="9",
            grid_layout=Leaf("1"),
            next_pane_id=2,
        )
        violations = check_invariants(state)
        assert "pane 1 active tab ghost not in pane" in violations
        assert "active pane 9 does not exist" in violations


def test_flatten_tabs_follows_grid_order():
    state = create_default_state()
    for action in (
        AddTab("1", make_tab("a")),
        SplitPane("1", SplitDirection.LEFT, make_tab("b")),
        AddTab("2", make_tab("c")),
        SplitPane("1", SplitDirection.DOWN, make_tab("d")),
    ):
        state = reduce(state, action)

    # 网格: H[2, V[1, 3]]
    assert [tab.id for tab in flatten_tabs(state)] == ["b", "c", "a", "d"]


def _random_action(rng: random.Random, state: LayoutState, counter: list[int]):
    pane_ids = list(state.panes)
    tab_ids = list(state.tab_to_pane_index) or ["missing"]
    pane_id = rng.choice(pane_ids + ["missing"])
    tab_id = rng.choice(tab_ids)
    direction = rng.choice(list(SplitDirection))

    def new_tab():
        counter[0] += 1
        return make_tab(f"t{counter[0]}")

    choices = [
        lambda: SplitPane(pane_id, direction, rng.choice([None, new_tab()])),
        lambda: RemovePane(pane_id),
        lambda: ActivatePane(pane_id),
        lambda: AddTab(pane_id, new_tab()),
        lambda: AddTab(pane_id, new_tab()),
        lambda: RemoveTab(state.tab_to_pane_index.get(tab_id, pane_id), tab_id),
        lambda: ActivateTab(state.tab_to_pane_index.get(tab_id, pane_id), tab_id),
        lambda: MoveTab(
            state.tab_to_pane_index.get(tab_id, pane_id),
            rng.choice(pane_ids),
            tab_id,
            rng.choice([None, -1, 0, 1, 5]),
        ),
        lambda: ReorderTab(pane_id, rng.randint(-1, 3), rng.randint(-1, 3)),
        lambda: CloseOtherTabs(state.tab_to_pane_index.get(tab_id, pane_id), tab_id),
        lambda: CloseTabsToRight(state.tab_to_pane_index.get(tab_id, pane_id), tab_id),
        lambda: CloseTabsToLeft(state.tab_to_pane_index.get(tab_id, pane_id), tab_id),
        lambda: MoveTabToNewPane(state.tab_to_pane_index.get(tab_id, pane_id), tab_id, direction),
        lambda: UpdateTabStatus(tab_id, rng.choice(list(ConnectionStatus))),
        lambda: ReconnectTab(tab_id),
        lambda: UpdateGridSizes((), (rng.random(), rng.random())),
    ]
    return rng.choice(choices)()


@pytest.mark.parametrize("seed", range(20))
def test_random_sequences_keep_invariants(seed):
    """任意 action 序列后不变量仍然成立"""
    rng = random.Random(seed)
    state = create_default_state()
    counter = [0]

    for _ in range(200):
        action = _random_action(rng, state, counter)
        before_tabs = len(state.tab_to_pane_index)
        new_state = reduce(state, action)

        assert check_invariants(new_state) == [], action
        assert new_state.panes, action
        assert decode(encode(new_state)) == new_state, action

        if isinstance(action, MoveTab):
            assert len(new_state.tab_to_pane_index) == before_tabs
        if isinstance(action, ReorderTab) and new_state is not state:
            assert sorted(t.id for t in new_state.panes[action.pane_id].tabs) == sorted(
                t.id for t in state.panes[action.pane_id].tabs
            )
        state = new_state
