"""启动重连流程测试"""

import asyncio

import pytest

from termlayout.layout import (
    ActiveSession,
    AddTab,
    ConnectionStatus,
    LayoutStore,
    RestorationBarrier,
    Tab,
    reconnect_sessions,
)


def status_of(store: LayoutStore, tab_id: str) -> ConnectionStatus:
    pane = store.state.panes[store.state.tab_to_pane_index[tab_id]]
    return pane.get_tab(tab_id).connection_status


@pytest.fixture
def store():
    store = LayoutStore()
    for tab_id in ("a", "b", "c"):
        store.dispatch(AddTab("1", Tab(id=tab_id, name=tab_id)))
    return store


class TestReconnectSessions:
    """按顺序重连"""

    @pytest.mark.asyncio
    async def test_sequential_with_ready_signals(self, store):
        barrier = RestorationBarrier(default_timeout=1.0)
        calls = []

        async def connect(session: ActiveSession) -> bool:
            calls.append(session.tab_id)
            assert status_of(store, session.tab_id) == ConnectionStatus.CONNECTING
            asyncio.get_running_loop().call_soon(barrier.signal_ready, session.tab_id)
            return True

        result = await reconnect_sessions(store, barrier, connect)

        assert calls == ["a", "b", "c"]
        assert result.restored == ["a", "b", "c"]
        assert all(status_of(store, t) == ConnectionStatus.CONNECTED for t in calls)

    @pytest.mark.asyncio
    async def test_waits_for_previous_session(self, store):
        barrier = RestorationBarrier(default_timeout=1.0)
        started = []

        async def connect(session: ActiveSession) -> bool:
            started.append(session.tab_id)
            return True

        task = asyncio.create_task(reconnect_sessions(store, barrier, connect))
        await asyncio.sleep(0.02)
        assert started == ["a"]

        barrier.signal_ready("a")
        await asyncio.sleep(0.02)
        assert started == ["a", "b"]

        barrier.signal_ready("b")
        barrier.signal_ready("c")
        result = await asyncio.wait_for(task, 1.0)
        assert result.restored == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_timeout_is_fail_open(self, store):
        barrier = RestorationBarrier()

        async def connect(session: ActiveSession) -> bool:
            return True

        result = await reconnect_sessions(store, barrier, connect, timeout=0.02)

        assert result.timed_out == ["a", "b", "c"]
        assert status_of(store, "a") == ConnectionStatus.CONNECTING

    @pytest.mark.asyncio
    async def test_failures(self, store):
        barrier = RestorationBarrier(default_timeout=0.02)

        async def connect(session: ActiveSession) -> bool:
            if session.tab_id == "a":
                raise ConnectionError("refused")
            return session.tab_id != "b"

        result = await reconnect_sessions(store, barrier, connect)

        assert result.failed == ["a", "b"]
        assert result.timed_out == ["c"]
        assert status_of(store, "a") == ConnectionStatus.DISCONNECTED
        assert status_of(store, "b") == ConnectionStatus.DISCONNECTED

    @pytest.mark.asyncio
    async def test_explicit_sessions_sorted_and_stale_skipped(self, store):
        barrier = RestorationBarrier(default_timeout=0.02)
        barrier.signal_ready("c")
        barrier.signal_ready("a")
        calls = []

        async def connect(session: ActiveSession) -> bool:
            calls.append(session.tab_id)
            return True

        sessions = [
            ActiveSession("a", "a", 2),
            ActiveSession("gone", "gone", 1),
            ActiveSession("c", "c", 0),
        ]
        result = await reconnect_sessions(store, barrier, connect, sessions=sessions)

        assert calls == ["c", "a"]
        assert result.skipped == ["gone"]
        assert result.restored == ["c", "a"]
