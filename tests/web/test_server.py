"""Web 服务器测试"""

import pytest
from fastapi.testclient import TestClient

from termlayout.layout import KeyValueStore, LayoutStore, RestorationBarrier, load_state
from termlayout.web import create_app


@pytest.fixture
def server(tmp_path):
    store = LayoutStore(kv_store=KeyValueStore(tmp_path))
    return create_app(store, RestorationBarrier(default_timeout=1.0))


@pytest.fixture
def client(server):
    return TestClient(server.app)


def add_tab(client, tab_id="a", pane_id="1"):
    return client.post(
        "/api/layout/actions",
        json={"type": "ADD_TAB", "paneId": pane_id, "tab": {"id": tab_id, "name": tab_id}},
    )


class TestLayoutApi:
    """布局接口"""

    def test_get_layout(self, client):
        data = client.get("/api/layout").json()

        assert data["type"] == "layout"
        assert data["state"]["activePaneId"] == "1"
        assert data["state"]["gridLayout"] == {"type": "leaf", "groupId": "1"}
        assert data["activeConnection"] is None
        assert data["tabs"] == []

    def test_apply_action(self, client, server, tmp_path):
        response = add_tab(client)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["changed"] is True
        assert body["state"]["tabToPaneIndex"] == {"a": "1"}
        assert load_state(KeyValueStore(tmp_path)) == server.store.state

    def test_noop_action(self, client):
        body = client.post(
            "/api/layout/actions", json={"type": "ACTIVATE_PANE", "paneId": "1"}
        ).json()

        assert body["success"] is True
        assert body["changed"] is False

    @pytest.mark.parametrize(
        "payload",
        [
            {"type": "NOPE"},
            {"type": "ADD_TAB", "paneId": "1"},
            {"type": "ADD_TAB", "paneId": "1", "tab": "not-a-tab"},
            {"type": "SPLIT_PANE", "paneId": "1", "direction": "diagonal"},
        ],
    )
    def test_bad_action(self, client, payload):
        body = client.post("/api/layout/actions", json=payload).json()

        assert body["success"] is False
        assert body["message"].startswith("Invalid action")

    def test_bad_tab_does_not_reach_saved_layout(self, client, server, tmp_path):
        add_tab(client, "ok")
        body = client.post(
            "/api/layout/actions",
            json={"type": "ADD_TAB", "paneId": "1", "tab": {"id": 5, "name": "bad"}},
        ).json()

        assert body["success"] is False
        assert [tab.id for tab in server.store.tabs()] == ["ok"]
        saved = load_state(KeyValueStore(tmp_path))
        assert saved is not None
        assert list(saved.tab_to_pane_index) == ["ok"]

    def test_missing_type_is_validation_error(self, client):
        assert client.post("/api/layout/actions", json={"paneId": "1"}).status_code == 422

    def test_split_updates_active_connection(self, client):
        add_tab(client, "a")
        client.post(
            "/api/layout/actions",
            json={
                "type": "SPLIT_PANE",
                "paneId": "1",
                "direction": "down",
                "tab": {"id": "b", "name": "b", "protocol": "SSH", "host": "h"},
            },
        )

        data = client.get("/api/layout").json()
        assert data["activeConnection"]["connectionId"] == "b"
        assert data["activeConnection"]["host"] == "h"
        assert [tab["id"] for tab in data["tabs"]] == ["a", "b"]


class TestSessionsApi:
    """session 接口"""

    def test_sessions(self, client):
        add_tab(client, "a")
        add_tab(client, "b")

        sessions = client.get("/api/sessions").json()
        assert [(s["tabId"], s["order"]) for s in sessions] == [("a", 0), ("b", 1)]

    def test_ready_signal(self, client, server):
        body = client.post("/api/sessions/a/ready").json()

        assert body == {"success": True, "sessionId": "a"}
        assert server.barrier.has_early_signal("a")


class TestWebSocket:
    """WebSocket"""

    def test_initial_layout_and_action(self, client):
        with client.websocket_connect("/ws") as websocket:
            assert websocket.receive_json()["type"] == "layout"

            websocket.send_json({"type": "ADD_TAB", "paneId": "1", "tab": {"id": "a", "name": "a"}})

            result = websocket.receive_json()
            assert result == {"type": "action_result", "success": True, "changed": True, "message": ""}

            layout = websocket.receive_json()
            assert layout["state"]["tabToPaneIndex"] == {"a": "1"}

    def test_invalid_messages(self, client):
        with client.websocket_connect("/ws") as websocket:
            websocket.receive_json()

            websocket.send_text("{oops")
            assert websocket.receive_json()["success"] is False

            websocket.send_json([1, 2])
            assert websocket.receive_json()["message"] == "Expected object"

            websocket.send_json({"type": "NOPE"})
            assert websocket.receive_json()["success"] is False
