"""Web 服务器 - 向本地前端暴露 LayoutStore"""

import json

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ConfigDict

from termlayout.layout import LayoutStore, RestorationBarrier, action_from_dict
from termlayout.layout.actions import action_name
from termlayout.telemetry import get_logger

logger = get_logger(__name__)


class ActionRequest(BaseModel):
    """Action 请求体

    type 为 wire 名称（如 "SPLIT_PANE"），其余字段原样传给 action_from_dict。
    """

    model_config = ConfigDict(extra="allow")

    type: str


class ActionResponse(BaseModel):
    """Action 响应"""

    success: bool
    changed: bool = False
    message: str = ""
    state: dict | None = None


class LayoutWebServer:
    """HTTP + WebSocket 服务器"""

    def __init__(self, store: LayoutStore, barrier: RestorationBarrier):
        self.app = FastAPI(title="termlayout")
        self.store = store
        self.barrier = barrier
        self.clients: list[WebSocket] = []
        self._setup_routes()

    def get_layout_dict(self) -> dict:
        """当前布局及派生视图"""
        return {
            "type": "layout",
            "state": self.store.state.to_dict(),
            "activeConnection": self.store.active_connection,
            "tabs": [tab.to_dict() for tab in self.store.tabs()],
        }

    def apply_action(self, payload: dict) -> ActionResponse:
        """转换并应用 action，载荷错误返回失败响应"""
        try:
            action = action_from_dict(payload)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"[Web] Rejected action {payload.get('type')}: {e!r}")
            return ActionResponse(success=False, message=f"Invalid action: {e!r}")

        old_state = self.store.state
        new_state = self.store.dispatch(action)
        changed = new_state is not old_state
        logger.debug(f"[Web] {action_name(action)} changed={changed}")
        return ActionResponse(success=True, changed=changed, state=new_state.to_dict())

    def _setup_routes(self):
        @self.app.get("/api/layout")
        async def get_layout():
            return self.get_layout_dict()

        @self.app.post("/api/layout/actions", response_model=ActionResponse)
        async def post_action(request: ActionRequest):
            response = self.apply_action(request.model_dump())
            if response.changed:
                await self.broadcast(self.get_layout_dict())
            return response

        @self.app.get("/api/sessions")
        async def get_sessions():
            return [session.to_dict() for session in self.store.active_sessions]

        @self.app.post("/api/sessions/{session_id}/ready")
        async def session_ready(session_id: str):
            """连接服务通知 session 已就绪"""
            self.barrier.signal_ready(session_id)
            return {"success": True, "sessionId": session_id}

        @self.app.websocket("/ws")
        async def websocket_endpoint(websocket: WebSocket):
            await websocket.accept()
            self.clients.append(websocket)
            try:
                await websocket.send_json(self.get_layout_dict())
                while True:
                    data = await websocket.receive_text()
                    await self._handle_message(websocket, data)
            except WebSocketDisconnect:
                self.clients.remove(websocket)

    async def _handle_message(self, websocket: WebSocket, data: str):
        """处理 WebSocket 消息（JSON action）"""
        try:
            payload = json.loads(data)
        except ValueError:
            await websocket.send_json({"type": "action_result", "success": False, "message": "Invalid JSON"})
            return
        if not isinstance(payload, dict):
            await websocket.send_json({"type": "action_result", "success": False, "message": "Expected object"})
            return

        response = self.apply_action(payload)
        await websocket.send_json({"type": "action_result", **response.model_dump(exclude={"state"})})
        if response.changed:
            await self.broadcast(self.get_layout_dict())

    async def broadcast(self, data: dict):
        """广播消息给所有客户端"""
        for client in list(self.clients):
            try:
                await client.send_json(data)
            except Exception as e:
                logger.debug(f"[Web] Broadcast failed, dropping client: {e}")
                if client in self.clients:
                    self.clients.remove(client)
