"""FastAPI 应用初始化"""

import asyncio

import uvicorn

from termlayout import config
from termlayout.layout import KeyValueStore, LayoutStore, RestorationBarrier
from termlayout.telemetry import get_logger, setup_logging
from termlayout.web.server import LayoutWebServer

logger = get_logger(__name__)


def create_app(store: LayoutStore, barrier: RestorationBarrier | None = None) -> LayoutWebServer:
    """创建 Web 应用"""
    return LayoutWebServer(store, barrier or RestorationBarrier())


async def start_server(host: str = config.WEB_HOST, port: int = config.WEB_PORT):
    """启动服务器"""
    store = LayoutStore.open(KeyValueStore(config.STATE_DIR))
    barrier = RestorationBarrier()
    server = create_app(store, barrier)

    uvicorn_config = uvicorn.Config(server.app, host=host, port=port, log_level="info")
    uvicorn_server = uvicorn.Server(uvicorn_config)

    logger.info(f"[Web] termlayout server starting at http://{host}:{port}")

    try:
        await uvicorn_server.serve()
    finally:
        barrier.clear_all()
        store.save()


def main():
    """入口函数"""
    setup_logging()
    try:
        asyncio.run(start_server())
    except KeyboardInterrupt:
        print("\nServer stopped")
