"""apps/gateway 测试配置 -- FastAPI app + httpx AsyncClient fixture

ASGITransport 不触发 lifespan，测试中手动把组件挂到 app.state。
"""

import io
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image
from vistachat.core.imaging import build_data_uri
from vistachat.core.store import create_store_group
from vistachat.provider import EchoMessageAdapter, ImageDescriber, VisionProbe


@pytest_asyncio.fixture
async def store_group(tmp_path: Path):
    """临时数据库上的 StoreGroup"""
    group = await create_store_group(str(tmp_path / "sqlite" / "test.db"))
    yield group
    await group.close()


@pytest.fixture
def echo_describer() -> ImageDescriber:
    client = EchoMessageAdapter()
    return ImageDescriber(client, VisionProbe(client))


@pytest_asyncio.fixture
async def app(store_group, echo_describer, monkeypatch):
    """创建测试用 FastAPI app 实例（Echo 模式）"""
    monkeypatch.setenv("LOGFIRE_SEND_TO_LOGFIRE", "false")

    from vistachat.gateway.main import create_app
    from vistachat.gateway.services.chat_service import ChatService

    application = create_app()
    application.state.store_group = store_group
    application.state.vision_probe = echo_describer.probe
    application.state.describer = echo_describer
    application.state.chat_service = ChatService(
        message_store=store_group.message_store,
        describer=echo_describer,
    )
    return application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def jpeg_bytes() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (320, 240), (30, 120, 200)).save(buf, format="JPEG", quality=90)
    return buf.getvalue()


@pytest.fixture
def jpeg_data_uri(jpeg_bytes) -> str:
    return build_data_uri(jpeg_bytes, "image/jpeg")
