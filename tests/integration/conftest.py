"""集成测试共享 fixture"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from vistachat.core.store import create_store_group
from vistachat.gateway.services.chat_service import ChatService
from vistachat.provider import ImageDescriber, LiteLLMClient, VisionProbe


@pytest_asyncio.fixture
async def integration_app(tmp_path: Path, monkeypatch):
    """集成测试用 FastAPI app：真实存储 + LiteLLMClient（acompletion 由各测试 patch）"""
    monkeypatch.setenv("LOGFIRE_SEND_TO_LOGFIRE", "false")

    from vistachat.gateway.main import create_app

    app = create_app()

    store_group = await create_store_group(str(tmp_path / "test.db"))
    client = LiteLLMClient(api_base="http://localhost:4000/v1", model="openai/text-only")
    probe = VisionProbe(client)
    describer = ImageDescriber(client, probe)
    app.state.store_group = store_group
    app.state.vision_probe = probe
    app.state.describer = describer
    app.state.chat_service = ChatService(store_group.message_store, describer)

    yield app

    await store_group.close()


@pytest_asyncio.fixture
async def client(integration_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url="http://test",
    ) as ac:
        yield ac
