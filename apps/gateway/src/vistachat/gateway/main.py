"""FastAPI 应用主文件

app 创建 + lifespan 管理：DB 初始化/关闭 + 模型客户端/视觉探测/对话服务初始化 + 路由注册。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from vistachat.core.config import (
    get_db_path,
    get_image_max_dimension,
    get_image_target_kb,
    get_max_context_messages,
    get_max_upload_bytes,
    is_image_normalize_enabled,
)
from vistachat.core.imaging import ImageNormalizer
from vistachat.core.store import create_store_group
from vistachat.provider import (
    EchoMessageAdapter,
    HttpTextClient,
    ImageDescriber,
    LiteLLMClient,
    ProviderConfig,
    VisionProbe,
    load_provider_config,
)

from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .routes import chat, health
from .services.chat_service import ChatService

log = structlog.get_logger()


def build_client(config: ProviderConfig):
    """根据 llm_mode 创建模型客户端"""
    api_key = config.api_key.get_secret_value()
    if config.llm_mode == "litellm":
        return LiteLLMClient(
            api_base=config.api_base,
            api_key=api_key,
            model=config.model,
            timeout_s=config.timeout_s,
        )
    if config.llm_mode == "http":
        return HttpTextClient(
            api_base=config.api_base,
            api_key=api_key,
            model=config.model,
            timeout_s=config.timeout_s,
        )
    return EchoMessageAdapter()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时初始化 DB 和模型组件，关闭时清理连接"""
    store_group = await create_store_group(get_db_path())
    app.state.store_group = store_group

    provider_config = load_provider_config()
    app.state.provider_config = provider_config

    client = build_client(provider_config)
    probe = VisionProbe(client, ttl_s=provider_config.vision_probe_ttl_s)
    max_context_messages = get_max_context_messages()
    describer = ImageDescriber(
        client,
        probe,
        max_context_messages=max_context_messages,
        max_tokens=provider_config.max_tokens,
        temperature=provider_config.temperature,
    )
    app.state.vision_probe = probe
    app.state.describer = describer
    app.state.chat_service = ChatService(
        message_store=store_group.message_store,
        describer=describer,
        normalizer=ImageNormalizer(max_dimension=get_image_max_dimension()),
        image_target_kb=get_image_target_kb(),
        normalize_images=is_image_normalize_enabled(),
        max_context_messages=max_context_messages,
        max_upload_bytes=get_max_upload_bytes(),
    )
    log.info(
        "chat_service_initialized",
        mode=provider_config.llm_mode,
        model=client.model,
        api_base=provider_config.api_base,
        timeout_s=provider_config.timeout_s,
        vision_probe_ttl_s=provider_config.vision_probe_ttl_s,
    )

    yield

    await store_group.close()
    log.info("chat_service_stopped")


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="VistaChat Gateway",
        version="0.1.0",
        description="图片描述对话 API",
        lifespan=lifespan,
    )

    app.add_middleware(LoggingMiddleware)

    # 初始化日志
    setup_logging()
    setup_logfire()

    # 注册路由
    app.include_router(chat.router, tags=["chat"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
