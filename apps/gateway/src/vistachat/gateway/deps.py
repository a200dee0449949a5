"""FastAPI 依赖：从 app.state 取出 lifespan 中创建的进程级组件"""

from fastapi import Request
from vistachat.core.store import StoreGroup
from vistachat.provider import VisionProbe

from .services.chat_service import ChatService


def get_store_group(request: Request) -> StoreGroup:
    return request.app.state.store_group


def get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat_service


def get_vision_probe(request: Request) -> VisionProbe | None:
    """未配置模型客户端时为 None（/ready 中视为 skipped）"""
    return getattr(request.app.state, "vision_probe", None)
