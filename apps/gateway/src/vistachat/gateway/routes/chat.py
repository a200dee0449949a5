"""对话路由

POST /api/chat: JSON 请求 {sessionId, message, imageDataURI}
POST /api/chat/upload: multipart 请求 {image, message, sessionId}
GET  /api/chat: 会话消息列表（按时间正序）+ 聚合统计
"""

import structlog
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from pydantic import BaseModel, ConfigDict, Field
from starlette.responses import JSONResponse
from vistachat.core.exceptions import ImageDecodeError, ValidationError
from vistachat.provider import ProviderTimeoutError

from ..deps import get_chat_service, get_store_group
from ..services.chat_service import ChatService, ChatTurnResult

log = structlog.get_logger()

router = APIRouter()


class ChatRequest(BaseModel):
    """JSON 对话请求体"""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(default="default", alias="sessionId", description="会话标识")
    message: str | None = Field(default=None, description="用户文本")
    image_data_uri: str | None = Field(
        default=None,
        alias="imageDataURI",
        description="data:<mime>;base64,<payload> 格式的图片",
    )


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
    )


def _turn_response(result: ChatTurnResult) -> dict:
    meta_tags = result.meta_tags
    return {
        "success": True,
        "description": result.description,
        "metaTags": meta_tags.model_dump(mode="json") if meta_tags else None,
        "stats": result.stats,
        "userMessageId": result.user_message.id,
        "assistantMessageId": result.assistant_message.id,
    }


async def _run_turn(service: ChatService, session_id: str, **kwargs):
    """执行一轮对话并把 core/provider 异常映射为 HTTP 响应"""
    structlog.contextvars.bind_contextvars(session_id=session_id)
    try:
        result = await service.process_turn(session_id, **kwargs)
    except ValidationError as e:
        log.info("chat_request_rejected", reason=str(e), field=e.field)
        return _error_response(400, str(e))
    except ImageDecodeError as e:
        log.warning("chat_image_decode_failed", error=str(e))
        return _error_response(422, str(e))
    except ProviderTimeoutError as e:
        return _error_response(504, str(e))
    return _turn_response(result)


@router.post("/api/chat")
async def post_chat(
    body: ChatRequest,
    service: ChatService = Depends(get_chat_service),
):
    """JSON 形式提交一轮对话"""
    return await _run_turn(
        service,
        body.session_id,
        message=body.message,
        image_data_uri=body.image_data_uri,
    )


@router.post("/api/chat/upload")
async def post_chat_upload(
    image: UploadFile | None = File(default=None),
    message: str = Form(default=""),
    session_id: str = Form(default="default", alias="sessionId"),
    service: ChatService = Depends(get_chat_service),
):
    """multipart 形式提交一轮对话"""
    image_bytes = None
    image_mime = "image/jpeg"
    # 浏览器未选择文件时会提交空文件名的空 part
    if image is not None and image.filename:
        image_bytes = await image.read()
        image_mime = image.content_type or image_mime
    return await _run_turn(
        service,
        session_id,
        message=message,
        image_bytes=image_bytes,
        image_mime=image_mime,
    )


@router.get("/api/chat")
async def get_chat(
    session_id: str | None = Query(default=None, alias="sessionId", description="会话标识，省略时返回全部"),
    store_group=Depends(get_store_group),
):
    """查询消息列表与聚合统计"""
    store = store_group.message_store
    messages = await store.list_messages(session_id)
    stats = await store.get_stats(session_id)
    return {
        "messages": [m.model_dump(mode="json") for m in messages],
        "stats": stats,
    }
