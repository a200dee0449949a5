"""ChatService -- 单轮对话处理

一轮对话在同一个请求内顺序完成，不启动后台任务：
1. 校验（message 与 image 不能同时为空）-- 在任何 I/O 之前
2. 图片归一化（线程中执行，ImageDecodeError 直接失败，不落盘）
3. 写入 user 消息
4. 读取本轮之前的最近历史，请求描述
5. 写入 assistant 消息（模型错误转为可见文本；超时则整轮失败）

同一会话的并发请求不加锁，落盘顺序即调用顺序。
"""

import asyncio
import time

import structlog
from pydantic import BaseModel, Field
from vistachat.core.config import MESSAGE_PREVIEW_LENGTH
from vistachat.core.exceptions import ValidationError
from vistachat.core.imaging import ImageNormalizer, parse_data_uri
from vistachat.core.models import ChatMessage, MessageRole, MetaTags, NormalizedImage
from vistachat.core.store import MessageStore
from vistachat.core.tags import extract_tags
from vistachat.provider import (
    CapabilityUnsupported,
    ImageDescriber,
    ProviderError,
    ProviderTimeoutError,
)

log = structlog.get_logger()

SERVICE_ERROR_TEMPLATE = "⚠️ Service Error: {error}. (Try a smaller image or shorter prompt)."


class ChatTurnResult(BaseModel):
    """一轮对话的结果"""

    user_message: ChatMessage
    assistant_message: ChatMessage
    stats: dict = Field(default_factory=dict, description="本轮处理统计")

    @property
    def description(self) -> str:
        return self.assistant_message.content

    @property
    def meta_tags(self) -> MetaTags | None:
        return self.assistant_message.meta_tags


class ChatService:
    """对话业务服务

    所有协作者在进程启动时创建一次，通过构造器注入。
    """

    def __init__(
        self,
        message_store: MessageStore,
        describer: ImageDescriber,
        normalizer: ImageNormalizer | None = None,
        image_target_kb: int = 100,
        normalize_images: bool = True,
        max_context_messages: int = 2,
        max_upload_bytes: int = 20 * 1024 * 1024,
    ) -> None:
        self._store = message_store
        self._describer = describer
        self._normalizer = normalizer or ImageNormalizer()
        self._image_target_kb = image_target_kb
        self._normalize_images = normalize_images
        self._max_context_messages = max_context_messages
        self._max_upload_bytes = max_upload_bytes

    async def process_turn(
        self,
        session_id: str,
        message: str | None,
        image_bytes: bytes | None = None,
        image_mime: str = "image/jpeg",
        image_data_uri: str | None = None,
    ) -> ChatTurnResult:
        """处理一轮对话

        Args:
            session_id: 会话标识
            message: 用户文本，可为空（此时必须有图片）
            image_bytes: multipart 上传的原始图片
            image_mime: 上传图片的 MIME（仅 passthrough 模式使用）
            image_data_uri: JSON 请求中的 data URI

        Returns:
            ChatTurnResult

        Raises:
            ValidationError: message 与图片均为空，或图片超过上传上限
            ImageDecodeError: 图片无法解码
            ProviderTimeoutError: 模型调用超时（不写入 assistant 消息）
        """
        text = (message or "").strip()
        if not text and not image_bytes and not image_data_uri:
            raise ValidationError("Message or image required", field="message")

        image: NormalizedImage | None = None
        raw: bytes | None = image_bytes
        if image_data_uri:
            image_mime, raw = parse_data_uri(image_data_uri)
        if raw is not None:
            if len(raw) > self._max_upload_bytes:
                raise ValidationError(
                    f"Image exceeds upload limit of {self._max_upload_bytes} bytes",
                    field="image",
                )
            image = await asyncio.to_thread(self._normalize, raw, image_mime)

        user_message = await self._store.append_message(
            ChatMessage(
                session_id=session_id,
                role=MessageRole.USER,
                content=text,
                image_data=image.data_uri if image else None,
            )
        )
        log.info(
            "user_message_stored",
            message_id=user_message.id,
            text_preview=text[:MESSAGE_PREVIEW_LENGTH],
            image_size_kb=round(image.size_kb, 1) if image else None,
        )

        history = await self._store.get_recent_messages(
            session_id,
            limit=self._max_context_messages,
            before_id=user_message.id,
        )

        start_time = time.monotonic()
        degraded = False
        model_name = ""
        token_usage: dict[str, int] = {}
        try:
            description = await self._describer.describe(image, text, history)
        except ProviderTimeoutError:
            log.error("describe_timeout", message_id=user_message.id)
            raise
        except CapabilityUnsupported as e:
            log.warning("describe_image_rejected", error=str(e.original_error or e))
            content, meta_tags, vision_supported, degraded = str(e), None, False, True
        except ProviderError as e:
            log.error("describe_failed", error=str(e), error_type=type(e).__name__)
            content = SERVICE_ERROR_TEMPLATE.format(error=e)
            meta_tags, vision_supported, degraded = None, True, True
        else:
            content = description.text
            meta_tags = description.meta_tags
            vision_supported = description.vision_supported
            degraded = not description.vision_supported
            if description.call_result is not None:
                model_name = description.call_result.model_name
                token_usage = description.call_result.token_usage.model_dump()

        assistant_message = await self._store.append_message(
            ChatMessage(
                session_id=session_id,
                role=MessageRole.ASSISTANT,
                content=content,
                meta_tags=meta_tags or extract_tags(content),
            )
        )

        duration_ms = int((time.monotonic() - start_time) * 1000)
        log.info(
            "assistant_message_stored",
            message_id=assistant_message.id,
            duration_ms=duration_ms,
            degraded=degraded,
        )

        return ChatTurnResult(
            user_message=user_message,
            assistant_message=assistant_message,
            stats={
                "duration_ms": duration_ms,
                "image_size_kb": round(image.size_kb, 1) if image else None,
                "model_name": model_name,
                "vision_supported": vision_supported,
                "degraded": degraded,
                "token_usage": token_usage,
            },
        )

    def _normalize(self, raw: bytes, mime: str) -> NormalizedImage:
        """同步执行的图片归一化（在线程中调用）"""
        if not self._normalize_images:
            return self._normalizer.passthrough(raw, mime)
        return self._normalizer.normalize(raw, self._image_target_kb)
