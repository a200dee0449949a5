"""ChatService 单元测试

测试内容：
1. 校验在任何 I/O 之前完成
2. 正常轮次：user + assistant 两条消息落盘，历史排除当前轮
3. 模型错误转为可见 assistant 文本；超时整轮失败
4. 归一化关闭时走 passthrough
"""

from unittest.mock import AsyncMock

import pytest
from vistachat.core.exceptions import ImageDecodeError, ValidationError
from vistachat.core.models import ChatMessage, MessageRole, MetaTags
from vistachat.gateway.services.chat_service import SERVICE_ERROR_TEMPLATE, ChatService
from vistachat.provider import (
    CapabilityUnsupported,
    Description,
    ProviderError,
    ProviderTimeoutError,
)
from vistachat.provider.exceptions import VISION_REMEDIATION_MESSAGE


def _failing_describer(error: Exception) -> AsyncMock:
    describer = AsyncMock()
    describer.describe.side_effect = error
    return describer


class TestValidation:
    """请求校验"""

    async def test_empty_turn_rejected_before_io(self):
        """message 与图片都为空：不触碰存储和模型"""
        store = AsyncMock()
        describer = AsyncMock()
        service = ChatService(message_store=store, describer=describer)

        with pytest.raises(ValidationError) as exc_info:
            await service.process_turn("default", "   ")

        assert str(exc_info.value) == "Message or image required"
        store.append_message.assert_not_called()
        store.get_recent_messages.assert_not_called()
        describer.describe.assert_not_called()

    async def test_oversize_upload_rejected(self, jpeg_bytes):
        store = AsyncMock()
        service = ChatService(message_store=store, describer=AsyncMock(), max_upload_bytes=10)

        with pytest.raises(ValidationError) as exc_info:
            await service.process_turn("default", "hi", image_bytes=jpeg_bytes)
        assert exc_info.value.field == "image"
        store.append_message.assert_not_called()

    async def test_undecodable_image_not_stored(self):
        store = AsyncMock()
        service = ChatService(message_store=store, describer=AsyncMock())

        with pytest.raises(ImageDecodeError):
            await service.process_turn("default", "hi", image_bytes=b"not an image")
        store.append_message.assert_not_called()


class TestProcessTurn:
    """正常轮次（真实存储 + Echo 模型）"""

    async def test_text_turn(self, store_group, echo_describer):
        service = ChatService(store_group.message_store, echo_describer)

        result = await service.process_turn("s1", "hello there")

        assert result.description == "Echo: hello there"
        assert result.user_message.role == MessageRole.USER
        assert result.assistant_message.role == MessageRole.ASSISTANT
        assert result.meta_tags is not None
        assert result.stats["image_size_kb"] is None
        assert result.stats["model_name"] == "echo"
        assert result.stats["degraded"] is False

        stored = await store_group.message_store.list_messages("s1")
        assert [m.role for m in stored] == [MessageRole.USER, MessageRole.ASSISTANT]

    async def test_image_turn(self, store_group, echo_describer, jpeg_data_uri):
        service = ChatService(store_group.message_store, echo_describer)

        result = await service.process_turn("s1", "", image_data_uri=jpeg_data_uri)

        assert result.user_message.image_data.startswith("data:image/jpeg;base64,")
        assert result.user_message.content == ""
        assert "[1 image(s) received]" in result.description
        assert result.stats["image_size_kb"] <= 100
        assert result.stats["vision_supported"] is True

    async def test_history_excludes_current_turn(self, store_group):
        describer = AsyncMock()
        describer.describe.return_value = Description(text="ok", meta_tags=MetaTags())
        service = ChatService(store_group.message_store, describer, max_context_messages=2)

        await service.process_turn("s1", "first")
        await service.process_turn("s1", "second")

        _, prompt, history = describer.describe.call_args.args
        assert prompt == "second"
        assert [m.content for m in history] == ["first", "ok"]

    async def test_passthrough_when_normalize_disabled(self, store_group, echo_describer):
        service = ChatService(
            store_group.message_store,
            echo_describer,
            normalize_images=False,
        )

        result = await service.process_turn(
            "s1", "raw", image_bytes=b"\x89PNG-ish", image_mime="image/png"
        )

        assert result.user_message.image_data.startswith("data:image/png;base64,")


class TestProviderFailures:
    """模型错误处理"""

    async def test_capability_unsupported_becomes_reply(self, store_group, jpeg_bytes):
        service = ChatService(
            store_group.message_store,
            _failing_describer(CapabilityUnsupported()),
        )

        result = await service.process_turn("s1", "what is it?", image_bytes=jpeg_bytes)

        assert result.description == VISION_REMEDIATION_MESSAGE
        assert result.meta_tags.vision_supported is False
        assert result.stats["degraded"] is True
        assert result.stats["vision_supported"] is False

    async def test_provider_error_becomes_reply(self, store_group):
        service = ChatService(
            store_group.message_store,
            _failing_describer(ProviderError("API Error: 500 Internal Server Error")),
        )

        result = await service.process_turn("s1", "hello")

        assert result.description == SERVICE_ERROR_TEMPLATE.format(
            error="API Error: 500 Internal Server Error"
        )
        assert result.stats["degraded"] is True

    async def test_timeout_fails_turn(self, store_group):
        """超时不写入 assistant 消息，user 消息保留"""
        service = ChatService(
            store_group.message_store,
            _failing_describer(ProviderTimeoutError(60)),
        )

        with pytest.raises(ProviderTimeoutError):
            await service.process_turn("s1", "hello")

        stored = await store_group.message_store.list_messages("s1")
        assert len(stored) == 1
        assert stored[0].role == MessageRole.USER


class TestChatTurnResult:
    def test_properties(self):
        from vistachat.gateway.services.chat_service import ChatTurnResult

        result = ChatTurnResult(
            user_message=ChatMessage(id=1, role=MessageRole.USER, content="q"),
            assistant_message=ChatMessage(
                id=2, role=MessageRole.ASSISTANT, content="a", meta_tags=MetaTags()
            ),
        )
        assert result.description == "a"
        assert result.meta_tags == MetaTags()
