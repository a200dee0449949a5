"""EchoMessageAdapter 单元测试 -- 验证 messages -> 文本提取、ModelCallResult 构建"""

import pytest
from vistachat.provider.echo_adapter import EchoMessageAdapter
from vistachat.provider.models import ModelCallResult
from vistachat.provider.response import PlainText


@pytest.fixture
def adapter():
    return EchoMessageAdapter()


class TestEchoMessageAdapter:
    """EchoMessageAdapter 核心功能测试"""

    async def test_single_user_message(self, adapter, sample_messages):
        result = await adapter.complete(sample_messages)

        assert isinstance(result, ModelCallResult)
        assert isinstance(result.response, PlainText)
        assert result.content == "Echo: Hello, world!"
        assert result.provider == "echo"
        assert result.model_name == "echo"

    async def test_multi_turn_extracts_last_user(self, adapter):
        messages = [
            {"role": "system", "content": "You are helpful"},
            {"role": "user", "content": "First question"},
            {"role": "assistant", "content": "First answer"},
            {"role": "user", "content": "Second question"},
        ]
        result = await adapter.complete(messages)

        assert "Second question" in result.content
        assert "First question" not in result.content

    async def test_image_parts_counted(self, adapter, image_messages):
        result = await adapter.complete(image_messages)
        assert result.content == "Echo: What is this?\n\n[1 image(s) received]"

    async def test_no_user_message(self, adapter):
        result = await adapter.complete([{"role": "system", "content": "sys"}])
        assert result.content == "Echo: (empty)"

    async def test_token_usage_populated(self, adapter):
        result = await adapter.complete([{"role": "user", "content": "hello world"}])
        usage = result.token_usage
        assert usage.prompt_tokens == 2
        assert usage.total_tokens == usage.prompt_tokens + usage.completion_tokens

    def test_fingerprint(self, adapter):
        assert adapter.fingerprint == "echo"
        assert adapter.model == "echo"
