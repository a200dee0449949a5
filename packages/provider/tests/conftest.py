"""Provider 包测试 fixtures"""

from typing import Any

import pytest
from vistachat.core.models import NormalizedImage
from vistachat.provider.models import ModelCallResult
from vistachat.provider.response import PlainText


class FakeClient:
    """可编程的模型客户端：记录调用，按队列返回结果或抛出异常"""

    def __init__(self, *results, model: str = "fake-model", fingerprint: str = "fake") -> None:
        self.model = model
        self.fingerprint = fingerprint
        self.calls: list[dict[str, Any]] = []
        self._results = list(results)

    def push(self, *results) -> None:
        self._results.extend(results)

    async def complete(
        self,
        messages: list[dict[str, Any]],
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs,
    ) -> ModelCallResult:
        self.calls.append(
            {"messages": messages, "temperature": temperature, "max_tokens": max_tokens}
        )
        result = self._results.pop(0) if self._results else "ok"
        if isinstance(result, Exception):
            raise result
        if isinstance(result, str):
            return ModelCallResult(
                response=PlainText(text=result),
                model_name=self.model,
                provider="fake",
                duration_ms=1,
            )
        return result


@pytest.fixture
def sample_messages() -> list[dict[str, str]]:
    """标准 messages 格式测试数据"""
    return [{"role": "user", "content": "Hello, world!"}]


@pytest.fixture
def image_messages() -> list[dict[str, Any]]:
    """带图片分段的 messages 测试数据"""
    return [
        {"role": "system", "content": "You are a helpful assistant."},
        {
            "role": "user",
            "content": [
                {"type": "text", "text": "What is this?"},
                {"type": "image_url", "image_url": {"url": "data:image/jpeg;base64,AAAA"}},
            ],
        },
    ]


@pytest.fixture
def small_image() -> NormalizedImage:
    """最小的已归一化图片"""
    return NormalizedImage(data=b"\xff\xd8\xff\xe0fake", width=1, height=1, quality=80)


@pytest.fixture
def fake_client_factory():
    return FakeClient
