"""EchoMessageAdapter -- Echo 模式 messages 接口适配

离线/开发模式使用：不访问网络，回声最后一条 user message 的文本，
图片分段以占位说明代替。视觉探测在此模式下总是成功。
"""

import asyncio
import time
from typing import Any

from .models import ModelCallResult, TokenUsage
from .response import PlainText


class EchoMessageAdapter:
    """complete(messages) -> ModelCallResult 接口的回声实现"""

    model = "echo"
    fingerprint = "echo"

    async def complete(
        self,
        messages: list[dict[str, Any]],
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs,
    ) -> ModelCallResult:
        """通过 Echo 模式处理 messages

        行为:
            1. 从 messages 中提取最后一条 user message 的文本与图片数量
            2. 返回 "Echo: {text}" 格式的纯文本回声
            3. token_usage 按 word 简单估算
        """
        start_time = time.monotonic()

        user_text, image_count = self._extract_last_user_content(messages)

        # 模拟少量延迟
        await asyncio.sleep(0.01)

        response_text = f"Echo: {user_text}"
        if image_count:
            response_text += f"\n\n[{image_count} image(s) received]"

        prompt_tokens = len(user_text.split())
        completion_tokens = len(response_text.split())

        return ModelCallResult(
            response=PlainText(text=response_text),
            model_name="echo",
            provider="echo",
            duration_ms=int((time.monotonic() - start_time) * 1000),
            token_usage=TokenUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
        )

    @staticmethod
    def _extract_last_user_content(messages: list[dict[str, Any]]) -> tuple[str, int]:
        """提取最后一条 user message 的文本和图片分段数

        无 user 消息时返回 ("(empty)", 0)
        """
        for msg in reversed(messages):
            if msg.get("role") != "user":
                continue
            content = msg.get("content", "")
            if isinstance(content, str):
                return content, 0
            texts = [part.get("text", "") for part in content if part.get("type") == "text"]
            images = [part for part in content if part.get("type") == "image_url"]
            return " ".join(texts), len(images)
        return "(empty)", 0
