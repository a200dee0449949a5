"""ImageDescriber -- 图片描述请求

流程：
1. 有图片时先经 VisionProbe 判断是否支持视觉；不支持直接返回固定说明 + 用户原话
2. 组装 messages：system 指令 + 最近 N 条历史 + 当前轮（文本 + 内联图片）
3. 调用模型，归一化响应（拆分 TAGS 行），用 Tag Extractor 计算 MetaTags

模型错误不在此处吞掉：CapabilityUnsupported / ProviderError / ProviderTimeoutError
原样抛给调用方，由调用方决定是否转成 assistant 文本。
"""

from typing import Any

import structlog
from pydantic import BaseModel, Field
from vistachat.core.models import ChatMessage, MetaTags, NormalizedImage
from vistachat.core.tags import extract_tags

from .models import ModelCallResult
from .probe import ChatClient, VisionProbe
from .response import normalize_response

log = structlog.get_logger()

SYSTEM_PROMPT = (
    "You are a helpful image analyst. Describe images in Markdown with clear "
    "sections and bullet points: main subject, objects, colors, composition, "
    "any visible text, mood/atmosphere and notable details. "
    "Always end your response with a list of 5 tags in this format: "
    "'TAGS: tag1, tag2, tag3'."
)

DEFAULT_IMAGE_PROMPT = "Please describe this image in detail with markdown formatting."

VISION_FALLBACK_MESSAGE = (
    "⚠️ **Note**: Image analysis requires a vision-capable model. "
    "The configured model does not support direct image uploads.\n\n"
    "To analyze images:\n"
    "1. Use a model with vision capabilities\n"
    "2. Or describe the image in text for analysis"
)

EMPTY_RESPONSE_TEXT = "No description generated."


class Description(BaseModel):
    """一次描述请求的结果"""

    text: str = Field(description="展示给用户的 markdown 正文")
    meta_tags: MetaTags = Field(description="启发式标签")
    embedded_tags: list[str] = Field(default_factory=list, description="模型显式标签")
    vision_supported: bool = Field(default=True, description="本轮是否走了视觉路径")
    call_result: ModelCallResult | None = Field(
        default=None,
        description="模型调用详情，降级回答时为 None",
    )


def build_fallback_text(prompt: str) -> str:
    """不支持视觉时的固定回答，附带用户原话"""
    text = VISION_FALLBACK_MESSAGE
    if prompt and prompt.strip():
        text += (
            f'\n\n**Your question**: "{prompt}"\n\n'
            "*Please describe the image in text for me to analyze.*"
        )
    return text


def history_to_messages(history: list[ChatMessage], limit: int) -> list[dict[str, Any]]:
    """取最近 limit 条历史转为 messages

    历史中的图片不再重复发送；只有图片没有文字的 user 消息记为 [Image]。
    """
    if limit <= 0:
        return []
    messages: list[dict[str, Any]] = []
    for msg in history[-limit:]:
        content = msg.content or ("[Image]" if msg.has_image else "")
        if not content:
            continue
        messages.append({"role": msg.role.value, "content": content})
    return messages


class ImageDescriber:
    """描述请求器

    client / probe 通过构造器注入，测试中可替换为 Mock。
    """

    def __init__(
        self,
        client: ChatClient,
        probe: VisionProbe,
        max_context_messages: int = 2,
        max_tokens: int = 1500,
        temperature: float = 0.7,
    ) -> None:
        """
        Args:
            client: 模型客户端（LiteLLMClient / HttpTextClient / EchoMessageAdapter）
            probe: 视觉能力探测器
            max_context_messages: 附带的历史消息条数上限
            max_tokens: 最大生成 token 数
            temperature: 采样温度
        """
        self._client = client
        self._probe = probe
        self._max_context_messages = max_context_messages
        self._max_tokens = max_tokens
        self._temperature = temperature

    @property
    def probe(self) -> VisionProbe:
        return self._probe

    def build_messages(
        self,
        image: NormalizedImage | None,
        prompt: str,
        history: list[ChatMessage],
    ) -> list[dict[str, Any]]:
        """组装发送给模型的 messages"""
        messages: list[dict[str, Any]] = [{"role": "system", "content": SYSTEM_PROMPT}]
        messages.extend(history_to_messages(history, self._max_context_messages))

        if image is None:
            messages.append({"role": "user", "content": prompt})
        else:
            messages.append(
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt or DEFAULT_IMAGE_PROMPT},
                        {"type": "image_url", "image_url": {"url": image.data_uri}},
                    ],
                }
            )
        return messages

    async def describe(
        self,
        image: NormalizedImage | None,
        prompt: str,
        history: list[ChatMessage],
    ) -> Description:
        """请求图片描述

        Args:
            image: 归一化后的图片，纯文本对话时为 None
            prompt: 用户文本
            history: 本轮之前的会话消息（时间正序）

        Returns:
            Description

        Raises:
            CapabilityUnsupported: 模型拒绝了图片字段
            ProviderTimeoutError: 调用超时
            ProviderError: 其他模型调用失败
        """
        if image is not None and not await self._probe.supports_vision():
            log.info("vision_unsupported_fallback", model=self._client.model)
            text = build_fallback_text(prompt)
            return Description(
                text=text,
                meta_tags=extract_tags(text),
                vision_supported=False,
            )

        messages = self.build_messages(image, prompt, history)
        log.debug(
            "describe_request",
            model=self._client.model,
            message_count=len(messages),
            has_image=image is not None,
        )

        result = await self._client.complete(
            messages,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )
        reply = normalize_response(result.response)
        text = reply.text or EMPTY_RESPONSE_TEXT

        return Description(
            text=text,
            meta_tags=extract_tags(text, reply.embedded_tags),
            embedded_tags=reply.embedded_tags,
            vision_supported=True,
            call_result=result,
        )
