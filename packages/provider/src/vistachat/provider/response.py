"""Provider 响应形态归一化

不同服务返回的形态不同：
- PlainText: 原始文本（如直接返回 text/plain 的 HTTP 服务）
- Structured: OpenAI 风格的 choices 列表

在请求边界立即归一化为 ProviderReply{text, embedded_tags}，
之后的标签提取与 provider 无关。
"""

from typing import Annotated, Literal

from pydantic import BaseModel, Field
from vistachat.core.tags import parse_keywords

# 模型在回答末尾追加的标签行标记
TAGS_MARKER = "TAGS:"


class PlainText(BaseModel):
    """纯文本响应"""

    kind: Literal["plain_text"] = "plain_text"
    text: str


class Choice(BaseModel):
    """choices 结构中的单个候选"""

    index: int = 0
    text: str = ""
    finish_reason: str | None = None


class Structured(BaseModel):
    """OpenAI 风格 choices 响应"""

    kind: Literal["structured"] = "structured"
    choices: list[Choice] = Field(default_factory=list)


RawProviderResponse = Annotated[PlainText | Structured, Field(discriminator="kind")]


class ProviderReply(BaseModel):
    """归一化后的回答"""

    text: str = Field(description="展示给用户的正文")
    embedded_tags: list[str] = Field(
        default_factory=list,
        description="TAGS: 行中的显式标签",
    )


def response_text(response: PlainText | Structured) -> str:
    """取出响应文本，choices 为空时返回空字符串"""
    if isinstance(response, PlainText):
        return response.text
    if not response.choices:
        return ""
    first = min(response.choices, key=lambda c: c.index)
    return first.text


def split_embedded_tags(text: str) -> ProviderReply:
    """按最后一个 TAGS: 标记拆分正文与标签

    没有标记时整段文本即正文，标签为空；标记行只取第一行作为标签，
    其后的内容保留在正文末尾。
    """
    head, marker, tail = text.rpartition(TAGS_MARKER)
    if not marker:
        return ProviderReply(text=text.strip())

    # 兼容 **TAGS:** 这类 markdown 加粗写法
    tag_lines = tail.lstrip("*").strip().splitlines()
    body = head.rstrip().rstrip("*").rstrip()
    # 标签行之后的内容接回正文
    trailing = "\n".join(tag_lines[1:]).strip()
    if trailing:
        body = f"{body}\n\n{trailing}" if body else trailing
    return ProviderReply(
        text=body,
        embedded_tags=parse_keywords(tag_lines[0]) if tag_lines else [],
    )


def normalize_response(response: PlainText | Structured) -> ProviderReply:
    """PlainText | Structured -> ProviderReply"""
    return split_embedded_tags(response_text(response))
