"""数据模型 -- TokenUsage + ModelCallResult

所有 provider（LiteLLM、HTTP、Echo）统一返回 ModelCallResult，
原始响应形态保存在 response 字段（PlainText | Structured）。
"""

from pydantic import BaseModel, Field

from .response import RawProviderResponse, response_text


class TokenUsage(BaseModel):
    """Token 使用统计

    key 命名对齐 OpenAI/LiteLLM 行业标准：
    prompt_tokens / completion_tokens / total_tokens
    """

    prompt_tokens: int = Field(default=0, ge=0, description="输入 token 数")
    completion_tokens: int = Field(default=0, ge=0, description="输出 token 数")
    total_tokens: int = Field(default=0, ge=0, description="总 token 数")


class ModelCallResult(BaseModel):
    """一次模型调用的结果"""

    response: RawProviderResponse = Field(description="原始响应（纯文本或 choices 结构）")

    model_name: str = Field(default="", description="实际调用的模型名称")
    provider: str = Field(default="", description="实际 provider（如 openai/echo）")

    duration_ms: int = Field(ge=0, description="端到端耗时（毫秒）")
    token_usage: TokenUsage = Field(
        default_factory=TokenUsage,
        description="Token 使用详情",
    )

    @property
    def content(self) -> str:
        """响应文本（未拆分 TAGS 行）"""
        return response_text(self.response)
