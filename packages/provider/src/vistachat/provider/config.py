"""ProviderConfig -- Provider 配置加载

从环境变量加载配置，不硬编码 provider/模型名/密钥。
"""

import os
from typing import Literal

import structlog
from pydantic import BaseModel, Field, SecretStr

log = structlog.get_logger()


class ProviderConfig(BaseModel):
    """Provider 包配置 -- 从环境变量加载

    环境变量:
        VISTACHAT_LLM_MODE: 运行模式（litellm/http/echo）
        VISTACHAT_LLM_API_BASE: 模型服务基础 URL
        VISTACHAT_LLM_API_KEY: 模型服务密钥
        VISTACHAT_LLM_MODEL: 模型名称
        VISTACHAT_LLM_TIMEOUT_S: 调用超时（秒，默认 60）
        VISTACHAT_LLM_MAX_TOKENS: 最大生成 token 数（默认 1500）
        VISTACHAT_LLM_TEMPERATURE: 采样温度（默认 0.7）
        VISTACHAT_VISION_PROBE_TTL_S: 视觉能力探测结果缓存时长（秒，默认 300）
    """

    llm_mode: Literal["litellm", "http", "echo"] = Field(
        default="litellm",
        description="运行模式：litellm（OpenAI 兼容 SDK）/ http（原始 HTTP）/ echo",
    )
    api_base: str = Field(
        default="https://api.openai.com/v1",
        description="模型服务基础 URL",
    )
    api_key: SecretStr = Field(
        default=SecretStr(""),
        description="模型服务密钥",
    )
    model: str = Field(
        default="openai/gpt-4o-mini",
        description="模型名称（litellm 格式 provider/model）",
    )
    timeout_s: int = Field(default=60, ge=1, description="调用超时（秒）")
    max_tokens: int = Field(default=1500, ge=1, description="最大生成 token 数")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0, description="采样温度")
    vision_probe_ttl_s: int = Field(
        default=300,
        ge=0,
        description="视觉探测缓存时长（秒），0 表示每次都探测",
    )


_INT_ENV_FIELDS = {
    "VISTACHAT_LLM_TIMEOUT_S": ("timeout_s", 60),
    "VISTACHAT_LLM_MAX_TOKENS": ("max_tokens", 1500),
    "VISTACHAT_VISION_PROBE_TTL_S": ("vision_probe_ttl_s", 300),
}


def load_provider_config() -> ProviderConfig:
    """从环境变量加载 Provider 配置

    非法数值记录 warning 并回退默认值，不阻塞启动。

    Returns:
        ProviderConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("VISTACHAT_LLM_MODE"):
        kwargs["llm_mode"] = val

    if val := os.environ.get("VISTACHAT_LLM_API_BASE"):
        kwargs["api_base"] = val

    if val := os.environ.get("VISTACHAT_LLM_API_KEY"):
        kwargs["api_key"] = SecretStr(val)

    if val := os.environ.get("VISTACHAT_LLM_MODEL"):
        kwargs["model"] = val

    for env_var, (field, fallback) in _INT_ENV_FIELDS.items():
        if val := os.environ.get(env_var):
            try:
                kwargs[field] = int(val)
            except ValueError:
                log.warning(
                    "invalid_int_config",
                    env_var=env_var,
                    value=val,
                    fallback=fallback,
                )

    if val := os.environ.get("VISTACHAT_LLM_TEMPERATURE"):
        try:
            kwargs["temperature"] = float(val)
        except ValueError:
            log.warning(
                "invalid_float_config",
                env_var="VISTACHAT_LLM_TEMPERATURE",
                value=val,
                fallback=0.7,
            )

    return ProviderConfig(**kwargs)
