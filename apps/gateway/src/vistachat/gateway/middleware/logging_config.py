"""structlog 配置

VISTACHAT_LOG_FORMAT=json 输出结构化 JSON，否则为开发用彩色输出。
日志中的 data URI 一律截断，避免整张 base64 图片进入日志。
"""

import logging
import os
import re

import structlog

# 第三方库日志过于啰嗦，统一抬高到 WARNING
_NOISY_LOGGERS = ("LiteLLM", "LiteLLM Router", "LiteLLM Proxy", "httpx", "httpcore")

_DATA_URI_PREFIX = re.compile(r"^data:[\w.+-]+/[\w.+-]+;base64,")

# data URI 保留的 payload 前缀长度
_DATA_URI_KEEP = 16


def _shorten(value: str) -> str:
    match = _DATA_URI_PREFIX.match(value)
    if match is None:
        return value
    payload_len = len(value) - match.end()
    if payload_len <= _DATA_URI_KEEP:
        return value
    head = value[: match.end() + _DATA_URI_KEEP]
    return f"{head}...<{payload_len} chars>"


def redact_data_uris(logger, method_name: str, event_dict: dict) -> dict:
    """structlog processor：截断字符串字段中的 base64 data URI"""
    for key, value in event_dict.items():
        if isinstance(value, str) and value.startswith("data:"):
            event_dict[key] = _shorten(value)
    return event_dict


def setup_logging() -> None:
    """初始化 structlog + 标准库 logging

    环境变量：
        VISTACHAT_LOG_FORMAT: json | dev（默认）
        VISTACHAT_LOG_LEVEL: 日志级别，默认 INFO
    """
    log_format = os.environ.get("VISTACHAT_LOG_FORMAT", "dev").lower()
    log_level = getattr(
        logging,
        os.environ.get("VISTACHAT_LOG_LEVEL", "INFO").upper(),
        logging.INFO,
    )

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_data_uris,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer(
            ensure_ascii=False
        )
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # uvicorn / litellm 等标准库 logging 日志走同一个 formatter
    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def setup_logfire() -> None:
    """LOGFIRE_SEND_TO_LOGFIRE=true 时启用 Logfire（需要 LOGFIRE_TOKEN）"""
    if os.environ.get("LOGFIRE_SEND_TO_LOGFIRE", "false").lower() != "true":
        return
    try:
        import logfire

        logfire.configure()
        logfire.instrument_fastapi()
    except Exception as e:
        # logfire 是可选依赖，失败时只保留本地日志
        structlog.get_logger().warning("logfire_init_failed", error=str(e))
