"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、图片压缩预算、上下文窗口大小等可配置项。
函数形式的配置在调用时读取环境变量，便于测试覆盖。
"""

import os
from pathlib import Path

import structlog

log = structlog.get_logger()


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("VISTACHAT_DATA_DIR", "data"))


def _get_int(env_var: str, default: int) -> int:
    """读取整数环境变量，非法值记录 warning 并回退默认值"""
    val = os.environ.get(env_var)
    if not val:
        return default
    try:
        return int(val)
    except ValueError:
        log.warning(
            "invalid_int_config",
            env_var=env_var,
            value=val,
            fallback=default,
        )
        return default


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "VISTACHAT_DB_PATH",
        str(_get_base_dir() / "sqlite" / "vistachat.db"),
    )


def get_image_target_kb() -> int:
    """图片压缩目标大小（KB）"""
    return _get_int("VISTACHAT_IMAGE_TARGET_KB", 100)


def get_image_max_dimension() -> int:
    """图片最大边长（像素），只缩小不放大"""
    return _get_int("VISTACHAT_IMAGE_MAX_DIMENSION", 1024)


def is_image_normalize_enabled() -> bool:
    """是否启用图片重编码

    关闭时走 passthrough 降级路径：原样包装为 data URI，不保证大小预算。
    """
    return os.environ.get("VISTACHAT_IMAGE_NORMALIZE", "true").lower() != "false"


def get_max_context_messages() -> int:
    """发送给模型的历史消息条数上限"""
    return max(0, _get_int("VISTACHAT_MAX_CONTEXT_MESSAGES", 2))


def get_max_upload_bytes() -> int:
    """上传图片原始字节上限"""
    return _get_int("VISTACHAT_MAX_UPLOAD_BYTES", 20 * 1024 * 1024)


# 消息预览截断长度（日志用）
MESSAGE_PREVIEW_LENGTH: int = 100
