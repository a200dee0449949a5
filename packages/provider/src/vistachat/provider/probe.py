"""VisionProbe -- 视觉能力探测

发送一个 1x1 JPEG + "Test" 的最小请求（max_tokens=1）：
成功即认为支持图片输入，其他异常视为不支持（异常只记 debug 日志）。
服务不可达或超时属于无结论，本次返回 False 且不缓存，下次调用重新探测。

探测结果按客户端配置指纹缓存 ttl_s 秒，进程内共享；
指纹变化（切换了服务地址或模型）时缓存自动失效。
"""

import time
from typing import Any, Protocol

import structlog

from .exceptions import ProviderTimeoutError, ProviderUnreachableError

log = structlog.get_logger()

_TRANSIENT_ERRORS = (ProviderUnreachableError, ProviderTimeoutError)

# 1x1 像素 JPEG
PROBE_IMAGE_DATA_URI = (
    "data:image/jpeg;base64,/9j/4AAQSkZJRgABAQAAAQABAAD/2wBDAAYEBQYFBAYGBQYHBwYIChAKCgkJChQODwwQ"
    "FxQYGBcUFhYaHSUfGhsjHBYWICwgIyYnKSopGR8tMC0oMCUoKSj/2wBDAQcHBwoIChMKChMoGhYaKCgoKCgoKCgo"
    "KCgoKCgoKCgoKCgoKCgoKCgoKCgoKCgoKCgoKCgoKCgoKCgoKCgoKCj/wAARCAAQABADASIAAhEBAxEB/8QAFQAB"
    "AQAAAAAAAAAAAAAAAAAAAAv/xAAUEAEAAAAAAAAAAAAAAAAAAAAA/8QAFQEBAQAAAAAAAAAAAAAAAAAAAAX/xAAU"
    "EQEAAAAAAAAAAAAAAAAAAAAA/9oADAMBAAIRAxEAPwCdABmX/9k="
)

PROBE_MESSAGES: list[dict[str, Any]] = [
    {
        "role": "user",
        "content": [
            {"type": "text", "text": "Test"},
            {
                "type": "image_url",
                "image_url": {"url": PROBE_IMAGE_DATA_URI, "detail": "low"},
            },
        ],
    }
]


class ChatClient(Protocol):
    """探测与描述所需的最小客户端接口"""

    @property
    def model(self) -> str: ...

    @property
    def fingerprint(self) -> str: ...

    async def complete(
        self,
        messages: list[dict[str, Any]],
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs,
    ): ...


class VisionProbe:
    """视觉能力探测器（带 TTL 缓存）"""

    def __init__(self, client: ChatClient, ttl_s: float = 300, clock=time.monotonic) -> None:
        """
        Args:
            client: 被探测的模型客户端
            ttl_s: 缓存有效期（秒），0 表示不缓存
            clock: 单调时钟，测试可注入
        """
        self._client = client
        self._ttl_s = ttl_s
        self._clock = clock
        # (fingerprint, supported, checked_at)
        self._cached: tuple[str, bool, float] | None = None

    async def supports_vision(self) -> bool:
        """当前客户端配置是否接受图片输入"""
        fingerprint = self._client.fingerprint
        now = self._clock()

        if self._cached is not None and self._ttl_s > 0:
            cached_fp, supported, checked_at = self._cached
            if cached_fp == fingerprint and now - checked_at < self._ttl_s:
                return supported

        try:
            supported = await self._probe()
        except _TRANSIENT_ERRORS as e:
            # 连接失败或超时：本次返回 False，不写缓存
            log.warning(
                "vision_probe_inconclusive",
                fingerprint=fingerprint,
                error_type=type(e).__name__,
            )
            return False
        self._cached = (fingerprint, supported, now)
        log.info(
            "vision_probe_completed",
            fingerprint=fingerprint,
            supported=supported,
        )
        return supported

    def invalidate(self) -> None:
        """清除缓存，下次调用重新探测"""
        self._cached = None

    @property
    def cached_result(self) -> bool | None:
        """最近一次探测结果（未探测过为 None，不判断是否过期）"""
        return self._cached[1] if self._cached else None

    async def _probe(self) -> bool:
        try:
            await self._client.complete(PROBE_MESSAGES, max_tokens=1)
        except _TRANSIENT_ERRORS:
            raise
        except Exception as e:
            # 探测只关心成功与否，具体错误不向上传递
            log.debug("vision_probe_failed", error=str(e), error_type=type(e).__name__)
            return False
        return True
