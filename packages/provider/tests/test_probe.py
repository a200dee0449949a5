"""VisionProbe 单元测试 -- 探测请求形态、TTL 缓存、指纹失效"""

import httpx
from vistachat.provider.exceptions import (
    CapabilityUnsupported,
    ProviderTimeoutError,
    ProviderUnreachableError,
)
from vistachat.provider.probe import PROBE_IMAGE_DATA_URI, VisionProbe


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestVisionProbe:
    """supports_vision()"""

    async def test_success_means_supported(self, fake_client_factory):
        client = fake_client_factory("x")
        probe = VisionProbe(client)

        assert await probe.supports_vision() is True
        call = client.calls[0]
        assert call["max_tokens"] == 1
        parts = call["messages"][0]["content"]
        assert parts[0] == {"type": "text", "text": "Test"}
        assert parts[1]["image_url"]["url"] == PROBE_IMAGE_DATA_URI

    async def test_any_error_means_unsupported(self, fake_client_factory):
        client = fake_client_factory(RuntimeError("400 image_url not allowed"))
        probe = VisionProbe(client)

        assert await probe.supports_vision() is False
        assert probe.cached_result is False

    async def test_cached_within_ttl(self, fake_client_factory):
        client = fake_client_factory("x")
        clock = FakeClock()
        probe = VisionProbe(client, ttl_s=300, clock=clock)

        await probe.supports_vision()
        clock.now += 299
        await probe.supports_vision()

        assert len(client.calls) == 1

    async def test_expires_after_ttl(self, fake_client_factory):
        client = fake_client_factory(RuntimeError("no vision"), "x")
        clock = FakeClock()
        probe = VisionProbe(client, ttl_s=300, clock=clock)

        assert await probe.supports_vision() is False
        clock.now += 301
        assert await probe.supports_vision() is True
        assert len(client.calls) == 2

    async def test_fingerprint_change_invalidates(self, fake_client_factory):
        client = fake_client_factory("x", RuntimeError("no vision"))
        probe = VisionProbe(client, ttl_s=300, clock=FakeClock())

        assert await probe.supports_vision() is True
        client.fingerprint = "fake|other-model"
        assert await probe.supports_vision() is False

    async def test_zero_ttl_never_caches(self, fake_client_factory):
        client = fake_client_factory("x", "x")
        probe = VisionProbe(client, ttl_s=0, clock=FakeClock())

        await probe.supports_vision()
        await probe.supports_vision()
        assert len(client.calls) == 2

    async def test_invalidate(self, fake_client_factory):
        client = fake_client_factory("x", "x")
        probe = VisionProbe(client, clock=FakeClock())

        await probe.supports_vision()
        probe.invalidate()
        assert probe.cached_result is None
        await probe.supports_vision()
        assert len(client.calls) == 2


class TestVisionProbeTransientErrors:
    """不可达 / 超时不写缓存"""

    async def test_unreachable_not_cached(self, fake_client_factory):
        client = fake_client_factory(
            ProviderUnreachableError("http://localhost:4000", httpx.ConnectError("refused")),
            "x",
        )
        clock = FakeClock()
        probe = VisionProbe(client, ttl_s=300, clock=clock)

        assert await probe.supports_vision() is False
        assert probe.cached_result is None

        clock.now += 10
        assert await probe.supports_vision() is True
        assert probe.cached_result is True
        assert len(client.calls) == 2

    async def test_timeout_not_cached(self, fake_client_factory):
        client = fake_client_factory(ProviderTimeoutError(30), "x")
        probe = VisionProbe(client, ttl_s=300, clock=FakeClock())

        assert await probe.supports_vision() is False
        assert await probe.supports_vision() is True
        assert len(client.calls) == 2

    async def test_capability_rejection_cached(self, fake_client_factory):
        client = fake_client_factory(CapabilityUnsupported(), "x")
        clock = FakeClock()
        probe = VisionProbe(client, ttl_s=300, clock=clock)

        assert await probe.supports_vision() is False
        clock.now += 10
        assert await probe.supports_vision() is False
        assert len(client.calls) == 1
