"""packages/core 测试配置 -- 核心层 fixture"""

import io
import os
from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import aiosqlite
import pytest
import pytest_asyncio
from PIL import Image


@pytest_asyncio.fixture
async def core_db_path(tmp_path: Path) -> Path:
    """核心层临时数据库路径"""
    return tmp_path / "core_test.db"


@pytest_asyncio.fixture
async def core_db(core_db_path: Path) -> AsyncGenerator[aiosqlite.Connection, None]:
    """核心层已初始化数据库连接"""
    from vistachat.core.store.sqlite_init import init_db

    conn = await aiosqlite.connect(str(core_db_path))
    await init_db(conn)
    yield conn
    await conn.close()


@pytest.fixture
def make_image() -> Callable[..., bytes]:
    """生成测试图片字节

    noise=True 时内容为随机噪声（几乎不可压缩），否则为纯色。
    """

    def _make(
        size: tuple[int, int] = (64, 48),
        fmt: str = "JPEG",
        mode: str = "RGB",
        noise: bool = False,
        color=(200, 30, 30),
        **save_kwargs,
    ) -> bytes:
        if noise:
            image = Image.frombytes("RGB", size, os.urandom(size[0] * size[1] * 3))
            if mode != "RGB":
                image = image.convert(mode)
        else:
            image = Image.new(mode, size, color)
        buf = io.BytesIO()
        image.save(buf, format=fmt, **save_kwargs)
        return buf.getvalue()

    return _make
