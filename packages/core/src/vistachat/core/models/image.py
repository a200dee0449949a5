"""NormalizedImage -- Image Normalizer 的输出

mime_type 固定为 image/jpeg（passthrough 降级模式除外）。
"""

import base64

from pydantic import BaseModel, Field


class NormalizedImage(BaseModel):
    """压缩/重编码后的图片

    size_history 记录每一次编码后的字节数，用于观察压缩循环。
    degraded=True 表示未经重编码，调用方不可信任其大小。
    """

    data: bytes = Field(description="编码后的图片字节")
    mime_type: str = Field(default="image/jpeg", description="MIME 类型")
    width: int = Field(default=0, ge=0, description="输出宽度")
    height: int = Field(default=0, ge=0, description="输出高度")
    quality: int | None = Field(default=None, description="最终 JPEG 质量")
    size_history: list[int] = Field(
        default_factory=list,
        description="每次编码后的字节数",
    )
    degraded: bool = Field(default=False, description="是否为未重编码的降级结果")

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    @property
    def size_kb(self) -> float:
        return len(self.data) / 1024

    @property
    def data_uri(self) -> str:
        """data:<mime>;base64,<payload> 形式"""
        payload = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{payload}"
