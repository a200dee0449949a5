"""Image Normalizer -- 上传图片的统一重编码与大小控制

流程：
1. 解码 + EXIF 方向校正 + 转 RGB
2. 等比缩放到 max_dimension 以内（只缩小不放大）
3. 以 initial_quality 编码 JPEG（即使已低于预算也重编码，保证输出格式统一）
4. 超预算时按 quality_step 逐级降低质量，直到 min_quality
5. 仍超预算：以 fallback_dimension + fallback_quality 再编码一次，无条件接受

循环次数上限为 (initial_quality - min_quality) / quality_step，最坏情况为常数次编码。
"""

import base64
import binascii
import io
import re

import structlog
from PIL import Image, ImageOps, UnidentifiedImageError

from .exceptions import ImageDecodeError
from .models.image import NormalizedImage

log = structlog.get_logger()

JPEG_MIME = "image/jpeg"

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(?:;[^,;]+)*),(?P<payload>.*)$", re.DOTALL)


def build_data_uri(data: bytes, mime_type: str = JPEG_MIME) -> str:
    """将字节包装为 data:<mime>;base64,<payload>"""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def parse_data_uri(uri: str) -> tuple[str, bytes]:
    """解析 data URI

    Returns:
        (mime_type, 原始字节)

    Raises:
        ImageDecodeError: 不是 base64 data URI 或 payload 无法解码
    """
    match = _DATA_URI_RE.match(uri.strip())
    if match is None or ";base64" not in match.group("params"):
        raise ImageDecodeError("图片必须是 base64 编码的 data URI")

    payload = re.sub(r"\s+", "", match.group("payload"))
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError("data URI 的 base64 内容无效", original_error=e) from e

    return match.group("mime") or "application/octet-stream", data


class ImageNormalizer:
    """图片归一化器

    所有参数在构造时固定，normalize() 本身无状态，可在线程中并发调用。
    """

    def __init__(
        self,
        max_dimension: int = 1024,
        initial_quality: int = 80,
        min_quality: int = 30,
        quality_step: int = 10,
        fallback_dimension: int = 512,
        fallback_quality: int = 70,
    ) -> None:
        """
        Args:
            max_dimension: 输出最大边长
            initial_quality: 首次编码的 JPEG 质量
            min_quality: 质量下限，循环到此为止
            quality_step: 每轮降低的质量值
            fallback_dimension: 兜底编码的最大边长
            fallback_quality: 兜底编码的 JPEG 质量
        """
        if quality_step <= 0:
            raise ValueError("quality_step 必须为正数")
        if not 0 < min_quality <= initial_quality <= 95:
            raise ValueError("要求 0 < min_quality <= initial_quality <= 95")

        self.max_dimension = max_dimension
        self.initial_quality = initial_quality
        self.min_quality = min_quality
        self.quality_step = quality_step
        self.fallback_dimension = min(fallback_dimension, max_dimension)
        self.fallback_quality = fallback_quality

    def normalize(
        self,
        raw: bytes,
        target_kb: int | None = None,
        original_size: tuple[int, int] | None = None,
    ) -> NormalizedImage:
        """重编码图片并尽量满足大小预算

        Args:
            raw: 上传的原始图片字节
            target_kb: 大小预算（KB），None 表示不限制，只做格式归一化
            original_size: 原始尺寸提示，仅用于 JPEG draft 解码加速

        Returns:
            NormalizedImage（mime_type 固定 image/jpeg）

        Raises:
            ImageDecodeError: 空输入或无法解码
        """
        image = self._decode(raw, original_size)
        budget_bytes = None if target_kb is None else target_kb * 1024

        resized = self._resize(image, self.max_dimension)
        quality = self.initial_quality
        data = self._encode(resized, quality)
        size_history = [len(data)]

        while budget_bytes is not None and len(data) > budget_bytes and quality > self.min_quality:
            quality = max(quality - self.quality_step, self.min_quality)
            data = self._encode(resized, quality)
            size_history.append(len(data))

        if budget_bytes is not None and len(data) > budget_bytes:
            log.info(
                "image_quality_floor_reached",
                size_bytes=len(data),
                budget_bytes=budget_bytes,
                fallback_dimension=self.fallback_dimension,
            )
            resized = self._resize(image, self.fallback_dimension)
            quality = self.fallback_quality
            data = self._encode(resized, quality)
            size_history.append(len(data))

        log.debug(
            "image_normalized",
            input_bytes=len(raw),
            input_size=image.size,
            output_size=resized.size,
            output_bytes=len(data),
            quality=quality,
            passes=len(size_history),
        )

        return NormalizedImage(
            data=data,
            mime_type=JPEG_MIME,
            width=resized.width,
            height=resized.height,
            quality=quality,
            size_history=size_history,
        )

    @staticmethod
    def passthrough(raw: bytes, mime_type: str = JPEG_MIME) -> NormalizedImage:
        """降级路径：不重编码，原样包装

        不检查大小预算，也不校验内容；调用方不可信任其大小。
        """
        if not raw:
            raise ImageDecodeError("图片内容为空")
        log.warning("image_passthrough", size_bytes=len(raw), mime_type=mime_type)
        return NormalizedImage(
            data=raw,
            mime_type=mime_type,
            size_history=[len(raw)],
            degraded=True,
        )

    def _decode(self, raw: bytes, original_size: tuple[int, int] | None) -> Image.Image:
        """解码为 RGB 图像"""
        if not raw:
            raise ImageDecodeError("图片内容为空")
        try:
            image = Image.open(io.BytesIO(raw))
            if image.format == "JPEG":
                # draft 让 libjpeg 以 1/2、1/4、1/8 缩放解码，结果仍不小于目标尺寸
                hint = original_size or image.size
                scale = max(hint) / self.max_dimension if max(hint) else 1
                if scale > 1:
                    image.draft("RGB", (int(hint[0] / scale), int(hint[1] / scale)))
            image.load()
            image = ImageOps.exif_transpose(image)
        except (
            UnidentifiedImageError,
            Image.DecompressionBombError,
            OSError,
            SyntaxError,
            ValueError,
        ) as e:
            raise ImageDecodeError(f"无法解码图片: {e}", original_error=e) from e

        if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
            # 透明区域铺白底
            rgba = image.convert("RGBA")
            background = Image.new("RGB", rgba.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.getchannel("A"))
            return background
        if image.mode != "RGB":
            return image.convert("RGB")
        return image

    @staticmethod
    def _resize(image: Image.Image, max_dimension: int) -> Image.Image:
        """等比缩放到 max_dimension 以内，不放大"""
        resized = image.copy()
        resized.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)
        return resized

    @staticmethod
    def _encode(image: Image.Image, quality: int) -> bytes:
        buf = io.BytesIO()
        image.save(buf, format="JPEG", quality=quality, optimize=True)
        return buf.getvalue()
