"""目标尺寸计算与重采样。"""

from __future__ import annotations

import io
import logging
import math

from PIL import Image

from print_resizer.core.config import ResizeConfig, ResizeMode
from print_resizer.core.exceptions import ImageEncodeError, InvalidConfigurationError
from print_resizer.core.models import Size, SpecRow

LOGGER = logging.getLogger(__name__)

RESAMPLE_FILTER = Image.LANCZOS
OUTPUT_FORMAT = "JPEG"


def round_half_up(value: float) -> int:
    """四舍五入到整数（0.5 向上取整）。"""

    return int(math.floor(value + 0.5))


def calculate_image_dimensions(length_inches: float, width_inches: float, dpi: int = 300) -> Size:
    """将物理尺寸换算为像素：宽取自 width 列，高取自 length 列。"""

    return round_half_up(width_inches * dpi), round_half_up(length_inches * dpi)


def requested_size(row: SpecRow, dpi: int = 300) -> Size:
    return calculate_image_dimensions(row.length_inches, row.width_inches, dpi)


def compute_target_size(requested: Size, source_size: Size, mode: ResizeMode) -> Size:
    """根据模式计算最终像素尺寸。

    file / brand 模式直接使用请求尺寸；constrained 模式以较小的请求边为基准，
    保持源图宽高比。
    """

    requested_w, requested_h = requested
    if mode is not ResizeMode.CONSTRAINED:
        return requested_w, requested_h

    source_w, source_h = source_size
    if source_w <= 0 or source_h <= 0:
        raise InvalidConfigurationError(f"源图尺寸不合法: {source_size}")

    base = max(1, min(requested_w, requested_h))
    aspect = source_w / source_h
    if aspect >= 1:
        return base, max(1, round_half_up(base / aspect))
    return max(1, round_half_up(base * aspect)), base


def resample(image: Image.Image, target_size: Size) -> Image.Image:
    if image.size == target_size:
        return image.copy()
    return image.resize(target_size, RESAMPLE_FILTER)


def encode_image(image: Image.Image, config: ResizeConfig) -> bytes:
    """以固定的有损格式编码图片，返回字节串。"""

    image_to_save = image if image.mode == "RGB" else image.convert("RGB")
    buffer = io.BytesIO()
    try:
        image_to_save.save(
            buffer,
            format=OUTPUT_FORMAT,
            quality=config.jpeg_quality,
            subsampling=1,
            optimize=True,
            dpi=(config.dpi, config.dpi),
        )
    except (OSError, ValueError) as exc:
        raise ImageEncodeError("Failed to create resized image") from exc
    return buffer.getvalue()
