"""上传文件与单张图片的大小校验。"""

from __future__ import annotations

from typing import Optional

from print_resizer.core.config import LimitsConfig, ResizeConfig
from print_resizer.core.exceptions import ImageSizeLimitError, InputValidationError
from print_resizer.utils.formatting import format_file_size


def validate_archive_upload(name: str, size: int, limits: Optional[LimitsConfig] = None) -> None:
    """校验输入压缩包，不合法时抛出 InputValidationError。"""

    limits = limits or LimitsConfig()
    if not name.lower().endswith(".zip"):
        raise InputValidationError("File must be a ZIP archive")
    if size <= 0:
        raise InputValidationError("ZIP file cannot be empty")
    if size > limits.max_archive_bytes:
        raise InputValidationError(
            f"ZIP file must be smaller than {format_file_size(limits.max_archive_bytes)}"
        )


def validate_spec_upload(name: str, size: int, limits: Optional[LimitsConfig] = None) -> None:
    """校验规格文件，不合法时抛出 InputValidationError。"""

    limits = limits or LimitsConfig()
    if not name.lower().endswith(".csv"):
        raise InputValidationError("File must be a CSV file")
    if size <= 0:
        raise InputValidationError("CSV file cannot be empty")
    if size > limits.max_spec_bytes:
        raise InputValidationError(
            f"CSV file must be smaller than {format_file_size(limits.max_spec_bytes)}"
        )


def validate_image_size(size: int, key: str, config: Optional[ResizeConfig] = None) -> Optional[str]:
    """单张图片超过上限时返回错误描述，否则返回 None。"""

    limit = (config or ResizeConfig()).max_image_bytes
    if size > limit:
        return (
            f'Image "{key}" is {format_file_size(size)} which exceeds '
            f"the per-image size limit ({format_file_size(limit)})"
        )
    return None


def check_image_size(size: int, key: str, config: Optional[ResizeConfig] = None) -> None:
    """单张图片超过上限时抛出 ImageSizeLimitError。"""

    message = validate_image_size(size, key, config)
    if message:
        raise ImageSizeLimitError(message)
