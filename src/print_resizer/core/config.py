"""处理任务的配置模型。"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from print_resizer.core.exceptions import InvalidConfigurationError

MB = 1024 * 1024


class ResizeMode(str, Enum):
    """尺寸计算模式。"""

    CONSTRAINED = "constrained"
    FILE = "file"
    BRAND = "brand"

    @classmethod
    def parse(cls, value: "ResizeMode | str") -> "ResizeMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise InvalidConfigurationError(f"未知的尺寸模式: {value}") from exc


class VariantTag(str, Enum):
    """品牌模式下的三种源图变体。"""

    ORIGINAL = "Original"
    FULL_BLACK = "Full Black"
    FULL_WHITE = "Full White"


@dataclass(slots=True)
class ResizeConfig:
    """尺寸换算与编码参数。"""

    dpi: int = 300
    jpeg_quality: int = 95
    max_image_bytes: int = 5 * MB


@dataclass(slots=True)
class OutputConfig:
    """输出压缩包相关配置。"""

    compression_level: int = 6
    images_folder: str = "resized_images"
    report_filename: str = "processing_report.txt"


@dataclass(slots=True)
class LimitsConfig:
    """上传文件的大小限制。"""

    max_archive_bytes: int = 100 * MB
    max_spec_bytes: int = 10 * MB


@dataclass(slots=True)
class JobConfig:
    """单次批处理任务的配置集合。"""

    mode: ResizeMode = ResizeMode.FILE
    resize: ResizeConfig = field(default_factory=ResizeConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    max_workers: int = 1

    def validate(self) -> "JobConfig":
        """校验配置并返回自身，便于链式调用。"""

        self.mode = ResizeMode.parse(self.mode)
        if self.resize.dpi <= 0:
            raise InvalidConfigurationError("dpi 必须大于 0")
        if not 1 <= self.resize.jpeg_quality <= 100:
            raise InvalidConfigurationError("jpeg_quality 必须位于 1~100")
        if self.resize.max_image_bytes <= 0:
            raise InvalidConfigurationError("max_image_bytes 必须大于 0")
        if not 0 <= self.output.compression_level <= 9:
            raise InvalidConfigurationError("compression_level 必须位于 0~9")
        if self.max_workers < 1:
            raise InvalidConfigurationError("max_workers 至少为 1")
        return self
