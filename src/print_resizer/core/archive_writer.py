"""输出压缩包生成与命名。"""

from __future__ import annotations

import io
import logging
import re
import zipfile
import zlib
from datetime import datetime, timezone
from itertools import count
from pathlib import PurePosixPath
from typing import Optional

from print_resizer.core.config import OutputConfig, ResizeConfig
from print_resizer.core.exceptions import ArchiveWriteError
from print_resizer.core.models import SessionResult
from print_resizer.core.progress import ProgressCallback, ProgressUpdate
from print_resizer.core.report import build_text_report

LOGGER = logging.getLogger(__name__)

STAGE = "generating"
_UNSAFE_CHARS_RE = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


def sanitize_entry_name(name: str) -> str:
    """去掉路径分隔符等不适合作为压缩包条目名的字符。"""

    cleaned = _UNSAFE_CHARS_RE.sub("_", name).strip().strip(".")
    return cleaned or "image.jpg"


def generate_download_filename(now: Optional[datetime] = None) -> str:
    """生成 ``resized_images_<timestamp>.zip`` 形式的下载文件名（UTC）。"""

    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    timestamp = now.replace(tzinfo=None).isoformat(timespec="seconds")
    return f"resized_images_{re.sub(r'[:.]', '-', timestamp)}.zip"


class ArchiveWriter:
    """将成功的图片与处理报告打包为压缩包。"""

    def __init__(
        self,
        config: Optional[OutputConfig] = None,
        resize_config: Optional[ResizeConfig] = None,
        progress_callback: ProgressCallback = None,
    ) -> None:
        self.config = config or OutputConfig()
        self.resize_config = resize_config or ResizeConfig()
        self._progress_callback = progress_callback
        self._last_percentage = 0

    def write(self, result: SessionResult, generated_at: Optional[datetime] = None) -> bytes:
        """生成压缩包字节串；没有任何成功图片时直接报错。"""

        succeeded = result.succeeded
        if not succeeded:
            raise ArchiveWriteError("No successfully processed images to download")

        total = len(succeeded)
        self._last_percentage = 0
        self._emit(0, total, 0, "Adding images to ZIP...")

        buffer = io.BytesIO()
        used_names: set[str] = set()
        try:
            with zipfile.ZipFile(
                buffer,
                "w",
                compression=zipfile.ZIP_DEFLATED,
                compresslevel=self.config.compression_level,
            ) as archive:
                for idx, item in enumerate(succeeded, start=1):
                    name = self._reserve_name(sanitize_entry_name(item.output_name or item.key), used_names)
                    archive.writestr(f"{self.config.images_folder}/{name}", item.output_bytes)
                    self._emit(idx, total, round(idx / total * 70), f"Adding {name}...")

                self._emit(total, total, 75, "Generating processing report...")
                report = build_text_report(result, self.resize_config, generated_at)
                archive.writestr(self.config.report_filename, report.encode("utf-8"))

                self._emit(total, total, 90, "Finalizing ZIP file...")
        except (OSError, ValueError, zlib.error) as exc:
            raise ArchiveWriteError(f"Failed to generate ZIP file: {exc}") from exc

        data = buffer.getvalue()
        LOGGER.info("输出压缩包生成完成：%d 张图片，%d 字节", total, len(data))
        self._emit(total, total, 100, "ZIP file ready for download!")
        return data

    def _reserve_name(self, name: str, used_names: set[str]) -> str:
        """重名时按 rename 策略追加 ``_1``、``_2`` 后缀。"""

        if name.lower() not in used_names:
            used_names.add(name.lower())
            return name

        path = PurePosixPath(name)
        for idx in count(1):
            candidate = f"{path.stem}_{idx}{path.suffix}"
            if candidate.lower() not in used_names:
                LOGGER.info("输出文件名冲突：%s -> 重命名为 %s", name, candidate)
                used_names.add(candidate.lower())
                return candidate

        # 理论上不会执行到此处
        return name

    def _emit(self, current: int, total: int, percentage: int, message: str) -> None:
        if not self._progress_callback:
            return
        self._last_percentage = max(self._last_percentage, percentage)
        self._progress_callback(
            ProgressUpdate(
                stage=STAGE,
                current=current,
                total=total,
                percentage=self._last_percentage,
                message=message,
            )
        )


def write_output_archive(
    result: SessionResult,
    config: Optional[OutputConfig] = None,
    resize_config: Optional[ResizeConfig] = None,
    progress_callback: ProgressCallback = None,
) -> bytes:
    """便捷函数：使用默认配置打包结果。"""

    return ArchiveWriter(config, resize_config, progress_callback).write(result)
