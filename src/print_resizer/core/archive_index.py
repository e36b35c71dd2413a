"""输入压缩包的索引：按小写文件名定位图片条目。"""

from __future__ import annotations

import io
import logging
import zipfile
import zlib
from pathlib import PurePosixPath
from types import MappingProxyType
from typing import Mapping, Optional

from print_resizer.core.exceptions import ArchiveReadError

LOGGER = logging.getLogger(__name__)

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".bmp", ".tiff", ".webp")


def is_image_name(name: str) -> bool:
    return name.lower().endswith(IMAGE_EXTENSIONS)


def _base_name(path: str) -> str:
    return path.replace("\\", "/").rstrip("/").split("/")[-1]


class ArchiveIndex:
    """压缩包图片条目的只读索引。

    同名（忽略大小写）条目按遍历顺序后者覆盖前者。
    """

    def __init__(self, archive: zipfile.ZipFile) -> None:
        self._archive = archive
        entries: dict[str, zipfile.ZipInfo] = {}
        stems: dict[str, zipfile.ZipInfo] = {}

        for info in archive.infolist():
            if info.is_dir():
                continue
            name = _base_name(info.filename)
            if not name or not is_image_name(name):
                continue
            lowered = name.lower()
            if lowered in entries:
                LOGGER.warning("压缩包内存在同名图片，后者覆盖前者：%s", info.filename)
            entries[lowered] = info
            stems[PurePosixPath(lowered).stem] = info

        self._entries: Mapping[str, zipfile.ZipInfo] = MappingProxyType(entries)
        self._stems: Mapping[str, zipfile.ZipInfo] = MappingProxyType(stems)
        LOGGER.info("压缩包索引完成，共 %d 张图片", len(entries))

    @classmethod
    def from_bytes(cls, data: bytes) -> "ArchiveIndex":
        """从内存中的压缩包数据构建索引。"""

        try:
            archive = zipfile.ZipFile(io.BytesIO(data))
        except (zipfile.BadZipFile, OSError, ValueError) as exc:
            raise ArchiveReadError(f"Failed to read ZIP file: {exc}") from exc
        return cls(archive)

    def __enter__(self) -> "ArchiveIndex":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __len__(self) -> int:
        return len(self._entries)

    def lookup(self, key: str, *, match_stem: bool = False) -> Optional[zipfile.ZipInfo]:
        """按小写文件名精确查找；match_stem 时允许省略扩展名。"""

        lowered = key.strip().lower()
        info = self._entries.get(lowered)
        if info is None and match_stem:
            info = self._stems.get(lowered)
        return info

    def read(self, info: zipfile.ZipInfo) -> bytes:
        try:
            return self._archive.read(info)
        except (zipfile.BadZipFile, zlib.error, OSError, RuntimeError, ValueError) as exc:
            raise ArchiveReadError(f"Failed to read {info.filename} from ZIP file: {exc}") from exc

    def close(self) -> None:
        self._archive.close()
