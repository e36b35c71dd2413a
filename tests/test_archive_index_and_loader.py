"""环节二：压缩包索引、上传校验与图片解码。"""

from __future__ import annotations

import io
import zipfile

import pytest
from PIL import Image

from print_resizer.core.archive_index import ArchiveIndex
from print_resizer.core.config import LimitsConfig
from print_resizer.core.exceptions import (
    ArchiveReadError,
    ImageDecodeError,
    ImageSizeLimitError,
    InputValidationError,
)
from print_resizer.core.validation import (
    check_image_size,
    validate_archive_upload,
    validate_image_size,
    validate_spec_upload,
)
from print_resizer.processing.image_loader import load_image


def _image_bytes(size: tuple[int, int] = (20, 10), color: str = "blue", fmt: str = "PNG") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


def _make_zip(entries: dict[str, bytes], directories: tuple[str, ...] = ()) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for directory in directories:
            archive.writestr(zipfile.ZipInfo(directory), b"")
        for name, data in entries.items():
            archive.writestr(name, data)
    return buffer.getvalue()


def test_index_keeps_only_images_by_lowercase_base_name() -> None:
    data = _make_zip(
        {
            "photos/Photo1.JPG": _image_bytes(fmt="JPEG"),
            "photos/nested/image2.webp": b"webp-bytes",
            "notes.txt": b"hello",
            "README": b"no extension",
        },
        directories=("photos/", "photos/nested/"),
    )

    with ArchiveIndex.from_bytes(data) as index:
        assert index.lookup("image2.webp") is not None
        assert len(index) == 2

        info = index.lookup("PHOTO1.jpg")
        assert info is not None
        assert info.filename == "photos/Photo1.JPG"
        assert index.lookup("notes.txt") is None
        assert index.lookup("missing.png") is None


def test_later_entry_wins_on_name_collision() -> None:
    data = _make_zip({"a/dup.png": b"first", "b/DUP.png": b"second"})

    with ArchiveIndex.from_bytes(data) as index:
        info = index.lookup("dup.png")
        assert info is not None
        assert index.read(info) == b"second"


def test_stem_lookup_is_opt_in() -> None:
    data = _make_zip({"variants/Full Black.png": _image_bytes()})

    with ArchiveIndex.from_bytes(data) as index:
        assert index.lookup("Full Black") is None
        info = index.lookup("full black", match_stem=True)
        assert info is not None
        assert info.filename.endswith("Full Black.png")
        assert index.lookup("Full Black.png") is not None


def test_corrupt_archive_raises_read_error() -> None:
    with pytest.raises(ArchiveReadError):
        ArchiveIndex.from_bytes(b"definitely not a zip file")


def test_upload_validation() -> None:
    validate_archive_upload("images.ZIP", 1024)
    validate_spec_upload("specs.csv", 10)

    with pytest.raises(InputValidationError, match="ZIP archive"):
        validate_archive_upload("images.rar", 1024)
    with pytest.raises(InputValidationError, match="cannot be empty"):
        validate_archive_upload("images.zip", 0)
    with pytest.raises(InputValidationError, match="smaller than"):
        validate_archive_upload("images.zip", 2048, LimitsConfig(max_archive_bytes=1024))
    with pytest.raises(InputValidationError, match="CSV file"):
        validate_spec_upload("specs.xlsx", 10)
    with pytest.raises(InputValidationError, match="smaller than 10 MB"):
        validate_spec_upload("specs.csv", 11 * 1024 * 1024)


def test_image_size_limit_message() -> None:
    assert validate_image_size(5 * 1024 * 1024, "ok.jpg") is None

    message = validate_image_size(6 * 1024 * 1024, "big.jpg")
    assert message == 'Image "big.jpg" is 6 MB which exceeds the per-image size limit (5 MB)'


def test_load_image_converts_to_rgb() -> None:
    buffer = io.BytesIO()
    Image.new("RGBA", (30, 20), (255, 0, 0, 0)).save(buffer, format="PNG")

    image = load_image(buffer.getvalue())
    assert image.mode == "RGB"
    assert image.size == (30, 20)
    # 透明区域以白色填充。
    assert image.getpixel((0, 0)) == (255, 255, 255)


def test_load_image_applies_exif_orientation() -> None:
    if not hasattr(Image, "Exif"):
        pytest.skip("当前 Pillow 版本不支持写入 EXIF 数据")

    exif = Image.Exif()
    exif[274] = 6  # 顺时针 90 度
    buffer = io.BytesIO()
    Image.new("RGB", (80, 40), "red").save(buffer, format="JPEG", exif=exif.tobytes())

    image = load_image(buffer.getvalue())
    assert image.size == (40, 80)


def test_load_image_rejects_garbage() -> None:
    with pytest.raises(ImageDecodeError, match="Failed to load image"):
        load_image(b"not an image", "broken.png")


def test_check_image_size_raises_on_oversized_source() -> None:
    check_image_size(1024, "ok.jpg")

    with pytest.raises(ImageSizeLimitError, match="size limit"):
        check_image_size(6 * 1024 * 1024, "big.jpg")
