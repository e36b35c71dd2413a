"""环节三：目标尺寸计算、重采样与单行处理。"""

from __future__ import annotations

import io

import pytest
from PIL import Image

from print_resizer.core.config import ResizeConfig, ResizeMode, VariantTag
from print_resizer.core.models import BrandSpecRow, FileSpecRow
from print_resizer.processing.resizing import (
    calculate_image_dimensions,
    compute_target_size,
    encode_image,
    round_half_up,
)
from print_resizer.processing.worker import ProcessingTask, run_task

MB = 1024 * 1024


def _image_bytes(size: tuple[int, int], color: str = "green") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def _task(row, data: bytes, mode: ResizeMode = ResizeMode.FILE, byte_size: int | None = None) -> ProcessingTask:
    return ProcessingTask(
        index=0,
        row=row,
        mode=mode,
        resize=ResizeConfig(),
        source_byte_size=len(data) if byte_size is None else byte_size,
        source_bytes=data,
    )


def test_width_column_maps_to_pixel_width() -> None:
    assert calculate_image_dimensions(8.5, 11) == (3300, 2550)
    assert calculate_image_dimensions(1, 2, dpi=100) == (200, 100)


def test_rounding_is_half_up() -> None:
    assert round_half_up(2.5) == 3
    assert round_half_up(0.5) == 1
    assert round_half_up(1.49) == 1
    assert calculate_image_dimensions(0.5, 2.5, dpi=1) == (3, 1)


@pytest.mark.parametrize("mode", [ResizeMode.FILE, ResizeMode.BRAND])
def test_exact_modes_ignore_source_aspect(mode: ResizeMode) -> None:
    assert compute_target_size((3300, 2550), (1000, 1000), mode) == (3300, 2550)
    assert compute_target_size((10, 900), (400, 100), mode) == (10, 900)


def test_constrained_landscape_anchors_width_to_smaller_side() -> None:
    assert compute_target_size((3300, 2550), (2000, 1000), ResizeMode.CONSTRAINED) == (2550, 1275)


def test_constrained_portrait_anchors_height_to_smaller_side() -> None:
    assert compute_target_size((3300, 2550), (1000, 2000), ResizeMode.CONSTRAINED) == (1275, 2550)


def test_constrained_never_collapses_to_zero() -> None:
    assert compute_target_size((1, 600), (5000, 1), ResizeMode.CONSTRAINED) == (1, 1)
    assert compute_target_size((0, 0), (10, 10), ResizeMode.CONSTRAINED) == (1, 1)


@pytest.mark.parametrize(
    "requested, source",
    [
        ((3300, 2550), (1920, 1080)),
        ((600, 900), (333, 777)),
        ((1500, 1500), (4000, 3001)),
        ((301, 299), (17, 1000)),
        ((2400, 3000), (1000, 999)),
    ],
)
def test_constrained_preserves_aspect_within_rounding(requested, source) -> None:
    target_w, target_h = compute_target_size(requested, source, ResizeMode.CONSTRAINED)

    assert min(target_w, target_h) >= 1
    assert max(target_w, target_h) == max(1, min(requested))
    drift = abs(target_w / target_h - source[0] / source[1])
    assert drift <= 1 / min(target_w, target_h)


def test_encode_image_produces_jpeg_with_dpi() -> None:
    data = encode_image(Image.new("RGB", (40, 30), "white"), ResizeConfig())

    with Image.open(io.BytesIO(data)) as img:
        assert img.format == "JPEG"
        assert img.size == (40, 30)
        assert round(img.info["dpi"][0]) == 300


def test_run_task_file_mode_produces_exact_box() -> None:
    row = FileSpecRow(key="photo1.jpg", length_inches=0.5, width_inches=1)
    item = run_task(_task(row, _image_bytes((100, 100))))

    assert item.success
    assert item.original_size == (100, 100)
    assert item.target_size == (300, 150)
    assert item.output_byte_size == len(item.output_bytes)
    with Image.open(io.BytesIO(item.output_bytes)) as img:
        assert img.size == (300, 150)
        assert img.format == "JPEG"


def test_run_task_constrained_mode_keeps_aspect() -> None:
    row = FileSpecRow(key="wide.png", length_inches=1, width_inches=2)
    item = run_task(_task(row, _image_bytes((300, 200)), ResizeMode.CONSTRAINED))

    assert item.success
    assert item.target_size == (300, 200)


def test_run_task_brand_mode_names_output_by_product() -> None:
    row = BrandSpecRow(product_name="Classic Tote", length_inches=0.1, width_inches=0.2, variant=VariantTag.FULL_WHITE)
    item = run_task(_task(row, _image_bytes((50, 50)), ResizeMode.BRAND))

    assert item.success
    assert item.key == "Full White"
    assert item.output_name == "Classic Tote.jpg"
    assert item.target_size == (60, 30)


def test_oversized_source_fails_without_decoding() -> None:
    row = FileSpecRow(key="huge.jpg", length_inches=2, width_inches=3)
    item = run_task(_task(row, b"never decoded", byte_size=6 * MB))

    assert not item.success
    assert "size limit" in (item.error or "")
    assert item.original_byte_size == 6 * MB
    assert item.output_bytes == b""
    assert item.target_size == (900, 600)


def test_decode_failure_is_a_failed_item() -> None:
    row = FileSpecRow(key="broken.png", length_inches=1, width_inches=1)
    item = run_task(_task(row, b"garbage"))

    assert not item.success
    assert item.error == "Failed to load image"
    assert item.output_bytes == b""


def test_encode_failure_is_a_failed_item(monkeypatch: pytest.MonkeyPatch) -> None:
    def broken_save(self, *args, **kwargs) -> None:
        raise OSError("disk full")

    source = _image_bytes((40, 40))
    monkeypatch.setattr(Image.Image, "save", broken_save)

    row = FileSpecRow(key="photo.png", length_inches=0.1, width_inches=0.1)
    item = run_task(_task(row, source))

    assert not item.success
    assert item.error == "Failed to create resized image"
    assert item.output_bytes == b""
    assert item.target_size == (30, 30)
