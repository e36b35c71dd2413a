"""单行规格的处理单元。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from PIL import Image

from print_resizer.core.config import ResizeConfig, ResizeMode
from print_resizer.core.exceptions import ImageDecodeError, ImageEncodeError, ImageSizeLimitError
from print_resizer.core.models import ProcessedItem, SpecRow
from print_resizer.core.validation import check_image_size
from print_resizer.processing.image_loader import load_image
from print_resizer.processing.resizing import compute_target_size, encode_image, requested_size, resample


@dataclass
class ProcessingTask:
    """描述单个图片处理任务。"""

    index: int
    row: SpecRow
    mode: ResizeMode
    resize: ResizeConfig
    source_byte_size: int
    source_bytes: Optional[bytes] = None
    read_error: Optional[str] = None


def run_task(task: ProcessingTask) -> ProcessedItem:
    """执行完整的解码、缩放、编码流程，行级错误全部转为失败结果。"""

    row = task.row
    intended = requested_size(row, task.resize.dpi)

    try:
        check_image_size(task.source_byte_size, row.key, task.resize)
    except ImageSizeLimitError as exc:
        return _failure(task, intended, str(exc))

    if task.read_error or task.source_bytes is None:
        return _failure(task, intended, task.read_error or "Source image could not be read")

    image: Optional[Image.Image] = None
    resized: Optional[Image.Image] = None
    try:
        image = load_image(task.source_bytes, row.key)
        target = compute_target_size(intended, image.size, task.mode)
        resized = resample(image, target)
        output = encode_image(resized, task.resize)
    except (ImageDecodeError, ImageEncodeError) as exc:
        return _failure(task, intended, str(exc))
    except (OSError, ValueError, MemoryError) as exc:
        return _failure(task, intended, str(exc) or exc.__class__.__name__)
    else:
        return ProcessedItem(
            key=row.key,
            original_size=image.size,
            target_size=target,
            output_bytes=output,
            success=True,
            original_byte_size=task.source_byte_size,
            output_byte_size=len(output),
            output_name=row.output_name,
        )
    finally:
        _close_if_needed(image, resized)


def _failure(task: ProcessingTask, target: tuple[int, int], message: str) -> ProcessedItem:
    return ProcessedItem(
        key=task.row.key,
        original_size=(0, 0),
        target_size=target,
        output_bytes=b"",
        success=False,
        error=message,
        original_byte_size=task.source_byte_size,
        output_name=task.row.output_name,
    )


def _close_if_needed(*images: Optional[Image.Image]) -> None:
    for img in images:
        if img is not None:
            img.close()
