"""规格文件解析与校验。

规格文件为逗号分隔的表格文本：

* file / constrained 模式：``filename, length, width``
* brand 模式：``product, length, width, variant``

首行如果看起来像表头会被自动跳过。行级问题分为错误（丢弃该行）与警告（保留该行），
文档只要没有错误即可使用。
"""

from __future__ import annotations

import csv
import io
import logging
import math
from typing import Iterable, Optional, Sequence

from print_resizer.core.archive_index import IMAGE_EXTENSIONS, is_image_name
from print_resizer.core.config import ResizeMode, VariantTag
from print_resizer.core.models import BrandSpecRow, FileSpecRow, SpecDocument, SpecRow

LOGGER = logging.getLogger(__name__)

HEADER_KEY_HINTS = ("filename", "name", "product")
HEADER_SIZE_HINTS = ("length", "width")
LARGE_DIMENSION_INCHES = 100
VARIANT_VALUES = tuple(tag.value for tag in VariantTag)


def required_columns(mode: ResizeMode) -> int:
    return 4 if mode is ResizeMode.BRAND else 3


def looks_like_header(row: Sequence[str]) -> bool:
    """判断首行是否为表头。"""

    if len(row) < 3:
        return False
    first = row[0].lower()
    second = row[1].lower()
    return any(hint in first for hint in HEADER_KEY_HINTS) or any(hint in second for hint in HEADER_SIZE_HINTS)


def parse_spec_rows(raw_rows: Iterable[Sequence[str]], mode: ResizeMode | str) -> SpecDocument:
    """将原始表格行校验为带模式类型的规格文档。"""

    mode = ResizeMode.parse(mode)
    rows = [[cell.strip() for cell in row] for row in raw_rows]
    rows = [row for row in rows if any(row)]
    document = SpecDocument(mode=mode)

    if not rows:
        document.errors.append("CSV file is empty")
        return document

    start = 0
    if looks_like_header(rows[0]):
        start = 1
        document.warnings.append("Detected header row - skipping first row")

    for index in range(start, len(rows)):
        parsed = _parse_row(rows[index], index + 1, mode, document)
        if parsed is not None:
            document.rows.append(parsed)

    duplicates = _find_duplicates(row.key for row in document.rows)
    if duplicates:
        label = "image variants" if mode is ResizeMode.BRAND else "filenames"
        document.warnings.append(f"Duplicate {label} found: {', '.join(duplicates)}")

    if mode is ResizeMode.BRAND:
        clashes = _find_duplicates(row.product_name for row in document.rows if isinstance(row, BrandSpecRow))
        if clashes:
            document.warnings.append(f"Duplicate product names found: {', '.join(clashes)}")

    LOGGER.info(
        "规格解析完成：有效 %d 行，错误 %d 条，警告 %d 条",
        len(document.rows),
        len(document.errors),
        len(document.warnings),
    )
    return document


def parse_spec_text(text: str, mode: ResizeMode | str) -> SpecDocument:
    """解析逗号分隔的规格文本。"""

    try:
        raw_rows = list(csv.reader(io.StringIO(text.lstrip("\ufeff"))))
    except csv.Error as exc:
        document = SpecDocument(mode=ResizeMode.parse(mode))
        document.errors.append(f"Failed to parse CSV: {exc}")
        return document
    return parse_spec_rows(raw_rows, mode)


def parse_spec_bytes(data: bytes, mode: ResizeMode | str) -> SpecDocument:
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        document = SpecDocument(mode=ResizeMode.parse(mode))
        document.errors.append(f"Failed to parse CSV: {exc}")
        return document
    return parse_spec_text(text, mode)


def generate_sample_spec(mode: ResizeMode | str = ResizeMode.FILE) -> str:
    """生成示例规格文件内容（含表头）。"""

    mode = ResizeMode.parse(mode)
    if mode is ResizeMode.BRAND:
        sample = [
            ["product", "length", "width", "variant"],
            ["Supreme Laptop Bag", "4", "3", VariantTag.ORIGINAL.value],
            ["Classic Tote", "5", "7", VariantTag.FULL_BLACK.value],
            ["Weekend Duffel", "4", "6", VariantTag.FULL_WHITE.value],
        ]
    else:
        sample = [
            ["filename", "length", "width"],
            ["photo1.jpg", "8.5", "11"],
            ["image2.png", "5", "7"],
            ["picture3.jpeg", "4", "6"],
        ]

    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="\n").writerows(sample)
    return buffer.getvalue()


def _parse_row(row: Sequence[str], row_number: int, mode: ResizeMode, document: SpecDocument) -> Optional[SpecRow]:
    expected = required_columns(mode)
    if len(row) < expected:
        columns = "product, length, width, variant" if mode is ResizeMode.BRAND else "filename, length, width"
        document.errors.append(f"Row {row_number}: Missing columns (expected {expected}: {columns})")
        return None

    if mode is ResizeMode.BRAND:
        product_name, length_text, width_text, variant_text = row[:4]
        if not product_name:
            document.errors.append(f"Row {row_number}: Product name cannot be empty")
            return None
        if not variant_text:
            document.errors.append(f"Row {row_number}: Image variant cannot be empty")
            return None
        if variant_text not in VARIANT_VALUES:
            allowed = ", ".join(f'"{value}"' for value in VARIANT_VALUES)
            document.errors.append(
                f'Row {row_number}: Invalid image variant "{variant_text}" (must be one of {allowed})'
            )
            return None
    else:
        key, length_text, width_text = row[:3]
        if not key:
            document.errors.append(f"Row {row_number}: Filename cannot be empty")
            return None
        if not is_image_name(key):
            document.warnings.append(
                f'Row {row_number}: "{key}" may not be a valid image file '
                f"(expected one of {' '.join(IMAGE_EXTENSIONS)})"
            )

    length = _parse_dimension(length_text, "Length", row_number, document)
    if length is None:
        return None
    width = _parse_dimension(width_text, "Width", row_number, document)
    if width is None:
        return None

    if mode is ResizeMode.BRAND:
        return BrandSpecRow(
            product_name=product_name,
            length_inches=length,
            width_inches=width,
            variant=VariantTag(variant_text),
        )
    return FileSpecRow(key=key, length_inches=length, width_inches=width)


def _parse_dimension(text: str, label: str, row_number: int, document: SpecDocument) -> Optional[float]:
    try:
        value = float(text)
    except ValueError:
        value = math.nan

    if not math.isfinite(value) or value <= 0:
        document.errors.append(f'Row {row_number}: {label} must be a positive number (got "{text}")')
        return None

    if value > LARGE_DIMENSION_INCHES:
        document.warnings.append(f"Row {row_number}: {label} {value:g} inches is very large")
    return value


def _find_duplicates(values: Iterable[str]) -> list[str]:
    """返回重复出现的值（保持首次重复的顺序）。"""

    seen: set[str] = set()
    duplicates: list[str] = []
    for identity in values:
        if identity in seen and identity not in duplicates:
            duplicates.append(identity)
        seen.add(identity)
    return duplicates
