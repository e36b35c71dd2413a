"""处理报告生成工具。"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from print_resizer.core.config import ResizeConfig
from print_resizer.core.models import SessionResult
from print_resizer.utils.formatting import format_dimensions, format_file_size


def _section(title: str) -> list[str]:
    return [title, "=" * len(title)]


def _source_line(key: str, output_name: Optional[str]) -> Optional[str]:
    if output_name and output_name != key:
        return f"  Source: {key}"
    return None


def build_text_report(
    result: SessionResult,
    config: Optional[ResizeConfig] = None,
    generated_at: Optional[datetime] = None,
) -> str:
    """生成可读的文本报告，各节顺序固定。"""

    config = config or ResizeConfig()
    generated_at = generated_at or datetime.now()
    succeeded = result.succeeded
    failed = result.failed

    lines = [
        "Image Resizing Processing Report",
        f"Generated: {generated_at:%Y-%m-%d %H:%M:%S}",
        "",
        *_section("SUMMARY:"),
        f"Total Images Processed: {len(result.items)}",
        f"Successfully Resized: {len(succeeded)}",
        f"Failed: {len(failed)}",
        f"Skipped (Not Found): {len(result.skipped)}",
        "",
        *_section("SUCCESSFULLY PROCESSED IMAGES:"),
    ]

    for item in succeeded:
        lines.extend(
            [
                f"✓ {item.output_name or item.key}",
                _source_line(item.key, item.output_name),
                f"  Original Size: {format_dimensions(item.original_size)}",
                f"  Resized To: {format_dimensions(item.target_size)} ({config.dpi} DPI)",
                f"  File Size: {format_file_size(item.output_byte_size or len(item.output_bytes))}",
                "",
            ]
        )

    if failed:
        lines.extend(_section("FAILED IMAGES:"))
        for item in failed:
            lines.extend(
                [
                    f"✗ {item.output_name or item.key}",
                    _source_line(item.key, item.output_name),
                    f"  Error: {item.error or 'Unknown error'}",
                    "",
                ]
            )

    if result.skipped:
        lines.extend(_section("SKIPPED FILES (NOT FOUND IN ZIP):"))
        for key, name in zip(result.skipped, result.skipped_names):
            lines.append(f"- {name} (source: {key})" if name and name != key else f"- {key}")
        lines.append("")

    if result.errors:
        lines.extend(_section("PROCESSING ERRORS:"))
        lines.extend(f"{idx}. {error}" for idx, error in enumerate(result.errors, start=1))
        lines.append("")

    lines.extend(
        [
            *_section("TECHNICAL DETAILS:"),
            f"- All images resized to {config.dpi} DPI",
            f"- Output format: JPEG ({config.jpeg_quality}% quality)",
            "- Resampling: Lanczos (high-quality) filter",
            f"- Per-image size limit: {format_file_size(config.max_image_bytes)}",
        ]
    )

    return "\n".join(line for line in lines if line is not None) + "\n"
