"""文本格式化工具函数。"""

from __future__ import annotations

_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


def format_file_size(num_bytes: int) -> str:
    """将字节数格式化为 1024 进制的可读字符串。"""

    if num_bytes <= 0:
        return "0 Bytes"

    value = float(num_bytes)
    index = 0
    while value >= 1024 and index < len(_SIZE_UNITS) - 1:
        value /= 1024
        index += 1
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[index]}"


def format_duration(milliseconds: float) -> str:
    """将毫秒格式化为 ``1h 5m`` / ``3m 12s`` / ``42s`` 风格。"""

    if milliseconds < 1000:
        return "< 1s"

    seconds = int(milliseconds // 1000)
    minutes = seconds // 60
    hours = minutes // 60

    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    if minutes > 0:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"


def format_dimensions(size: tuple[int, int]) -> str:
    width, height = size
    return f"{width} × {height} px"
