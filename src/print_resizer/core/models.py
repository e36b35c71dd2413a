"""核心数据模型定义。"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from print_resizer.core.config import ResizeMode, VariantTag

Size = tuple[int, int]


@dataclass(frozen=True)
class FileSpecRow:
    """文件模式 / 比例模式下的一行规格：按文件名查找源图。"""

    key: str
    length_inches: float
    width_inches: float

    @property
    def output_name(self) -> str:
        return self.key


@dataclass(frozen=True)
class BrandSpecRow:
    """品牌模式下的一行规格：按变体查找源图，按产品名输出。"""

    product_name: str
    length_inches: float
    width_inches: float
    variant: VariantTag

    @property
    def key(self) -> str:
        return self.variant.value

    @property
    def output_name(self) -> str:
        return f"{self.product_name}.jpg"


SpecRow = Union[FileSpecRow, BrandSpecRow]


@dataclass(slots=True)
class SpecDocument:
    """规格文件解析结果。"""

    mode: ResizeMode
    rows: list[SpecRow] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


@dataclass(slots=True)
class ProcessedItem:
    """单行规格对应的处理结果（成功或失败）。"""

    key: str
    original_size: Size
    target_size: Size
    output_bytes: bytes
    success: bool
    error: Optional[str] = None
    original_byte_size: Optional[int] = None
    output_byte_size: Optional[int] = None
    output_name: Optional[str] = None


@dataclass(slots=True)
class SkippedRow:
    """压缩包中找不到源图的规格行。"""

    key: str
    message: str
    output_name: Optional[str] = None


ItemOutcome = Union[ProcessedItem, SkippedRow]


@dataclass(slots=True)
class SessionResult:
    """一次批处理的汇总结果。循环结束后冻结，只读交给打包阶段。"""

    items: list[ProcessedItem] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    skipped_names: list[Optional[str]] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    frozen: bool = False

    @property
    def success(self) -> bool:
        return any(item.success for item in self.items)

    @property
    def succeeded(self) -> list[ProcessedItem]:
        return [item for item in self.items if item.success]

    @property
    def failed(self) -> list[ProcessedItem]:
        return [item for item in self.items if not item.success]

    def record(self, outcome: ItemOutcome) -> None:
        """登记单行的处理结果；每行只能登记一次。"""

        if self.frozen:
            raise RuntimeError("SessionResult 已冻结，无法继续写入")

        if isinstance(outcome, SkippedRow):
            self.skipped.append(outcome.key)
            self.skipped_names.append(outcome.output_name)
            self.errors.append(outcome.message)
            return

        self.items.append(outcome)
        if not outcome.success:
            self.errors.append(f"Failed to process {outcome.key}: {outcome.error or 'Unknown error'}")

    def freeze(self) -> "SessionResult":
        self.frozen = True
        return self
