"""处理流水线：索引压缩包、逐行缩放、汇总结果与打包输出。"""

from __future__ import annotations

import logging
from concurrent.futures import ProcessPoolExecutor, as_completed
from typing import Optional

from print_resizer.core.archive_index import ArchiveIndex
from print_resizer.core.archive_writer import write_output_archive
from print_resizer.core.config import JobConfig, ResizeMode
from print_resizer.core.exceptions import ArchiveReadError
from print_resizer.core.keepalive import KeepAlive, keep_alive_scope
from print_resizer.core.models import ItemOutcome, ProcessedItem, SessionResult, SkippedRow, SpecDocument, SpecRow
from print_resizer.core.progress import ProgressCallback, ProgressUpdate, TimeEstimate, TimeEstimator
from print_resizer.core.validation import validate_archive_upload
from print_resizer.processing.resizing import requested_size
from print_resizer.processing.worker import ProcessingTask, run_task

LOGGER = logging.getLogger(__name__)

STAGE = "processing"


class _ProgressEmitter:
    """保证同一阶段内百分比单调不减。"""

    def __init__(self, callback: ProgressCallback, stage: str) -> None:
        self._callback = callback
        self._stage = stage
        self._percentage = 0

    def __call__(
        self,
        current: int,
        total: int,
        percentage: int,
        message: Optional[str] = None,
        estimate: Optional[TimeEstimate] = None,
    ) -> None:
        if not self._callback:
            return
        self._percentage = max(self._percentage, min(percentage, 100))
        self._callback(
            ProgressUpdate(
                stage=self._stage,
                current=current,
                total=total,
                percentage=self._percentage,
                message=message,
                time_estimate=estimate,
            )
        )


def process_batch(
    archive_bytes: bytes,
    document: SpecDocument,
    config: Optional[JobConfig] = None,
    progress_callback: ProgressCallback = None,
    estimator: Optional[TimeEstimator] = None,
) -> SessionResult:
    """按规格文档逐行处理压缩包中的图片，返回冻结后的会话结果。

    压缩包无法读取时抛出 ArchiveReadError，不返回部分结果。
    """

    config = (config or JobConfig(mode=document.mode)).validate()
    mode = document.mode
    if mode is not config.mode:
        LOGGER.warning("规格文档模式 %s 与任务配置 %s 不一致，以规格文档为准", mode.value, config.mode.value)

    rows = document.rows
    total = len(rows)
    emit = _ProgressEmitter(progress_callback, STAGE)
    estimator = estimator or TimeEstimator()
    estimator.start()
    result = SessionResult()

    LOGGER.info("开始处理：%d 行规格，模式 %s", total, mode.value)
    emit(0, total, 0, "Extracting ZIP file...")

    with ArchiveIndex.from_bytes(archive_bytes) as index:
        emit(0, total, 5, f"Found {len(index)} images in ZIP")

        slots: list[Optional[ItemOutcome]] = [None] * total
        completed = 0

        def _complete(position: int, outcome: ItemOutcome) -> None:
            nonlocal completed
            slots[position] = outcome
            completed += 1
            estimator.record_item_completion()
            if isinstance(outcome, ProcessedItem) and not outcome.success:
                LOGGER.warning("处理失败 %s：%s", outcome.key, outcome.error)
            emit(
                completed,
                total,
                5 + round(completed / total * 90),
                f"Processed {rows[position].key}",
                estimator.estimate(completed, total),
            )

        if config.max_workers <= 1:
            for position, row in enumerate(rows):
                prepared = _prepare(index, position, row, mode, config)
                if isinstance(prepared, SkippedRow):
                    _complete(position, prepared)
                else:
                    _complete(position, run_task(prepared))
        else:
            tasks: list[ProcessingTask] = []
            for position, row in enumerate(rows):
                prepared = _prepare(index, position, row, mode, config)
                if isinstance(prepared, SkippedRow):
                    _complete(position, prepared)
                else:
                    tasks.append(prepared)

            with ProcessPoolExecutor(max_workers=config.max_workers) as executor:
                future_map = {executor.submit(run_task, task): task for task in tasks}
                for future in as_completed(future_map):
                    task = future_map[future]
                    try:
                        outcome = future.result()
                    except Exception as exc:  # noqa: BLE001
                        LOGGER.exception("任务执行异常：%s", exc)
                        outcome = _worker_failure(task, exc)
                    _complete(task.index, outcome)

    for position, outcome in enumerate(slots):
        if outcome is None:
            raise RuntimeError(f"第 {position + 1} 行没有处理结果")
        result.record(outcome)
    result.freeze()

    emit(total, total, 100, "Processing complete!", estimator.estimate(total, total))
    LOGGER.info(
        "处理完成：成功 %d，失败 %d，跳过 %d",
        len(result.succeeded),
        len(result.failed),
        len(result.skipped),
    )
    return result


def package_results(
    result: SessionResult,
    config: Optional[JobConfig] = None,
    progress_callback: ProgressCallback = None,
    keep_alive: Optional[KeepAlive] = None,
) -> bytes:
    """将会话结果打包为输出压缩包；失败时会话结果保持不变，可重试。"""

    config = config or JobConfig()
    with keep_alive_scope(keep_alive):
        return write_output_archive(result, config.output, config.resize, progress_callback)


def run_batch(
    archive_name: str,
    archive_bytes: bytes,
    document: SpecDocument,
    config: Optional[JobConfig] = None,
    progress_callback: ProgressCallback = None,
    keep_alive: Optional[KeepAlive] = None,
) -> SessionResult:
    """校验上传的压缩包后在保活区间内执行整批处理。"""

    config = config or JobConfig(mode=document.mode)
    validate_archive_upload(archive_name, len(archive_bytes), config.limits)
    with keep_alive_scope(keep_alive):
        return process_batch(archive_bytes, document, config, progress_callback)


def _worker_failure(task: ProcessingTask, exc: BaseException) -> ProcessedItem:
    return ProcessedItem(
        key=task.row.key,
        original_size=(0, 0),
        target_size=requested_size(task.row, task.resize.dpi),
        output_bytes=b"",
        success=False,
        error=str(exc) or exc.__class__.__name__,
        original_byte_size=task.source_byte_size,
        output_name=task.row.output_name,
    )


def _prepare(
    index: ArchiveIndex, position: int, row: SpecRow, mode: ResizeMode, config: JobConfig
) -> ProcessingTask | SkippedRow:
    """查找源图并读取数据；超过大小上限的条目不读取。"""

    info = index.lookup(row.key, match_stem=mode is ResizeMode.BRAND)
    if info is None:
        LOGGER.info("压缩包中找不到图片：%s", row.key)
        return SkippedRow(key=row.key, message=f"Image not found in ZIP: {row.key}", output_name=row.output_name)

    task = ProcessingTask(
        index=position,
        row=row,
        mode=mode,
        resize=config.resize,
        source_byte_size=info.file_size,
    )
    if info.file_size <= config.resize.max_image_bytes:
        try:
            task.source_bytes = index.read(info)
        except ArchiveReadError as exc:
            LOGGER.warning("读取压缩包条目失败：%s", exc)
            task.read_error = str(exc)
    return task
