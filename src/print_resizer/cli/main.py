"""命令行入口。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

import typer
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from print_resizer.core.archive_writer import generate_download_filename
from print_resizer.core.config import JobConfig, ResizeMode
from print_resizer.core.exceptions import PrintResizerError
from print_resizer.core.models import SpecDocument
from print_resizer.core.progress import ProgressUpdate
from print_resizer.core.validation import validate_archive_upload, validate_spec_upload
from print_resizer.processing.pipeline import package_results, run_batch
from print_resizer.processing.spec_parser import generate_sample_spec, parse_spec_bytes
from print_resizer.utils.formatting import format_duration
from print_resizer.utils.logging import setup_logging

app = typer.Typer(help="按规格文件批量将图片缩放到 300 DPI 打印尺寸。")
console = Console()

MODE_HELP = "尺寸模式：constrained（保持比例）/ file（精确尺寸）/ brand（品牌变体）"


def _parse_mode(value: str) -> ResizeMode:
    try:
        return ResizeMode.parse(value)
    except PrintResizerError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _load_spec(spec: Path, mode: ResizeMode) -> SpecDocument:
    validate_spec_upload(spec.name, spec.stat().st_size)
    return parse_spec_bytes(spec.read_bytes(), mode)


def _print_document(document: SpecDocument) -> None:
    for warning in document.warnings:
        console.print(f"[yellow]警告[/yellow] {warning}")
    for error in document.errors:
        console.print(f"[red]错误[/red] {error}")
    console.print(f"有效规格行：{len(document.rows)}")


def _build_progress_callback(progress: Progress) -> Callable[[ProgressUpdate], None]:
    task_ids: dict[str, TaskID] = {}

    def callback(update: ProgressUpdate) -> None:
        task_id = task_ids.get(update.stage)
        if task_id is None:
            task_id = progress.add_task(update.stage, total=100)
            task_ids[update.stage] = task_id

        description = update.message or update.stage
        if update.time_estimate and update.time_estimate.remaining_ms > 0:
            description += f" (剩余 {format_duration(update.time_estimate.remaining_ms)})"
        progress.update(task_id, completed=update.percentage, description=description)

    return callback


def _new_progress() -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        TimeElapsedColumn(),
        console=console,
    )


@app.command("run")
def run_cli(
    archive: Path = typer.Argument(..., exists=True, dir_okay=False, help="包含源图片的 ZIP 压缩包"),
    spec: Path = typer.Argument(..., exists=True, dir_okay=False, help="规格 CSV 文件"),
    mode: str = typer.Option("file", "--mode", "-m", help=MODE_HELP),
    output: Path = typer.Option(Path("."), "--output", "-o", help="输出目录"),
    max_workers: int = typer.Option(1, "--workers", "-w", help="并发进程数量"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="输出调试日志"),
) -> None:
    """执行批量缩放并生成输出压缩包。"""

    setup_logging(logging.DEBUG if verbose else logging.WARNING)
    resize_mode = _parse_mode(mode)
    config = JobConfig(mode=resize_mode, max_workers=max_workers)

    try:
        config.validate()
        validate_archive_upload(archive.name, archive.stat().st_size, config.limits)
        document = _load_spec(spec, resize_mode)
    except PrintResizerError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    _print_document(document)
    if not document.success:
        console.print("[red]请先修正规格文件中的错误。[/red]")
        raise typer.Exit(code=1)

    try:
        with _new_progress() as progress:
            result = run_batch(
                archive.name,
                archive.read_bytes(),
                document,
                config,
                progress_callback=_build_progress_callback(progress),
            )
    except PrintResizerError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    console.print(
        f"处理完成：成功 {len(result.succeeded)} 张，失败 {len(result.failed)} 张，跳过 {len(result.skipped)} 张。"
    )
    for error in result.errors:
        console.print(f"  - {error}")

    if not result.success:
        console.print("[red]没有成功处理的图片，未生成压缩包。[/red]")
        raise typer.Exit(code=1)

    try:
        with _new_progress() as progress:
            data = package_results(result, config, progress_callback=_build_progress_callback(progress))
    except PrintResizerError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    output_dir = output.expanduser().resolve()
    output_dir.mkdir(parents=True, exist_ok=True)
    destination = output_dir / generate_download_filename()
    destination.write_bytes(data)
    typer.echo(f"输出文件：{destination}")


@app.command("check")
def check_cli(
    spec: Path = typer.Argument(..., exists=True, dir_okay=False, help="规格 CSV 文件"),
    mode: str = typer.Option("file", "--mode", "-m", help=MODE_HELP),
) -> None:
    """仅解析并校验规格文件。"""

    setup_logging(logging.WARNING)
    try:
        document = _load_spec(spec, _parse_mode(mode))
    except PrintResizerError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    _print_document(document)
    if not document.success:
        raise typer.Exit(code=1)


@app.command("sample-spec")
def sample_spec_cli(
    destination: Path = typer.Argument(Path("sample_resize_specs.csv"), help="示例文件保存路径"),
    mode: str = typer.Option("file", "--mode", "-m", help=MODE_HELP),
) -> None:
    """生成示例规格文件。"""

    destination.write_text(generate_sample_spec(_parse_mode(mode)), encoding="utf-8")
    typer.echo(f"示例文件：{destination}")


if __name__ == "__main__":
    app()
