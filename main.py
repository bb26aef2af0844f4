import asyncio
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from bookreader.core.config import settings
from bookreader.core.exceptions import BookReaderError
from bookreader.core.logger import reader_logger as logger
from bookreader.ingestor import Ingestor
from bookreader.library import JsonDirectoryStore, Library
from bookreader.progress import ProgressTracker
from bookreader.schemas import SourceFile, Theme

# 初始化 Typer 应用和 Rich 控制台
app = typer.Typer()
console = Console()


def _open_library(library_dir: Optional[Path]) -> Library:
    library = Library(JsonDirectoryStore(str(library_dir or settings.LIBRARY_DIR)))
    library.load()
    return library


def _require_book(library: Library, book_id: str):
    book = library.get(book_id)
    if book is None:
        console.print(f"[bold red]未找到书籍:[/bold red] {book_id}")
        raise typer.Exit(1)
    return book


LibraryOption = typer.Option(None, "--library", "-L", help="书库目录（默认取配置 LIBRARY_DIR）。")


@app.command("add", help="导入一个或多个 FB2 / TXT / EPUB 文件到书库")
def add(
    files: List[Path] = typer.Argument(
        ...,
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        resolve_path=True,
        help="待导入的电子书文件。",
    ),
    library_dir: Optional[Path] = LibraryOption,
):
    library = _open_library(library_dir)
    sources = [SourceFile.from_path(path) for path in files]

    console.print(f"[bold green]开始导入 {len(sources)} 个文件[/bold green]")
    console.print("-" * 50)

    results = asyncio.run(Ingestor().ingest_batch(sources, library=library, skip_duplicates=True))

    for result in results:
        if result.ok:
            book = result.book
            summary = f"《{book.title}》 {book.author}，共 {len(book.chapters)} 章"
            console.print(f"[green]✔[/green] {result.filename}: {summary}")
        else:
            # 每个失败文件单独提示
            console.print(f"[bold red]✘ {result.filename}[/bold red]: {result.error} - {result.message}")

    failed = sum(1 for r in results if not r.ok)
    console.print("-" * 50)
    console.print(f"[bold]完成：[/bold] 成功 {len(results) - failed} 个，失败 {failed} 个")
    if failed:
        raise typer.Exit(1)


@app.command("list", help="列出书库中的书籍")
def list_books(library_dir: Optional[Path] = LibraryOption):
    library = _open_library(library_dir)
    if not library.books:
        console.print("书库为空，请先导入书籍。")
        return

    table = Table("ID", "标题", "作者", "格式", "章节", "进度")
    for book in library.books:
        table.add_row(
            book.id,
            book.title,
            book.author,
            book.file_type.value,
            str(len(book.chapters)),
            f"{round(book.reading_progress)}%",
        )
    console.print(table)


@app.command("chapters", help="显示书籍的章节列表")
def chapters(book_id: str = typer.Argument(..., help="书籍 ID。"), library_dir: Optional[Path] = LibraryOption):
    library = _open_library(library_dir)
    book = _require_book(library, book_id)
    for index, chapter in enumerate(book.chapters):
        marker = "[bold cyan]>[/bold cyan]" if index == book.current_chapter_index else " "
        console.print(f"{marker} {index:>3}  {chapter.title}")


@app.command("goto", help="跳转到指定章节（从 0 开始）")
def goto(
    book_id: str = typer.Argument(..., help="书籍 ID。"),
    index: int = typer.Argument(..., help="章节序号。"),
    library_dir: Optional[Path] = LibraryOption,
):
    library = _open_library(library_dir)
    book = _require_book(library, book_id)

    tracker = ProgressTracker(book, library)
    tracker.open()
    moved = tracker.go_to_chapter(index)
    tracker.close()

    if not moved:
        console.print(f"[bold red]章节序号超出范围:[/bold red] 0 - {len(book.chapters) - 1}")
        raise typer.Exit(1)
    console.print(f"当前章节: {book.current_chapter.title}")


@app.command("remove", help="从书库中删除书籍")
def remove(book_id: str = typer.Argument(..., help="书籍 ID。"), library_dir: Optional[Path] = LibraryOption):
    library = _open_library(library_dir)
    try:
        removed = library.remove(book_id)
    except BookReaderError as e:
        console.print(f"[bold red]删除失败:[/bold red] {e}")
        raise typer.Exit(1)
    if not removed:
        console.print(f"[bold red]未找到书籍:[/bold red] {book_id}")
        raise typer.Exit(1)
    console.print("[bold green]已删除。[/bold green]")


@app.command("settings", help="查看或修改阅读设置")
def reader_settings(
    font_size: Optional[int] = typer.Option(None, "--font-size", help="字号变化量（px），范围 12–32。"),
    line_height: Optional[float] = typer.Option(None, "--line-height", help="行高变化量，范围 1.0–3.0。"),
    theme: Optional[Theme] = typer.Option(None, "--theme", help="主题。"),
    library_dir: Optional[Path] = LibraryOption,
):
    library = _open_library(library_dir)
    current = library.load_settings()

    if font_size is not None:
        current = current.change_font_size(font_size)
    if line_height is not None:
        current = current.change_line_height(line_height)
    if theme is not None:
        current = current.model_copy(update={"theme": theme})
    if font_size is not None or line_height is not None or theme is not None:
        library.save_settings(current)
        logger.info("阅读设置已更新")

    console.print(f"[bold]字号:[/bold] {current.font_size}px")
    console.print(f"[bold]行高:[/bold] {current.line_height}")
    console.print(f"[bold]主题:[/bold] {current.theme.value}")


if __name__ == "__main__":
    app()
