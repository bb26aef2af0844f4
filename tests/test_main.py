import pytest
from typer.testing import CliRunner

from bookreader.library import JsonDirectoryStore, Library
from main import app

runner = CliRunner()


@pytest.fixture
def library_dir(tmp_path):
    return tmp_path / "library"


@pytest.fixture
def book_file(tmp_path):
    path = tmp_path / "story.txt"
    path.write_text("CHAPTER ONE\nHello\nCHAPTER TWO\nWorld\n", encoding="utf-8")
    return path


def _books(library_dir):
    library = Library(JsonDirectoryStore(str(library_dir)))
    return library.load()


class TestCli:
    """
    测试命令行入口。
    """

    def test_add_and_list(self, library_dir, book_file):
        result = runner.invoke(app, ["add", str(book_file), "-L", str(library_dir)])
        assert result.exit_code == 0, result.output
        assert "story.txt" in result.output

        books = _books(library_dir)
        assert [b.title for b in books] == ["story"]

        listed = runner.invoke(app, ["list", "-L", str(library_dir)])
        assert listed.exit_code == 0
        assert "story" in listed.output

    def test_add_reports_failures(self, library_dir, tmp_path):
        """无法识别的文件导致非零退出码。"""
        bad = tmp_path / "paper.pdf"
        bad.write_bytes(b"%PDF-1.7")
        result = runner.invoke(app, ["add", str(bad), "-L", str(library_dir)])
        assert result.exit_code == 1
        assert "UnsupportedFormat" in result.output

    def test_goto_and_remove(self, library_dir, book_file):
        runner.invoke(app, ["add", str(book_file), "-L", str(library_dir)])
        book_id = _books(library_dir)[0].id

        moved = runner.invoke(app, ["goto", book_id, "1", "-L", str(library_dir)])
        assert moved.exit_code == 0
        assert "CHAPTER TWO" in moved.output
        assert _books(library_dir)[0].current_chapter_index == 1

        assert runner.invoke(app, ["goto", book_id, "5", "-L", str(library_dir)]).exit_code == 1

        removed = runner.invoke(app, ["remove", book_id, "-L", str(library_dir)])
        assert removed.exit_code == 0
        assert _books(library_dir) == []

    def test_settings_are_clamped(self, library_dir):
        result = runner.invoke(app, ["settings", "--font-size", "100", "--theme", "dark", "-L", str(library_dir)])
        assert result.exit_code == 0
        assert "32px" in result.output
        assert "dark" in result.output
