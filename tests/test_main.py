# tests/test_main.py
"""Tests for the command line entry point."""
import io

import pytest

from notetaker.main import main


@pytest.fixture
def run(test_config, monkeypatch):
    """Run the CLI against the temporary notes root."""
    monkeypatch.setattr(test_config, "log_level", test_config.log_level)
    monkeypatch.setattr(test_config, "log_dir", None)

    def _run(*argv):
        return main(["--notes-dir", str(test_config.notes_dir), *argv])

    return _run


class TestCommands:
    """Tests for the CLI subcommands."""

    def test_save_then_read(self, run, capsys):
        assert run("save", "Alpha", "See [[Beta]]") == 0
        assert run("save", "Beta", "hi") == 0
        capsys.readouterr()

        assert run("read", "Beta") == 0
        out = capsys.readouterr().out
        assert out.startswith("# Beta\n---\ntitle: Beta\n")
        assert "Backlinks: Alpha" in out

    def test_save_reads_stdin(self, run, capsys, monkeypatch, test_config):
        monkeypatch.setattr("sys.stdin", io.StringIO("from stdin"))
        assert run("save", "Piped") == 0
        text = (test_config.notes_dir / "Piped.md").read_text()
        assert text.endswith("from stdin")

    def test_read_missing(self, run, capsys):
        assert run("read", "Nope") == 1
        assert "not found" in capsys.readouterr().out

    def test_list(self, run, capsys):
        assert run("list") == 0
        assert "No notes found." in capsys.readouterr().out

        run("save", "A", "x")
        capsys.readouterr()
        run("list")
        assert "- A" in capsys.readouterr().out

    def test_search(self, run, capsys):
        run("save", "Physics", "all about gravity")
        capsys.readouterr()

        assert run("search", "gravity") == 0
        out = capsys.readouterr().out
        assert 'Found 1 note(s) matching "gravity"' in out
        assert "- Physics" in out

    def test_delete(self, run, capsys):
        run("save", "A", "x")
        assert run("delete", "A") == 0
        assert run("delete", "A") == 1
        assert "not found" in capsys.readouterr().out

    def test_links(self, run, capsys):
        run("save", "Alpha", "[[Beta]]")
        capsys.readouterr()
        assert run("links", "Beta") == 0
        assert "<- Alpha" in capsys.readouterr().out

    def test_invalid_title_reports_error(self, run, capsys):
        assert run("save", "../", "x") == 1
        assert "INVALID_TITLE" in capsys.readouterr().err
