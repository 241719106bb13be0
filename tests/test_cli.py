"""Tests for the command-line entry point."""

import json
import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from xlsx_extract import __version__
from xlsx_extract.cli import build_parser, main, options_from_args


@pytest.fixture(autouse=True)
def restore_root_logging() -> Iterator[None]:
    """The CLI reconfigures the root logger; put it back afterwards."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestArguments:
    def test_defaults(self) -> None:
        args = build_parser().parse_args(["book.xlsx"])
        assert options_from_args(args) == {
            "ignore_header": 0,
            "include_empty_rows": False,
            "format": "tsv",
            "tsv_float_comma": False,
        }

    def test_selector_and_backend(self) -> None:
        args = build_parser().parse_args(
            ["book.xlsx", "--sheet-name", "Data", "--parser", "expat", "--delimiter", ";"]
        )
        options = options_from_args(args)
        assert options["sheet_name"] == "Data"
        assert options["parser"] == "expat"
        assert options["tsv_delimiter"] == ";"
        assert "sheet_nr" not in options

    def test_selectors_are_mutually_exclusive(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["book.xlsx", "--sheet-all", "--sheet-nr", "2"])

    def test_log_level_is_case_insensitive(self) -> None:
        args = build_parser().parse_args(["book.xlsx", "--log-level", "warning"])
        assert args.log_level == "WARNING"

    def test_unknown_log_level_is_rejected(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["book.xlsx", "--log-level", "verbose"])
        assert exc_info.value.code == 2
        assert "--log-level" in capsys.readouterr().err

    def test_line_terminator_escapes(self) -> None:
        args = build_parser().parse_args(
            ["book.xlsx", "--endofline", "\\r\\n", "--delimiter", "\\t"]
        )
        options = options_from_args(args)
        assert options["tsv_endofline"] == "\r\n"
        assert options["tsv_delimiter"] == "\t"

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out


class TestMain:
    def test_stdout(self, multi_sheet_xlsx: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([str(multi_sheet_xlsx), "--ignore-header", "1"]) == 0
        assert capsys.readouterr().out == "Alice\t42\nBob\t3.5\n"

    def test_json_to_stdout(
        self, multi_sheet_xlsx: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert main([str(multi_sheet_xlsx), "--sheet-id", "rId3", "--format", "json"]) == 0
        assert json.loads(capsys.readouterr().out) == [[True]]

    def test_output_file(self, multi_sheet_xlsx: Path, tmp_path: Path) -> None:
        destination = tmp_path / "all.tsv"
        code = main([str(multi_sheet_xlsx), str(destination), "--sheet-all", "--float-comma"])
        assert code == 0
        lines = destination.read_text(encoding="utf-8").splitlines()
        assert lines[2] == "Bob\t3,5"
        assert len(lines) == 5

    def test_error_exit_code(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert main([str(tmp_path / "missing.xlsx")]) == 1
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "Error: [E" in captured.err

    def test_unknown_sheet(
        self, multi_sheet_xlsx: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert main([str(multi_sheet_xlsx), "--sheet-name", "Nope"]) == 1
        assert "Nope" in capsys.readouterr().err

    def test_crlf_output(self, multi_sheet_xlsx: Path, tmp_path: Path) -> None:
        destination = tmp_path / "crlf.tsv"
        assert main([str(multi_sheet_xlsx), str(destination), "--endofline", "\\r\\n"]) == 0
        assert destination.read_bytes() == b"Name\tScore\r\nAlice\t42\r\nBob\t3.5\r\n"

    def test_debug_logging(
        self, multi_sheet_xlsx: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert main([str(multi_sheet_xlsx), "--log-level", "debug"]) == 0
        captured = capsys.readouterr()
        assert captured.out == "Name\tScore\nAlice\t42\nBob\t3.5\n"
        assert "Loaded settings" in captured.err
        assert "Extraction completed" in captured.err
