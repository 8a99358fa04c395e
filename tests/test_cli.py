"""
Buddy CLI Tests

Tests for the buddy command line entry point.
"""

import pytest
from buddy.cli import build_parser, main

from conftest import requires_node


@pytest.fixture
def source(tmp_path):
    def write(text, name="main.swift"):
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return str(path)
    return write


class TestArguments:
    """Argument parsing."""

    def test_flags(self):
        args = build_parser().parse_args(
            ["compile", "a.swift", "b.swift", "-ts", "-debug", "-verbose", "-build-dir", "out"])
        assert args.command == "compile"
        assert args.files == ["a.swift", "b.swift"]
        assert args.ts and args.debug and args.verbose
        assert args.build_dir == "out"

    def test_defaults(self):
        args = build_parser().parse_args(["interpret", "a.swift"])
        assert not args.ts and not args.debug and not args.verbose
        assert args.build_dir == "_build"

    def test_usage_errors(self, capsys):
        assert main([]) == 2
        assert main(["bogus", "a.swift"]) == 2
        assert main(["compile"]) == 2


class TestCompileCommand:
    """buddy compile"""

    def test_writes_javascript(self, source, build_dir):
        assert main(["compile", source("let x = 5"), "-build-dir", str(build_dir)]) == 0
        output = (build_dir / "output.js").read_text(encoding="utf-8")
        assert output.endswith("const x = 5;")

    def test_writes_typescript(self, source, build_dir):
        assert main(["compile", source("let x: Int = 5"), "-ts",
                     "-build-dir", str(build_dir)]) == 0
        output = (build_dir / "output.ts").read_text(encoding="utf-8")
        assert output.endswith("const x: number = 5;")

    def test_concatenates_files(self, source, build_dir):
        first = source("func one() -> Int { return 1 }", "a.swift")
        second = source("let x = one()", "b.swift")
        assert main(["compile", first, second, "-build-dir", str(build_dir)]) == 0
        output = (build_dir / "output.js").read_text(encoding="utf-8")
        assert "function one(params = {})" in output
        assert output.endswith("const x = one({});")

    def test_compile_error(self, source, build_dir, capsys):
        path = source("1 + 1 = 5")
        assert main(["compile", path, "-build-dir", str(build_dir)]) == 1
        assert f"{path}:1:7: Invalid assignment target." in capsys.readouterr().err
        assert not build_dir.exists()

    def test_lex_error(self, source, build_dir, capsys):
        assert main(["compile", source('let s = "abc'), "-build-dir", str(build_dir)]) == 1
        assert "Unterminated string" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, build_dir, capsys):
        missing = str(tmp_path / "missing.swift")
        assert main(["compile", missing, "-build-dir", str(build_dir)]) == 1
        assert "error:" in capsys.readouterr().err

    def test_debug_dumps(self, source, build_dir, capsys):
        assert main(["compile", source("let x = 5"), "-debug",
                     "-build-dir", str(build_dir)]) == 0
        err = capsys.readouterr().err
        assert "===== Tokens =====" in err
        assert "===== AST =====" in err


class TestInterpretCommand:
    """buddy interpret"""

    def test_typescript_cannot_be_interpreted(self, source, capsys):
        assert main(["interpret", source("let x = 5"), "-ts"]) == 2
        assert "cannot be interpreted" in capsys.readouterr().err

    @requires_node
    def test_prints_program_output(self, source, capsys):
        assert main(["interpret", source('print("hi")')]) == 0
        assert capsys.readouterr().out == "hi\n"
