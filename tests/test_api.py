"""
Unit tests for the Buddy Python API.

Tests for Context compile, write, interpret and evaluate.
"""

import io
import shutil
import sys
import tempfile
import unittest
from contextlib import redirect_stderr
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import buddy
from buddy.api.context import Context, Script
from buddy.compiler import compile_file
from buddy.compiler.errors import BuddyError, CompileError, LexError

HAS_NODE = shutil.which("node") is not None


class TestContextBasic(unittest.TestCase):
    """Test basic Context functionality."""

    def test_create_context_default(self):
        """Test creating context with default options."""
        ctx = Context()
        self.assertFalse(ctx.emit_ts)
        self.assertTrue(ctx.include_runtime)
        self.assertTrue(ctx.resolve)
        self.assertFalse(ctx.debug)
        self.assertEqual(ctx.build_dir, Path("_build"))

    def test_create_context_helper(self):
        ctx = buddy.create_context(emit_ts=True)
        self.assertIsInstance(ctx, Context)
        self.assertTrue(ctx.emit_ts)

    def test_compile_simple(self):
        """Test compiling a simple declaration."""
        ctx = Context()
        script = ctx.compile("let x = 5")
        self.assertIsInstance(script, Script)
        self.assertTrue(script.output.endswith("const x = 5;"))
        self.assertEqual(script.source, "let x = 5")
        self.assertEqual(script.extension, "js")

    def test_compile_without_runtime(self):
        ctx = Context(include_runtime=False)
        self.assertEqual(ctx.compile("let x = 5").output, "const x = 5;")

    def test_compile_typescript(self):
        ctx = Context(emit_ts=True, include_runtime=False)
        script = ctx.compile("let x: Int = 5")
        self.assertEqual(script.output, "const x: number = 5;")
        self.assertEqual(script.extension, "ts")

    def test_compile_without_resolution(self):
        ctx = Context(resolve=False, include_runtime=False)
        self.assertEqual(ctx.compile("let a = 1\nlet a = Foo()").output,
                         "const a = 1;\nconst a = new Foo({});")


class TestContextErrors(unittest.TestCase):
    """Compilation failures."""

    def test_parse_error(self):
        ctx = Context()
        with self.assertRaises(CompileError) as info:
            ctx.compile("1 + 1 = 5", filename="main.swift")
        self.assertEqual(str(info.exception), "main.swift:1:7: Invalid assignment target.")

    def test_resolve_error(self):
        ctx = Context()
        with self.assertRaises(CompileError) as info:
            ctx.compile("let a = 1\nlet a = 2")
        self.assertEqual(len(info.exception.errors), 1)

    def test_lex_error_carries_filename(self):
        ctx = Context()
        with self.assertRaises(LexError) as info:
            ctx.compile('"abc', filename="a.swift")
        self.assertEqual(str(info.exception), "a.swift:1:1: Unterminated string")

    def test_errors_share_a_base_class(self):
        self.assertTrue(issubclass(CompileError, BuddyError))
        self.assertTrue(issubclass(LexError, BuddyError))

    def test_typescript_cannot_be_interpreted(self):
        ctx = Context(emit_ts=True)
        script = ctx.compile("let x = 5")
        with self.assertRaises(BuddyError):
            ctx.interpret(script)

    def test_evaluate_needs_expression(self):
        ctx = Context()
        with self.assertRaises(BuddyError):
            ctx.evaluate("let x = 5")


class TestFiles(unittest.TestCase):
    """Reading sources and writing output."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name)

    def tearDown(self):
        self.tmp.cleanup()

    def test_write(self):
        ctx = Context(build_dir=self.root / "_build")
        path = ctx.write(ctx.compile("let x = 5"))
        self.assertEqual(path, self.root / "_build" / "output.js")
        self.assertTrue(path.read_text(encoding="utf-8").endswith("const x = 5;"))

    def test_write_typescript(self):
        ctx = Context(emit_ts=True, build_dir=self.root)
        path = ctx.write(ctx.compile("let x = 5"))
        self.assertEqual(path.name, "output.ts")

    def test_script_save_creates_directories(self):
        script = Script(source="", output="x;")
        path = script.save(self.root / "a" / "b" / "out.js")
        self.assertEqual(path.read_text(encoding="utf-8"), "x;")

    def test_compile_files_concatenates(self):
        first = self.root / "a.swift"
        second = self.root / "b.swift"
        first.write_text("func one() -> Int { return 1 }", encoding="utf-8")
        second.write_text("let x = one()", encoding="utf-8")

        ctx = Context(include_runtime=False)
        script = ctx.compile_files([first, second])
        self.assertIsNone(script.filename)
        self.assertTrue(script.output.endswith("const x = one({});"))

    def test_compile_single_file_keeps_filename(self):
        path = self.root / "main.swift"
        path.write_text("let a = 1\nlet a = 2", encoding="utf-8")
        ctx = Context()
        with self.assertRaises(CompileError) as info:
            ctx.compile_files([path])
        self.assertTrue(str(info.exception).startswith(str(path) + ":2:5:"))

    def test_compile_files_needs_paths(self):
        with self.assertRaises(ValueError):
            Context().compile_files([])

    def test_compile_file_function(self):
        path = self.root / "main.swift"
        path.write_text("let x = 5", encoding="utf-8")
        self.assertEqual(compile_file(path, include_runtime=False), "const x = 5;")
        with self.assertRaises(ValueError):
            compile_file()


class TestDebugOutput(unittest.TestCase):
    """Dumps written to stderr in debug mode."""

    def test_debug_dumps(self):
        ctx = Context(debug=True)
        stderr = io.StringIO()
        with redirect_stderr(stderr):
            ctx.compile("let x = 5")
        text = stderr.getvalue()
        self.assertIn("===== Tokens =====", text)
        self.assertIn("===== AST =====", text)
        self.assertIn("VarDeclaration(name=x, is_constant=True)", text)
        self.assertIn("===== Output =====", text)

    def test_tokens_are_dumped_for_failing_source(self):
        ctx = Context(debug=True)
        stderr = io.StringIO()
        with redirect_stderr(stderr):
            with self.assertRaises(CompileError):
                ctx.compile("1 + 1 = 5")
        text = stderr.getvalue()
        self.assertIn("===== Tokens =====", text)
        self.assertNotIn("===== AST =====", text)

    def test_verbose_dumps_json(self):
        ctx = Context(debug=True, verbose=True)
        stderr = io.StringIO()
        with redirect_stderr(stderr):
            ctx.compile("let x = 5")
        self.assertIn('"node": "Program"', stderr.getvalue())


class TestPackage(unittest.TestCase):
    """Top level package exports."""

    def test_version(self):
        self.assertEqual(buddy.version(), "0.1.0")
        self.assertEqual(buddy.__version__, "0.1.0")

    def test_compile_source(self):
        self.assertEqual(buddy.compile_source("let x = 5", include_runtime=False),
                         "const x = 5;")


@unittest.skipUnless(HAS_NODE, "node is not installed")
class TestRunning(unittest.TestCase):
    """Executing compiled scripts with node."""

    def test_interpret(self):
        ctx = Context()
        self.assertEqual(ctx.interpret(ctx.compile('print("hi", 2)')), "hi 2\n")

    def test_run(self):
        self.assertEqual(buddy.run('print("hello")'), "hello\n")

    def test_evaluate(self):
        self.assertEqual(Context().evaluate("[1, 2, 3]"), [1, 2, 3])

    def test_evaluate_nil(self):
        self.assertIsNone(Context().evaluate("nil"))

    def test_runtime_error(self):
        ctx = Context()
        with self.assertRaises(BuddyError):
            ctx.interpret(ctx.compile('throw "boom"'))


if __name__ == "__main__":
    unittest.main()
