"""
Buddy Context

The main interface for compiling Buddy code and running the output.
"""

import json
import logging
import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from ..compiler import compile_program, read_sources, scan
from ..compiler.ast import ASTPrinter, ExpressionStmt, Program, ast_to_json
from ..compiler.errors import BuddyError
from ..compiler.runtime import RUNTIME
from ..compiler.transpiler import Transpiler

logger = logging.getLogger(__name__)

# Marks the line carrying the value printed by Context.evaluate
RESULT_MARKER = "__buddy_result__:"


@dataclass
class Script:
    """
    A compiled Buddy program.

    Contains the generated JavaScript (or TypeScript) and its origin.
    """

    source: str
    output: str
    emit_ts: bool = False
    filename: Optional[str] = None

    @property
    def extension(self) -> str:
        return "ts" if self.emit_ts else "js"

    def save(self, path: Union[str, Path]) -> Path:
        """Write the generated code to a file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.output, encoding="utf-8")
        return path


class Context:
    """
    Buddy compilation context.

    Holds the compiler options and runs compiled JavaScript through Node.js.

    Example:
        ctx = Context()
        script = ctx.compile('print("hi")')
        ctx.interpret(script)
    """

    def __init__(self,
                 emit_ts: bool = False,
                 include_runtime: bool = True,
                 resolve: bool = True,
                 debug: bool = False,
                 verbose: bool = False,
                 build_dir: Union[str, Path] = "_build"):
        """
        Create a new Buddy context.

        Args:
            emit_ts: Emit TypeScript instead of JavaScript
            include_runtime: Prepend the runtime support preamble
            resolve: Run the resolver (otherwise capitalized callees are
                constructor calls)
            debug: Dump tokens, AST and output to stderr while compiling
            verbose: Dump the AST as JSON instead of an outline
            build_dir: Directory that write() puts output files in
        """
        self.emit_ts = emit_ts
        self.include_runtime = include_runtime
        self.resolve = resolve
        self.debug = debug
        self.verbose = verbose
        self.build_dir = Path(build_dir)

    def _dump(self, title: str, text: str) -> None:
        print(f"===== {title} =====", file=sys.stderr)
        print(text, file=sys.stderr)

    def _transpiler(self) -> Transpiler:
        return Transpiler(emit_ts=self.emit_ts, capitalized_constructors=not self.resolve)

    def _program(self, source: str, filename: Optional[str]) -> Program:
        tokens = scan(source, filename)
        if self.debug:
            # Dumped before parsing so they are shown for failing sources too
            self._dump("Tokens", "\n".join(repr(t) for t in tokens))

        program = compile_program(source, filename, self.resolve, tokens)

        if self.debug:
            if self.verbose:
                self._dump("AST", ast_to_json(program))
            else:
                self._dump("AST", ASTPrinter().print(program))

        return program

    def compile(self, source: str, filename: Optional[str] = None) -> Script:
        """
        Compile Buddy source code.

        Args:
            source: Buddy source code
            filename: Optional filename for error messages

        Returns:
            Compiled Script object

        Raises:
            LexError: On a lexical error
            CompileError: If the parser or resolver reported errors
        """
        program = self._program(source, filename)
        output = self._transpiler().transpile(program, self.include_runtime)

        if self.debug:
            self._dump("Output", output)

        logger.debug("compiled %s", filename or "<source>")
        return Script(source=source, output=output, emit_ts=self.emit_ts, filename=filename)

    def compile_files(self, paths: Iterable[Union[str, Path]]) -> Script:
        """
        Compile several source files as one program.

        Files are concatenated in order, separated by newlines.
        """
        paths = list(paths)
        if not paths:
            raise ValueError("compile_files() needs at least one path")
        filename = str(paths[0]) if len(paths) == 1 else None
        return self.compile(read_sources(*paths), filename)

    def write(self, script: Script) -> Path:
        """Write a script to <build_dir>/output.js (or .ts)."""
        path = script.save(self.build_dir / f"output.{script.extension}")
        logger.info("wrote %s", path)
        return path

    def _node(self, code: str) -> str:
        node = shutil.which("node")
        if node is None:
            raise BuddyError("Cannot run JavaScript: 'node' was not found on PATH")

        result = subprocess.run([node], input=code, capture_output=True,
                                text=True, encoding="utf-8")
        if result.returncode != 0:
            raise BuddyError(f"JavaScript execution failed:\n{result.stderr.strip()}")
        return result.stdout

    def interpret(self, script: Script) -> str:
        """
        Run a compiled script with Node.js.

        Returns:
            Everything the script printed to stdout
        """
        if script.emit_ts:
            logger.warning("refusing to run TypeScript output for %s", script.filename or "<source>")
            raise BuddyError("TypeScript output cannot be interpreted; compile without emit_ts")
        return self._node(script.output)

    def evaluate(self, source: str) -> Any:
        """
        Run source whose last statement is an expression and return its value.

        The value travels back from Node.js as JSON, so it comes out as the
        matching Python value (list, dict, str, number, bool or None).
        """
        program = self._program(source, None)
        if not program.statements or not isinstance(program.statements[-1], ExpressionStmt):
            raise BuddyError("evaluate() needs source ending in an expression")

        transpiler = Transpiler(capitalized_constructors=not self.resolve)
        body = transpiler.transpile(Program(program.statements[:-1]), include_runtime=False)
        value = program.statements[-1].expression.accept(transpiler)

        code = "\n".join([
            RUNTIME,
            body,
            f"console.log({json.dumps(RESULT_MARKER)} + "
            f"((v) => JSON.stringify(v === undefined ? null : v))({value}));",
        ])

        for line in self._node(code).splitlines():
            if line.startswith(RESULT_MARKER):
                return json.loads(line[len(RESULT_MARKER):])
        raise BuddyError("Expression produced no value")


# Convenience functions
def create_context(**kwargs) -> Context:
    """Create a new Buddy context."""
    return Context(**kwargs)


def run(source: str, **kwargs) -> str:
    """
    Compile and run Buddy code.

    Args:
        source: Buddy source code
        **kwargs: Context options

    Returns:
        What the program printed
    """
    ctx = Context(**kwargs)
    script = ctx.compile(source)
    return ctx.interpret(script)
