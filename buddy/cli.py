"""Command-line interface for Buddy."""

import argparse
import logging
import sys
from typing import List, Optional

from .api.context import Context
from .compiler.errors import BuddyError


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser (separate function for testability)."""
    p = argparse.ArgumentParser(
        prog="buddy",
        description="Compile Buddy source files to JavaScript or TypeScript",
    )
    p.add_argument("command", choices=["compile", "interpret"],
                   help="compile to _build/output.js, or run the program with node")
    p.add_argument("files", nargs="+", help="Buddy source files, concatenated in order")
    p.add_argument("-debug", action="store_true",
                   help="Dump tokens, AST and output to stderr")
    p.add_argument("-verbose", action="store_true", help="Dump the AST as JSON")
    p.add_argument("-ts", action="store_true", help="Emit TypeScript")
    p.add_argument("-build-dir", default="_build", metavar="DIR",
                   help="Output directory for compile (default: _build)")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point. Returns exit code (0/1/2). Does not call sys.exit()."""
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else 2

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "interpret" and args.ts:
        print("error: -ts output cannot be interpreted", file=sys.stderr)
        return 2

    ctx = Context(emit_ts=args.ts, debug=args.debug, verbose=args.verbose,
                  build_dir=args.build_dir)

    try:
        script = ctx.compile_files(args.files)
        if args.command == "compile":
            ctx.write(script)
        else:
            sys.stdout.write(ctx.interpret(script))
    except BuddyError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    return 0
