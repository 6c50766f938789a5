"""
Lox command line driver.

    lox              start the interactive prompt
    lox PATH         evaluate the expression in PATH
    lox --debug ...  print compiled chunks and trace the VM
"""

import argparse
import sys
from typing import List, Optional, TextIO

from .api.context import Context
from .compiler.errors import CompileError, RuntimeError

# sysexits.h codes
EX_OK = 0
EX_USAGE = 64
EX_DATAERR = 65
EX_SOFTWARE = 70
EX_IOERR = 74


class ArgumentParser(argparse.ArgumentParser):
    """Reports bad invocations with the usage exit code."""

    def error(self, message: str) -> None:
        self.print_usage(sys.stderr)
        self.exit(EX_USAGE, f"{self.prog}: error: {message}\n")


def report_runtime_error(error: RuntimeError, err: TextIO) -> None:
    print(error.message, file=err)
    if error.line is not None:
        print(f"[line {error.line}] in script", file=err)


def repl(ctx: Context, stdin: TextIO, stdout: TextIO, err: TextIO) -> int:
    """Read a line, evaluate it, print the value; errors never end the loop."""
    print("Welcome to the Lox prompt", file=stdout)
    print("^D to exit\n", file=stdout)

    while True:
        stdout.write("> ")
        stdout.flush()

        line = stdin.readline()
        if not line:
            stdout.write("\n")
            return EX_OK
        if not line.strip():
            continue

        try:
            value = ctx.interpret(line)
        except CompileError:
            # Diagnostics were already printed by the compiler
            continue
        except RuntimeError as e:
            report_runtime_error(e, err)
            continue
        print(value, file=stdout)


def run_file(ctx: Context, path: str, stdout: TextIO, err: TextIO) -> int:
    """Evaluate the expression in a file, returning a process exit code."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            source = f.read()
    except OSError as e:
        print(f"Could not open file \"{path}\": {e.strerror}", file=err)
        return EX_IOERR

    try:
        value = ctx.interpret(source)
    except CompileError:
        return EX_DATAERR
    except RuntimeError as e:
        report_runtime_error(e, err)
        return EX_SOFTWARE

    print(value, file=stdout)
    return EX_OK


def main(argv: Optional[List[str]] = None) -> int:
    parser = ArgumentParser(prog="lox", description="Evaluate Lox expressions.")
    parser.add_argument("paths", nargs="*", metavar="path",
                        help="file holding an expression (omit for a prompt)")
    parser.add_argument("--debug", action="store_true",
                        help="print compiled chunks and trace execution")
    args = parser.parse_args(argv)

    if len(args.paths) > 1:
        print("Usage: lox [path]", file=sys.stderr)
        return EX_USAGE

    ctx = Context(debug=args.debug, error_stream=sys.stderr)
    if args.paths:
        return run_file(ctx, args.paths[0], sys.stdout, sys.stderr)
    return repl(ctx, sys.stdin, sys.stdout, sys.stderr)


if __name__ == "__main__":
    sys.exit(main())
