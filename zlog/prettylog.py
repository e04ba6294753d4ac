"""Command that pretty-prints JSON log lines from stdin or files."""

from __future__ import annotations

import sys
from typing import List, Optional

from .console import new_console_writer


def _input_from_pipe() -> bool:
    try:
        return not sys.stdin.isatty()
    except (AttributeError, ValueError):
        return False


def main(argv: Optional[List[str]] = None) -> int:
    """Render log lines readably; returns the exit status."""
    args = sys.argv[1:] if argv is None else list(argv)
    writer = new_console_writer()
    if _input_from_pipe():
        for line in sys.stdin:
            try:
                writer.write(line.rstrip("\n").encode("utf-8"))
            except (ValueError, OSError):
                pass
        return 0
    if args:
        for filename in args:
            try:
                handle = open(filename, "rb")
            except OSError as exc:
                print(f"{filename} open: {exc}", end="")
                return 1
            with handle:
                try:
                    for line in handle:
                        try:
                            writer.write(line.rstrip(b"\r\n"))
                        except ValueError as exc:
                            print(f"{filename} write: {exc}", end="")
                            return 1
                except OSError as exc:
                    print(f"{filename} scan: {exc}", end="")
                    return 1
        return 0
    print("Usage:")
    print("  app_with_zerolog | 2> >(prettylog)")
    print("  prettylog zerolog_output.jsonl")
    return 1


if __name__ == "__main__":
    sys.exit(main())