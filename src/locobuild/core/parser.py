# src/locobuild/core/parser.py
from __future__ import annotations

import shlex
from typing import List, Optional, Tuple

_OPS: set[str] = {"&&", "||", ";"}


def parse_command_line(line: str) -> List[Tuple[str, List[str], Optional[str]]]:
    """
    Parses a shell input line into a list of command segments.

    A command segment is defined as (command_name, args, op_before), where
    op_before is the operator (';', '&&' or '||') joining it to the previous
    segment.
    """
    s = (line or "").strip()
    if not s:
        return []

    try:
        # Operators must stand apart: "{name|fallback}" keeps its pipe
        tokens = shlex.split(s, posix=True)
    except ValueError:
        # Unbalanced quotes: fall back to a plain split
        tokens = s.split()

    out: list[tuple[str, list[str], str | None]] = []
    current_name: str | None = None
    current_args: list[str] = []
    op_before: str | None = None

    def _flush(next_op: Optional[str] = None) -> None:
        nonlocal current_name, current_args, op_before
        if current_name is not None:
            out.append((current_name, current_args, op_before))
        current_name, current_args = None, []
        op_before = next_op

    for tok in tokens:
        if tok in _OPS:
            _flush(next_op=tok)
            continue
        if current_name is None:
            current_name = tok
        else:
            current_args.append(tok)

    _flush()
    return out
