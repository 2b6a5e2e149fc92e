# linesh — Line-Oriented Script Engine
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Text helpers for linesh: script splitting, line normalization,
${NAME} expansion, quote-aware tokenizing and table formatting.
"""

import re
from collections.abc import Iterable, Mapping
from enum import Enum, auto
from typing import Any

DEFAULT_COMMENT_PREFIXES: tuple[str, ...] = ("//", "#")

_VARIABLE_RE = re.compile(r"\$\{([^}]*)\}")


def format_table(
    headers: list[str],
    rows: list[list[Any]],
    title: str = ""
) -> str:
    """
    Format data as a simple text table without external dependencies.

    Args:
        headers: List of column header names
        rows: List of rows, where each row is a list of values
        title: Optional title to display above the table

    Returns:
        Formatted table as a string
    """
    if not rows:
        return ""

    str_headers = [str(h) for h in headers]
    str_rows = [[str(val) for val in row] for row in rows]

    # Column width is the widest of header and values
    col_widths = []
    for i, header in enumerate(str_headers):
        max_width = len(header)
        for row in str_rows:
            if i < len(row):
                max_width = max(max_width, len(row[i]))
        col_widths.append(max_width)

    lines = []
    if title:
        lines.append(title)

    header_parts = []
    for i, header in enumerate(str_headers):
        header_parts.append(header.ljust(col_widths[i]))
    lines.append("  ".join(header_parts).rstrip())

    for row in str_rows:
        row_parts = []
        for i, val in enumerate(row):
            row_parts.append(val.ljust(col_widths[i]))
        lines.append("  ".join(row_parts).rstrip())

    return "\n".join(lines)


def split_script(script: str) -> list[str]:
    """Split script text into raw lines.

    Leading and trailing newlines of the whole script are dropped first,
    so line 1 is the first line with content in an indented block like::

        run('''
            echo one
        ''')
    """
    return script.strip("\n").split("\n")


def normalize_line(line: str) -> str:
    """Turn tabs into spaces and trim surrounding spaces and CRs."""
    return line.replace("\t", " ").strip(" \r")


def is_comment_line(
    line: str, prefixes: Iterable[str] = DEFAULT_COMMENT_PREFIXES
) -> bool:
    """True for a normalized line that is empty or a comment."""
    if not line:
        return True
    return any(line.startswith(p) for p in prefixes)


def expand_variables(line: str, variables: Mapping[str, str]) -> str:
    """Replace every ${NAME} with its value from variables.

    Unset names become the empty string. Substituted text is not
    scanned again, so a value containing "${X}" stays literal.
    """
    return _VARIABLE_RE.sub(
        lambda m: variables.get(m.group(1), ""), line
    )


def split_first_word(line: str) -> tuple[str, str]:
    """Split a line at its first space into (name, rest).

    The rest is everything after that space, unmodified.
    """
    space = line.find(" ")
    if space == -1:
        return line, ""
    return line[:space], line[space + 1:]


class LexerState(Enum):
    """States for the quote-aware tokenizer."""
    NORMAL = auto()
    DOUBLE_QUOTE = auto()


def tokenize(line: str) -> list[str]:
    """Split a command line into program and argument tokens.

    A token is either a run of characters that are neither whitespace
    nor a double quote, or the text between a pair of double quotes
    (quotes removed, whitespace kept, no escapes). An unmatched opening
    quote makes the rest of the line one literal token, quote included.

    Args:
        line: The (already expanded) command line

    Returns:
        List of tokens; the first is the program name
    """
    tokens: list[str] = []
    current: list[str] = []
    state = LexerState.NORMAL

    for ch in line:
        if state == LexerState.DOUBLE_QUOTE:
            if ch == '"':
                tokens.append("".join(current))
                current = []
                state = LexerState.NORMAL
            else:
                current.append(ch)
            continue

        if ch == '"':
            if current:
                tokens.append("".join(current))
                current = []
            state = LexerState.DOUBLE_QUOTE
        elif ch.isspace():
            if current:
                tokens.append("".join(current))
                current = []
        else:
            current.append(ch)

    if state == LexerState.DOUBLE_QUOTE:
        tokens.append('"' + "".join(current))
    elif current:
        tokens.append("".join(current))

    return tokens
