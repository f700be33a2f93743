"""Remove comments from Solidity source while leaving string literals intact."""

from __future__ import annotations

import enum
import re

_EXCESS_BLANK_LINES = re.compile(r"\n{3,}")


class _ScanState(enum.Enum):
    CODE = "code"
    SINGLE_QUOTED = "single"
    DOUBLE_QUOTED = "double"


_QUOTE_STATES = {"'": _ScanState.SINGLE_QUOTED, '"': _ScanState.DOUBLE_QUOTED}
_CLOSING_QUOTE = {_ScanState.SINGLE_QUOTED: "'", _ScanState.DOUBLE_QUOTED: '"'}


def _scan(source: str) -> str:
    out: list[str] = []
    state = _ScanState.CODE
    i = 0
    n = len(source)

    while i < n:
        char = source[i]

        if state is not _ScanState.CODE:
            out.append(char)
            if char == "\\" and i + 1 < n:
                out.append(source[i + 1])
                i += 2
                continue
            if char == _CLOSING_QUOTE[state]:
                state = _ScanState.CODE
            i += 1
            continue

        if char in _QUOTE_STATES:
            state = _QUOTE_STATES[char]
            out.append(char)
            i += 1
            continue

        nxt = source[i + 1] if i + 1 < n else ""

        # /* ... */ and /** ... */; unterminated blocks run to end of input
        if char == "/" and nxt == "*":
            end = source.find("*/", i + 2)
            i = n if end == -1 else end + 2
            continue

        # // and ///; the newline stays
        if char == "/" and nxt == "/":
            end = source.find("\n", i + 2)
            i = n if end == -1 else end
            continue

        out.append(char)
        i += 1

    return "".join(out)


def _normalize_whitespace(text: str) -> str:
    text = "\n".join(line.rstrip() for line in text.split("\n"))
    text = _EXCESS_BLANK_LINES.sub("\n\n", text)
    return text.strip() + "\n"


def strip_solidity_comments(source: str) -> str:
    """Strip all comments from Solidity source code.

    Handles ``//``, ``///``, ``/* */`` and ``/** */`` comments. Comment
    markers inside single- or double-quoted string literals are copied
    verbatim, with backslash escapes honoured so ``\\"`` does not close a
    literal.
    """
    return _normalize_whitespace(_scan(source))


def strip_if_solidity(file_path: str, content: str) -> str:
    """Strip comments from ``.sol`` files; every other file passes through."""
    if file_path.lower().endswith(".sol"):
        return strip_solidity_comments(content)
    return content
