"""Structural syntax checking for generated Typst markup.

The checker walks the three lexical modes of the language (markup, code and
math) and reports constructs that can never parse: delimiters left open,
closers without an opener, unterminated strings, raw text, labels and
comments, and strong or emphasis delimiters that are not closed before the
paragraph, heading, list item or content block ends. It does not evaluate
anything, so references to unknown names or missing files pass.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)

MARKUP = "markup"
CODE = "code"
EMBED = "embed"
STATEMENT = "statement"
MATH = "math"

STATEMENT_KEYWORDS = frozenset(
    {"let", "set", "show", "import", "include", "return", "break", "continue", "if", "for", "while", "context"}
)
CLOSER_NAMES = {")": "paren", "]": "bracket", "}": "brace"}
URL_PREFIXES = ("https://", "http://")
URL_STOP = " \t\r\n<>[]\"'"

_HEADING_START = re.compile(r"([ \t]*)=+(?=[ \t\r\n]|$)")
_ITEM_START = re.compile(r"([ \t]*)(?:[-+/]|\d+\.)(?=[ \t\r\n]|$)")


@dataclass(frozen=True)
class SyntaxDiagnostic:
    message: str
    offset: int
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.line}:{self.column}: {self.message}"


class SyntaxChecker(Protocol):
    def check(self, text: str) -> list[SyntaxDiagnostic]:
        ...


@dataclass
class _Frame:
    mode: str
    start: int
    closer: str | None = None
    # unmatched ``[`` seen as plain text inside a markup frame
    nesting: int = 0
    # an embedded expression has consumed its leading atom
    primed: bool = False
    # open ``*``/``_`` delimiters as (char, offset, nesting when opened)
    delims: List[Tuple[str, int, int]] = field(default_factory=list)
    # len(delims) when the current heading line started
    heading: Optional[int] = None
    # (indent, len(delims)) when the current list item started
    item: Optional[Tuple[int, int]] = None


@dataclass
class _Scanner:
    src: str
    pos: int = 0
    stack: List[_Frame] = field(default_factory=list)
    diagnostics: List[SyntaxDiagnostic] = field(default_factory=list)

    def run(self) -> list[SyntaxDiagnostic]:
        self.stack = [_Frame(MARKUP, 0)]
        self._line_start(self.stack[0])
        while self.pos < len(self.src):
            frame = self.stack[-1]
            if frame.mode == MARKUP:
                self._markup_step(frame)
            elif frame.mode == MATH:
                self._math_step(frame)
            elif frame.mode == EMBED:
                self._embed_step(frame)
            else:
                self._code_step(frame)
        for frame in reversed(self.stack[1:]):
            if frame.closer is not None:
                self._error("unclosed delimiter", frame.start)
        for frame in self.stack:
            self._unclose(frame)
        self.diagnostics.sort(key=lambda diag: diag.offset)
        return self.diagnostics

    # -- helpers -----------------------------------------------------------

    def _error(self, message: str, offset: int) -> None:
        line = self.src.count("\n", 0, offset) + 1
        column = offset - (self.src.rfind("\n", 0, offset) + 1) + 1
        self.diagnostics.append(SyntaxDiagnostic(message=message, offset=offset, line=line, column=column))

    def _peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        return self.src[idx] if idx < len(self.src) else ""

    def _push(self, mode: str, closer: str | None = None, **kwargs) -> _Frame:
        frame = _Frame(mode, self.pos, closer, **kwargs)
        self.stack.append(frame)
        return frame

    def _read_ident(self) -> str:
        start = self.pos
        while self.pos < len(self.src) and _is_ident_char(self.src[self.pos]):
            self.pos += 1
        return self.src[start : self.pos]

    def _skip_line_comment(self) -> None:
        end = self.src.find("\n", self.pos)
        self.pos = len(self.src) if end == -1 else end

    def _skip_block_comment(self) -> None:
        start = self.pos
        depth = 0
        while self.pos < len(self.src):
            if self.src.startswith("/*", self.pos):
                depth += 1
                self.pos += 2
            elif self.src.startswith("*/", self.pos):
                depth -= 1
                self.pos += 2
                if depth == 0:
                    return
            else:
                self.pos += 1
        self._error("unclosed comment", start)

    def _skip_string(self) -> None:
        start = self.pos
        self.pos += 1
        while self.pos < len(self.src):
            ch = self.src[self.pos]
            if ch == "\\":
                self.pos += 2
            elif ch == '"':
                self.pos += 1
                return
            else:
                self.pos += 1
        self._error("unclosed string", start)

    def _skip_raw(self) -> None:
        start = self.pos
        count = 0
        while self._peek() == "`":
            count += 1
            self.pos += 1
        if count == 2:
            return
        end = self.src.find("`" * count, self.pos)
        if end == -1:
            self._error("unclosed raw text", start)
            self.pos = len(self.src)
            return
        self.pos = end + count

    def _skip_comment(self) -> bool:
        if self.src.startswith("//", self.pos):
            self._skip_line_comment()
            return True
        if self.src.startswith("/*", self.pos):
            self._skip_block_comment()
            return True
        return False

    def _close(self, frame: _Frame) -> None:
        """Pop ``frame`` after its closer was consumed."""
        self.stack.pop()

    def _open_group(self, ch: str) -> None:
        if ch == "(":
            self._push(CODE, ")")
        elif ch == "{":
            self._push(CODE, "}")
        else:
            frame = self._push(MARKUP, "]")
            self.pos += 1
            self._line_start(frame)
            return
        self.pos += 1

    def _skip_label(self) -> None:
        start = self.pos
        self.pos += 1
        while _is_label_char(self._peek()):
            self.pos += 1
        if self._peek() == ">":
            self.pos += 1
        else:
            self._error("unclosed label", start)

    # -- strong/emph delimiters and line structure ---------------------------

    def _in_word(self) -> bool:
        prev = self.src[self.pos - 1] if self.pos > 0 else ""
        return prev.isalnum() and self._peek(1).isalnum()

    def _truncate(self, frame: _Frame, length: int) -> None:
        del frame.delims[length:]
        if frame.heading is not None:
            frame.heading = min(frame.heading, length)
        if frame.item is not None:
            frame.item = (frame.item[0], min(frame.item[1], length))

    def _unclose(self, frame: _Frame, start: int = 0) -> None:
        """Report every delimiter from ``start`` on as unclosed."""
        for _, offset, _ in frame.delims[start:]:
            self._error("unclosed delimiter", offset)
        self._truncate(frame, start)

    def _toggle_delimiter(self, frame: _Frame, ch: str) -> None:
        # only the innermost open delimiter can be closed; anything else nests
        if frame.delims and frame.delims[-1][0] == ch:
            frame.nesting = frame.delims[-1][2]
            self._truncate(frame, len(frame.delims) - 1)
        else:
            frame.delims.append((ch, self.pos, frame.nesting))
        self.pos += 1

    def _close_bracket(self, frame: _Frame) -> None:
        """A ``]`` ends every delimiter opened since its ``[``."""
        start = len(frame.delims)
        while start and frame.delims[start - 1][2] >= frame.nesting:
            start -= 1
        self._unclose(frame, start)
        frame.nesting -= 1

    def _line_start(self, frame: _Frame) -> None:
        heading = _HEADING_START.match(self.src, self.pos)
        if heading:
            frame.heading = len(frame.delims)
            return
        item = _ITEM_START.match(self.src, self.pos)
        if item:
            frame.item = (len(item.group(1)), len(frame.delims))

    def _line_break(self, frame: _Frame) -> None:
        self.pos += 1
        if frame.heading is not None:
            self._unclose(frame, frame.heading)
            frame.heading = None
        end = self.pos
        while end < len(self.src) and self.src[end] in " \t\r":
            end += 1
        if end >= len(self.src) or self.src[end] == "\n":
            # paragraph break
            self._unclose(frame)
            frame.item = None
        elif frame.item is not None and end - self.pos <= frame.item[0]:
            self._unclose(frame, frame.item[1])
            frame.item = None
        self._line_start(frame)

    def _start_embed(self) -> None:
        """Handle ``#`` in markup or math."""
        nxt = self._peek(1)
        if _is_ident_start(nxt):
            self.pos += 1
            name = self._read_ident()
            if name in STATEMENT_KEYWORDS:
                self._push(STATEMENT)
            else:
                self._push(EMBED, primed=True)
        elif nxt in "([{\"":
            self.pos += 1
            self._push(EMBED)
        else:
            self.pos += 1

    # -- modes ---------------------------------------------------------------

    def _markup_step(self, frame: _Frame) -> None:
        ch = self.src[self.pos]
        if ch == "\\":
            # a backslash before a newline is a line break; the newline still counts
            self.pos += 1 if self._peek(1) == "\n" else 2
        elif self._skip_comment():
            pass
        elif self.src.startswith("*/", self.pos):
            self._error("unexpected end of block comment", self.pos)
            self.pos += 2
        elif ch == "`":
            self._skip_raw()
        elif ch == "$":
            self._push(MATH, "$")
            self.pos += 1
        elif ch == "#":
            self._start_embed()
        elif ch == "[":
            frame.nesting += 1
            self.pos += 1
        elif ch == "]":
            if frame.nesting:
                self._close_bracket(frame)
            elif frame.closer == "]":
                self._unclose(frame)
                self._close(frame)
            else:
                self._error("unexpected closing bracket", self.pos)
            self.pos += 1
        elif ch == "\n":
            self._line_break(frame)
        elif ch in "*_" and not self._in_word():
            self._toggle_delimiter(frame, ch)
        elif ch == "<" and _is_ident_char(self._peek(1)):
            self._skip_label()
        elif ch == "@" and _is_ident_char(self._peek(1)):
            self.pos += 1
            while _is_label_char(self._peek()):
                self.pos += 1
        elif self.src.startswith(URL_PREFIXES, self.pos):
            while self.pos < len(self.src) and self.src[self.pos] not in URL_STOP:
                self.pos += 1
        else:
            self.pos += 1

    def _math_step(self, frame: _Frame) -> None:
        ch = self.src[self.pos]
        if ch == "\\":
            self.pos += 2
        elif self._skip_comment():
            pass
        elif ch == '"':
            self._skip_string()
        elif ch == "$":
            self._close(frame)
            self.pos += 1
        elif ch == "#":
            self._start_embed()
        else:
            self.pos += 1

    def _embed_step(self, frame: _Frame) -> None:
        ch = self.src[self.pos]
        if not frame.primed:
            frame.primed = True
            if ch == '"':
                self._skip_string()
            else:
                self._open_group(ch)
            return
        if ch in "([":
            self._open_group(ch)
        elif ch == "." and _is_ident_start(self._peek(1)):
            self.pos += 1
            self._read_ident()
        else:
            self.stack.pop()

    def _code_step(self, frame: _Frame) -> None:
        ch = self.src[self.pos]
        if frame.mode == STATEMENT and ch in "\n;":
            self.stack.pop()
            if ch == ";":
                self.pos += 1
            return
        if ch == '"':
            self._skip_string()
        elif self._skip_comment():
            pass
        elif ch == "`":
            self._skip_raw()
        elif ch == "$":
            self._push(MATH, "$")
            self.pos += 1
        elif ch in "([{":
            self._open_group(ch)
        elif ch in ")]}":
            if ch == frame.closer:
                self._close(frame)
                self.pos += 1
            elif frame.mode == STATEMENT:
                # the statement ends where its enclosing group does
                self.stack.pop()
            else:
                self._error(f"unexpected closing {CLOSER_NAMES[ch]}", self.pos)
                self.pos += 1
        else:
            self.pos += 1


def _is_ident_start(ch: str) -> bool:
    return bool(ch) and (ch.isalpha() or ch == "_")


def _is_ident_char(ch: str) -> bool:
    return bool(ch) and (ch.isalnum() or ch in "_-")


def _is_label_char(ch: str) -> bool:
    return bool(ch) and (ch.isalnum() or ch in "_-.:")


class TypstSyntaxChecker:
    """Default :class:`SyntaxChecker` for generated markup."""

    def check(self, text: str) -> list[SyntaxDiagnostic]:
        diagnostics = _Scanner(text).run()
        if diagnostics:
            logger.debug("Found %d syntax error(s) in %d chars of markup", len(diagnostics), len(text))
        return diagnostics


def check_syntax(text: str) -> list[SyntaxDiagnostic]:
    return TypstSyntaxChecker().check(text)
