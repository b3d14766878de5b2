"""Parser for test files.

A test file is a sequence of test blocks separated by whitespace::

    @test name {
    <body lines>
    }

Body lines are kept verbatim, including their line endings, so that the
generated script reproduces them byte for byte. A body line may not begin
with ``}``: the first such line closes the block (when it is exactly ``}``)
or is a syntax error. Nested ``{ ... }`` blocks whose closing brace sits
alone at the start of a line therefore cannot appear in a test body.

Parsing happens in two steps: ``parse_tests`` returns ``RawTest`` records
that only hold offsets into the source text, and ``RawTest.to_test`` copies
them out into owned ``Test`` values once the caller is done with the text.
"""

from __future__ import annotations

import string
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from .errors import ParseError, ReadError
from .model import Test

TEST_KEYWORD = "@test "
BLOCK_OPEN = " {"
BLOCK_CLOSE = "}"

SHELLS_KEYWORD = "@shells("
SHELLS = ("bash", "fish", "zsh", "tcsh")
MAX_SHELLS = 4

NAME_CHARS = frozenset(string.ascii_letters + string.digits + "_")
WHITESPACE = " \t\r\n"


@dataclass(frozen=True)
class RawTest:
    """
    A test block as offsets into the text it was parsed from.

    Each body line is (start, content_end, end): source[start:content_end]
    is the line content and source[content_end:end] its line ending.
    """
    source: str
    name_span: Tuple[int, int]
    lines: Tuple[Tuple[int, int, int], ...]

    @property
    def name(self) -> str:
        start, end = self.name_span
        return self.source[start:end]

    def body_lines(self) -> Iterator[Tuple[str, str]]:
        for start, content_end, end in self.lines:
            yield self.source[start:content_end], self.source[content_end:end]

    def to_test(self) -> Test:
        body = "".join(content + ending for content, ending in self.body_lines())
        return Test(name=self.name, body=body)


class _Parser:
    def __init__(self, text: str, path: str):
        self.text = text
        self.path = path
        self.pos = 0

    # -- primitives ----------------------------------------------------

    def error(self, message: str, pos: Optional[int] = None) -> ParseError:
        at = self.pos if pos is None else pos
        line = self.text.count("\n", 0, at) + 1
        column = at - (self.text.rfind("\n", 0, at) + 1) + 1
        return ParseError(path=self.path, line=line, column=column, message=message)

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def peek(self, literal: str) -> bool:
        return self.text.startswith(literal, self.pos)

    def expect(self, literal: str, message: str) -> None:
        if not self.peek(literal):
            raise self.error(message)
        self.pos += len(literal)

    def line_ending(self) -> Optional[int]:
        """Consume "\\n" or "\\r\\n"; return the new position or None."""
        if self.peek("\r\n"):
            self.pos += 2
        elif self.peek("\n"):
            self.pos += 1
        else:
            return None
        return self.pos

    def skip_whitespace(self) -> None:
        while not self.at_end() and self.text[self.pos] in WHITESPACE:
            self.pos += 1

    def skip_spaces(self) -> None:
        while not self.at_end() and self.text[self.pos] in " \t":
            self.pos += 1

    # -- grammar -------------------------------------------------------

    def test_name(self) -> Tuple[int, int]:
        start = self.pos
        while not self.at_end() and self.text[self.pos] in NAME_CHARS:
            self.pos += 1
        if self.pos == start:
            raise self.error("expected a test name (letters, digits or '_')")
        return start, self.pos

    def body_line(self) -> Tuple[int, int, int]:
        start = self.pos
        newline = self.text.find("\n", start)
        if newline == -1:
            raise self.error(f"missing closing '{BLOCK_CLOSE}' for test block")
        content_end = newline
        if content_end > start and self.text[content_end - 1] == "\r":
            content_end -= 1
        self.pos = newline + 1
        return start, content_end, self.pos

    def test(self) -> RawTest:
        self.expect(TEST_KEYWORD, f"expected '{TEST_KEYWORD.strip()} <name>{BLOCK_OPEN}'")
        name_span = self.test_name()
        self.expect(BLOCK_OPEN, f"expected '{BLOCK_OPEN.strip()}' after test name")
        if self.line_ending() is None:
            raise self.error(f"expected a line break after '{BLOCK_OPEN.strip()}'")

        lines: List[Tuple[int, int, int]] = []
        while True:
            if self.at_end():
                raise self.error(f"missing closing '{BLOCK_CLOSE}' for test block")
            if self.peek(BLOCK_CLOSE):
                break
            lines.append(self.body_line())

        close_at = self.pos
        self.pos += len(BLOCK_CLOSE)
        if self.line_ending() is None:
            if self.at_end():
                raise self.error(f"expected a line break after closing '{BLOCK_CLOSE}'")
            raise self.error(
                f"a line starting with '{BLOCK_CLOSE}' is not a valid body line",
                pos=close_at,
            )
        if not lines:
            raise self.error("test body must contain at least one line", pos=close_at)

        return RawTest(source=self.text, name_span=name_span, lines=tuple(lines))

    def test_file(self) -> List[RawTest]:
        tests: List[RawTest] = []
        self.skip_whitespace()
        while not self.at_end():
            if not self.peek(TEST_KEYWORD):
                raise self.error(f"expected '{TEST_KEYWORD.strip()} <name>{BLOCK_OPEN}' or end of file")
            tests.append(self.test())
            self.skip_whitespace()
        return tests

    def shell(self) -> str:
        for name in SHELLS:
            if self.peek(name):
                self.pos += len(name)
                return name
        raise self.error(f"expected one of: {', '.join(SHELLS)}")

    def shells_decorator(self) -> List[str]:
        self.expect(SHELLS_KEYWORD, f"expected '{SHELLS_KEYWORD}'")
        shells = [self.shell()]
        while self.peek(","):
            if len(shells) == MAX_SHELLS:
                raise self.error(f"at most {MAX_SHELLS} shells may be listed")
            self.pos += 1
            self.skip_spaces()
            shells.append(self.shell())
        self.expect(")", "expected ',' or ')'")
        return shells


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def parse_tests(text: str, path: str | Path = "<string>") -> List[RawTest]:
    """Parse every test block in text, in declaration order."""
    return _Parser(text, str(path)).test_file()


def parse_test_file(path: str | Path) -> List[Test]:
    """Read and parse a test file into owned Test values."""
    p = Path(path)
    try:
        # newline="" keeps "\r\n" intact
        with open(p, encoding="utf-8", newline="") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise ReadError(path=p, reason=str(e)) from e
    return [raw.to_test() for raw in parse_tests(text, p)]


def parse_shells_decorator(text: str) -> List[str]:
    """
    Parse an ``@shells(bash, zsh)`` decorator.

    Recognized only; blocks and generated jobs do not use it yet.
    """
    parser = _Parser(text, "<string>")
    shells = parser.shells_decorator()
    if not parser.at_end():
        raise parser.error("unexpected trailing input after decorator")
    return shells
