"""Layout specification grammar.

Turns spec text such as::

    [ -f "vim" .. [ -r -d 500 "npm test" : 'tail -f log' ] ]

into an immutable tree of :class:`SplitNode` / :class:`CommandNode`.

Grammar (informal EBNF)::

    spec      = directive EOF
    split     = "[" directive (":"  directive)+ "]"      # vertical
              | "[" directive (".." directive)+ "]"      # horizontal
    directive = split | command
    command   = option* string
    option    = ("-f"|"--focus") | ("-r"|"--restart")
              | ("-d"|"--delay") number | ("-t"|"--title") string
    string    = dquoted | squoted | bareword

Whitespace, ``//`` line comments and ``/* */`` block comments may appear
between any two tokens.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional, Tuple, Union

from .errors import ParseError


class Orientation(Enum):
    VERTICAL = "vertical"      # children stacked top to bottom (":")
    HORIZONTAL = "horizontal"  # children side by side ("..")


@dataclass(frozen=True)
class Position:
    line: int
    column: int
    offset: int


@dataclass(frozen=True)
class CommandOptions:
    focus: bool = False
    restart: bool = False
    delay: Optional[Union[int, float]] = None
    title: Optional[str] = None


@dataclass(frozen=True)
class CommandNode:
    command: str
    options: CommandOptions = field(default_factory=CommandOptions)
    position: Optional[Position] = field(default=None, compare=False)

    @property
    def title(self) -> str:
        """Pane title: the explicit ``--title`` or the command itself."""
        return self.options.title if self.options.title is not None else self.command


@dataclass(frozen=True)
class SplitNode:
    orientation: Orientation
    children: Tuple["SpecNode", ...]
    position: Optional[Position] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "children", tuple(self.children))
        if len(self.children) < 2:
            raise ValueError("a split needs at least two children")


SpecNode = Union[SplitNode, CommandNode]


def leaves(node: SpecNode) -> Iterator[CommandNode]:
    """Yield command leaves depth-first, left-to-right / top-to-bottom."""
    if isinstance(node, CommandNode):
        yield node
    else:
        for child in node.children:
            yield from leaves(child)


_OPTION = re.compile(r"--?[A-Za-z][A-Za-z-]*")
_NUMBER = re.compile(
    r"[+-]?(?:"
    r"0[bB][01]+|0[oO][0-7]+|0[xX][0-9a-fA-F]+"
    r"|(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?"
    r")"
)

_OPTION_NAMES = {
    "-f": "focus", "--focus": "focus",
    "-r": "restart", "--restart": "restart",
    "-d": "delay", "--delay": "delay",
    "-t": "title", "--title": "title",
}

_ESCAPES = {
    "\\": "\\",
    '"': '"',
    "b": "\b",
    "v": "\v",
    "f": "\f",
    "t": "\t",
    "r": "\r",
    "n": "\n",
    "e": "\x1b",
}

_SEPARATORS = {":": Orientation.VERTICAL, "..": Orientation.HORIZONTAL}


def _is_bareword_char(ch: str) -> bool:
    if ch.isspace() or ch in "[]:.-":
        return False
    code = ord(ch)
    return code >= 0x20 and code != 0x7F


class _Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    # --- Positions and failures --------------------------------------

    def _position(self, offset: Optional[int] = None) -> Position:
        offset = self.pos if offset is None else offset
        line = self.text.count("\n", 0, offset) + 1
        column = offset - (self.text.rfind("\n", 0, offset) + 1) + 1
        return Position(line, column, offset)

    def _found(self) -> str:
        if self.pos >= len(self.text):
            return "end of input"
        return repr(self.text[self.pos])

    def _fail(self, message: str, offset: Optional[int] = None) -> ParseError:
        pos = self._position(offset)
        return ParseError(message, pos.line, pos.column, pos.offset, source=self.text)

    def _expected(self, what: str) -> ParseError:
        return self._fail(f"expected {what} but {self._found()} found")

    def _peek(self, token: str) -> bool:
        return self.text.startswith(token, self.pos)

    def _eof(self) -> bool:
        return self.pos >= len(self.text)

    # --- Insignificant input -----------------------------------------

    def _skip(self) -> None:
        text = self.text
        while self.pos < len(text):
            if text[self.pos].isspace():
                self.pos += 1
            elif self._peek("//"):
                end = text.find("\n", self.pos)
                self.pos = len(text) if end < 0 else end + 1
            elif self._peek("/*"):
                end = text.find("*/", self.pos + 2)
                if end < 0:
                    raise self._fail("unterminated block comment")
                self.pos = end + 2
            else:
                break

    # --- Productions -------------------------------------------------

    def parse(self) -> SpecNode:
        self._skip()
        node = self._directive()
        self._skip()
        if not self._eof():
            raise self._expected("end of input")
        return node

    def _directive(self) -> SpecNode:
        if self._peek("["):
            return self._split()
        return self._command()

    def _split(self) -> SplitNode:
        position = self._position()
        self.pos += 1
        self._skip()
        children = [self._directive()]
        orientation: Optional[Orientation] = None
        while True:
            self._skip()
            if self._peek("]"):
                break
            if self._peek(".."):
                sep = ".."
            elif self._peek(":"):
                sep = ":"
            elif len(children) < 2:
                raise self._expected('":" or ".."')
            else:
                raise self._expected('":", ".." or "]"')
            if orientation is None:
                orientation = _SEPARATORS[sep]
            elif _SEPARATORS[sep] is not orientation:
                raise self._fail(
                    f"mixed separators: {sep!r} in a "
                    f"{orientation.value} split"
                )
            self.pos += len(sep)
            self._skip()
            children.append(self._directive())
        if orientation is None:
            raise self._expected('":" or ".."')
        self.pos += 1
        return SplitNode(orientation, tuple(children), position=position)

    def _command(self) -> CommandNode:
        position = self._position()
        values: dict = {}
        while True:
            self._skip()
            if not self._peek("-"):
                break
            name, value = self._option()
            values[name] = value
        if self._eof() or not self._at_string():
            raise self._expected("command string")
        command = self._string()
        return CommandNode(command, CommandOptions(**values), position=position)

    def _option(self) -> Tuple[str, object]:
        start = self.pos
        match = _OPTION.match(self.text, self.pos)
        if match is None:
            raise self._expected("option")
        name = _OPTION_NAMES.get(match.group(0))
        if name is None:
            raise self._fail(f"unknown option {match.group(0)!r}", start)
        self.pos = match.end()
        if name in ("focus", "restart"):
            return name, True
        self._skip()
        if name == "delay":
            number_at = self.pos
            delay = self._number()
            if delay < 0:
                raise self._fail("delay must not be negative", number_at)
            return name, delay
        if self._eof() or not self._at_string():
            raise self._expected(f"string after {match.group(0)}")
        return name, self._string()

    def _number(self) -> Union[int, float]:
        match = _NUMBER.match(self.text, self.pos)
        end = match.end() if match else self.pos
        if match is None or (end < len(self.text) and _is_bareword_char(self.text[end])):
            raise self._expected("number")
        literal = match.group(0)
        self.pos = end
        digits = literal.lstrip("+-")
        if digits[:2].lower() in ("0b", "0o", "0x"):
            return int(literal, 0)
        if any(ch in digits for ch in ".eE"):
            return float(literal)
        return int(literal, 10)

    def _at_string(self) -> bool:
        ch = self.text[self.pos]
        return ch in "\"'" or _is_bareword_char(ch)

    def _string(self) -> str:
        ch = self.text[self.pos]
        if ch == '"':
            return self._dquoted()
        if ch == "'":
            return self._squoted()
        return self._bareword()

    def _dquoted(self) -> str:
        start = self.pos
        self.pos += 1
        out = []
        text = self.text
        while self.pos < len(text):
            ch = text[self.pos]
            if ch == '"':
                self.pos += 1
                return "".join(out)
            if ch != "\\":
                out.append(ch)
                self.pos += 1
                continue
            escape_at = self.pos
            self.pos += 1
            if self._eof():
                break
            code = text[self.pos]
            self.pos += 1
            if code in _ESCAPES:
                out.append(_ESCAPES[code])
            elif code in "xu":
                width = 2 if code == "x" else 4
                digits = text[self.pos:self.pos + width]
                if len(digits) != width or not all(c in "0123456789abcdefABCDEF" for c in digits):
                    raise self._fail(f"invalid \\{code} escape", escape_at)
                out.append(chr(int(digits, 16)))
                self.pos += width
            else:
                raise self._fail(f"invalid escape sequence \\{code}", escape_at)
        raise self._fail("unterminated double-quoted string", start)

    def _squoted(self) -> str:
        start = self.pos
        self.pos += 1
        out = []
        text = self.text
        while self.pos < len(text):
            if text.startswith("\\'", self.pos):
                out.append("'")
                self.pos += 2
                continue
            ch = text[self.pos]
            self.pos += 1
            if ch == "'":
                return "".join(out)
            out.append(ch)
        raise self._fail("unterminated single-quoted string", start)

    def _bareword(self) -> str:
        start = self.pos
        while self.pos < len(self.text) and _is_bareword_char(self.text[self.pos]):
            self.pos += 1
        return self.text[start:self.pos]


def parse_spec(text: str) -> SpecNode:
    """Parse layout spec text into a tree.

    Raises:
        ParseError: on any syntax violation, with line/column/offset.
    """
    return _Parser(text).parse()
