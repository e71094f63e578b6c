"""Decoding of osascript results into plain Python values.

osascript runs with ``-s s`` so results come back in AppleScript source form
(``{"a", {"b", 3}}``). The text is parsed into a tree of ``ResponseNode``
objects, then decoded recursively:

1. a node with a nonzero item count becomes a ``list`` of its decoded
   children, children with no value dropped;
2. otherwise a node with a string representation becomes that ``str``,
   verbatim, never coerced to a number or boolean;
3. otherwise the result is ``None``.

Numeric interpretation is left to the caller, for fields it knows are numeric.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

DecodedValue = str | list["DecodedValue"] | None

MISSING_VALUE = "missing value"

_RECORD_KEY = re.compile(r"(?:\|[^|]*\||«[^»]*»|[A-Za-z_][A-Za-z0-9_ ]*?)\s*:(?!=)")
_DATE_LITERAL = re.compile(r'^date\s+"(.*)"$', re.DOTALL)
_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", '"': '"', "\\": "\\"}


class ResultDecodeError(ValueError):
    """Raised when osascript output is not valid AppleScript source form."""


@dataclass(frozen=True, slots=True)
class ResponseNode:
    """One node of a response tree.

    A node presents either child items (lists and records) or a scalar
    string representation (strings, numbers, booleans, dates, constants and
    object specifiers, all as their literal text). Empty lists and
    ``missing value`` present neither.
    """

    items: tuple[ResponseNode, ...] = field(default=())
    string_value: str | None = None

    @property
    def count(self) -> int:
        """Number of child items."""
        return len(self.items)


class _SourceFormParser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def parse(self) -> ResponseNode:
        self._skip_ws()
        if self.pos >= len(self.text):
            return ResponseNode()
        node = self._value()
        self._skip_ws()
        if self.pos < len(self.text):
            msg = f"Unexpected trailing text at offset {self.pos}: {self.text[self.pos : self.pos + 20]!r}"
            raise ResultDecodeError(msg)
        return node

    def _skip_ws(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def _value(self) -> ResponseNode:
        self._skip_ws()
        if self.pos >= len(self.text):
            msg = "Unexpected end of output"
            raise ResultDecodeError(msg)
        char = self.text[self.pos]
        if char == "{":
            return self._list()
        if char == '"':
            start = self.pos
            value = self._string()
            if self._at_separator():
                return ResponseNode(string_value=value)
            self.pos = start
        return self._bare()

    def _at_separator(self) -> bool:
        self._skip_ws()
        return self.pos >= len(self.text) or self.text[self.pos] in ",}"

    def _list(self) -> ResponseNode:
        self.pos += 1  # {
        items: list[ResponseNode] = []
        self._skip_ws()
        if self._peek() == "}":
            self.pos += 1
            return ResponseNode()
        while True:
            self._skip_ws()
            if key := _RECORD_KEY.match(self.text, self.pos):
                self.pos = key.end()
            items.append(self._value())
            self._skip_ws()
            char = self._peek()
            if char == ",":
                self.pos += 1
            elif char == "}":
                self.pos += 1
                return ResponseNode(items=tuple(items))
            else:
                msg = f"Expected ',' or '}}' at offset {self.pos}"
                raise ResultDecodeError(msg)

    def _string(self) -> str:
        self.pos += 1  # opening quote
        chars: list[str] = []
        while self.pos < len(self.text):
            char = self.text[self.pos]
            if char == "\\" and self.pos + 1 < len(self.text):
                following = self.text[self.pos + 1]
                chars.append(_ESCAPES.get(following, f"\\{following}"))
                self.pos += 2
                continue
            if char == '"':
                self.pos += 1
                return "".join(chars)
            chars.append(char)
            self.pos += 1
        msg = "Unterminated string literal"
        raise ResultDecodeError(msg)

    def _bare(self) -> ResponseNode:
        """Read a run of words up to the next top-level separator."""
        start = self.pos
        while self.pos < len(self.text):
            char = self.text[self.pos]
            if char in ",}":
                break
            if char == "{":
                msg = f"Unexpected '{{' inside value at offset {self.pos}"
                raise ResultDecodeError(msg)
            if char == '"':
                self._string()
                continue
            if char == "«":
                end = self.text.find("»", self.pos)
                if end < 0:
                    msg = "Unterminated raw code literal"
                    raise ResultDecodeError(msg)
                self.pos = end + 1
                continue
            self.pos += 1
        text = self.text[start : self.pos].strip()
        if not text:
            msg = f"Empty value at offset {start}"
            raise ResultDecodeError(msg)
        if text == MISSING_VALUE:
            return ResponseNode()
        if date := _DATE_LITERAL.match(text):
            return ResponseNode(string_value=_SourceFormParser(f'"{date.group(1)}"')._string())
        return ResponseNode(string_value=text)

    def _peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""


class ResultDecoder:
    """Parses osascript source-form output and decodes it."""

    @staticmethod
    def parse(output: str) -> ResponseNode:
        """Parse osascript output into a response tree.

        Raises:
            ResultDecodeError: If the output is not valid source form

        """
        return _SourceFormParser(output.rstrip("\n")).parse()

    def decode(self, node: ResponseNode) -> DecodedValue:
        """Decode a response node by the count, then string, then nothing rule."""
        if node.count > 0:
            return [child for child in (self.decode(item) for item in node.items) if child is not None]
        if node.string_value is not None:
            return node.string_value
        return None

    def decode_output(self, output: str) -> DecodedValue:
        """Parse and decode osascript output in one step."""
        return self.decode(self.parse(output))


def as_text(value: DecodedValue) -> str | None:
    """Read a scalar field.

    A plain string and a one-element list holding that string give the same
    result. Anything else has no scalar reading.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, list) and len(value) == 1:
        return as_text(value[0])
    return None


def as_list(value: DecodedValue) -> list[DecodedValue]:
    """Read a list field; ``None`` is an empty list and a scalar is a one-element list."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def as_text_list(value: DecodedValue) -> list[str]:
    """Read a list-of-strings field, skipping items that have no scalar reading.

    An empty string at the top level means an empty list.
    """
    if value == "":
        return []
    return [text for text in (as_text(item) for item in as_list(value)) if text is not None]
