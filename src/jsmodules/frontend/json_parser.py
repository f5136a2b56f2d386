"""
JSON Parser

Minimal recursive-descent reader for package.json files. Produces a tagged
JsonValue tree so exports/imports maps keep their key order and their exact
node kinds (a string target, an array of fallbacks, a condition object).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from ..shared.errors import JsonParseError
from ..utils.config import MAX_JSON_DEPTH

_WHITESPACE = " \t\n\r\f\v"
_NUMBER_CHARS = "0123456789.eE+-"
_SIMPLE_ESCAPES = {
    '"': '"',
    "\\": "\\",
    "/": "/",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
}


class JsonKind(Enum):
    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"


@dataclass(frozen=True)
class JsonValue:
    """One node of a parsed JSON document."""
    kind: JsonKind
    value: Any = None

    @property
    def is_string(self) -> bool:
        return self.kind is JsonKind.STRING

    @property
    def is_array(self) -> bool:
        return self.kind is JsonKind.ARRAY

    @property
    def is_object(self) -> bool:
        return self.kind is JsonKind.OBJECT

    def get(self, key: str) -> Optional["JsonValue"]:
        """Member lookup on an object node; None for other kinds."""
        if self.kind is not JsonKind.OBJECT:
            return None
        return self.value.get(key)

    def get_string(self, key: str) -> Optional[str]:
        member = self.get(key)
        if member is not None and member.is_string:
            return member.value
        return None

    def keys(self) -> List[str]:
        return list(self.value.keys()) if self.kind is JsonKind.OBJECT else []

    def items(self) -> Iterator[Tuple[str, "JsonValue"]]:
        if self.kind is JsonKind.OBJECT:
            yield from self.value.items()

    def __iter__(self) -> Iterator["JsonValue"]:
        if self.kind is JsonKind.ARRAY:
            yield from self.value

    def to_python(self) -> Any:
        """Plain dict/list/str/float/bool/None rendition of the tree."""
        if self.kind is JsonKind.ARRAY:
            return [item.to_python() for item in self.value]
        if self.kind is JsonKind.OBJECT:
            return {key: member.to_python() for key, member in self.value.items()}
        return self.value


NULL = JsonValue(JsonKind.NULL)


class JsonParser:
    """
    Cursor-based parser over an in-memory string.

    Whitespace skipping is ASCII-only, numbers are read as floats, and any
    content after the top-level value is rejected. Objects and arrays nest at most
    MAX_JSON_DEPTH levels deep.
    """

    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.depth = 0

    def parse(self) -> JsonValue:
        value = self._parse_value()
        self._skip_whitespace()
        if self.pos != len(self.text):
            self._fail("Trailing characters in JSON")
        return value

    def _fail(self, message: str) -> None:
        raise JsonParseError(f"{message} at offset {self.pos}", self.pos)

    def _skip_whitespace(self) -> None:
        text = self.text
        while self.pos < len(text) and text[self.pos] in _WHITESPACE:
            self.pos += 1

    def _parse_value(self) -> JsonValue:
        self._skip_whitespace()
        if self.pos >= len(self.text):
            self._fail("Unexpected end of JSON")

        c = self.text[self.pos]
        if c == '"':
            return JsonValue(JsonKind.STRING, self._parse_string())
        if c in "{[":
            return self._parse_container(c)
        if self.text.startswith("true", self.pos):
            self.pos += 4
            return JsonValue(JsonKind.BOOL, True)
        if self.text.startswith("false", self.pos):
            self.pos += 5
            return JsonValue(JsonKind.BOOL, False)
        if self.text.startswith("null", self.pos):
            self.pos += 4
            return NULL
        if c == "-" or c in "0123456789":
            return self._parse_number()

        self._fail("Invalid JSON value")

    def _parse_container(self, opener: str) -> JsonValue:
        if self.depth >= MAX_JSON_DEPTH:
            self._fail("JSON nested too deeply")
        self.depth += 1
        try:
            return self._parse_object() if opener == "{" else self._parse_array()
        finally:
            self.depth -= 1

    def _parse_number(self) -> JsonValue:
        start = self.pos
        self.pos += 1
        while self.pos < len(self.text) and self.text[self.pos] in _NUMBER_CHARS:
            self.pos += 1
        literal = self.text[start:self.pos]
        try:
            return JsonValue(JsonKind.NUMBER, float(literal))
        except ValueError:
            self.pos = start
            self._fail(f"Invalid number in JSON: {literal!r}")

    def _parse_object(self) -> JsonValue:
        self.pos += 1  # '{'
        members: Dict[str, JsonValue] = {}
        self._skip_whitespace()
        if self.pos < len(self.text) and self.text[self.pos] == "}":
            self.pos += 1
            return JsonValue(JsonKind.OBJECT, members)

        while self.pos < len(self.text):
            self._skip_whitespace()
            if self.pos >= len(self.text) or self.text[self.pos] != '"':
                self._fail("Expected string key in object")
            key = self._parse_string()
            self._skip_whitespace()
            if self.pos >= len(self.text) or self.text[self.pos] != ":":
                self._fail("Expected ':' in object")
            self.pos += 1
            members[key] = self._parse_value()
            self._skip_whitespace()
            if self.pos >= len(self.text):
                break
            if self.text[self.pos] == "}":
                self.pos += 1
                return JsonValue(JsonKind.OBJECT, members)
            if self.text[self.pos] != ",":
                self._fail("Expected ',' in object")
            self.pos += 1

        self._fail("Unterminated object")

    def _parse_array(self) -> JsonValue:
        self.pos += 1  # '['
        items: List[JsonValue] = []
        self._skip_whitespace()
        if self.pos < len(self.text) and self.text[self.pos] == "]":
            self.pos += 1
            return JsonValue(JsonKind.ARRAY, items)

        while self.pos < len(self.text):
            items.append(self._parse_value())
            self._skip_whitespace()
            if self.pos >= len(self.text):
                break
            if self.text[self.pos] == "]":
                self.pos += 1
                return JsonValue(JsonKind.ARRAY, items)
            if self.text[self.pos] != ",":
                self._fail("Expected ',' in array")
            self.pos += 1

        self._fail("Unterminated array")

    def _parse_string(self) -> str:
        self.pos += 1  # opening quote
        text = self.text
        out: List[str] = []
        while self.pos < len(text):
            c = text[self.pos]
            self.pos += 1
            if c == '"':
                return "".join(out)
            if c != "\\":
                out.append(c)
                continue
            if self.pos >= len(text):
                self._fail("Invalid escape in string")
            esc = text[self.pos]
            self.pos += 1
            if esc in _SIMPLE_ESCAPES:
                out.append(_SIMPLE_ESCAPES[esc])
            elif esc == "u":
                out.append(self._parse_unicode_escape())
            else:
                self.pos -= 1
                self._fail("Invalid escape in string")
        self._fail("Unterminated string")

    def _read_hex4(self) -> int:
        digits = self.text[self.pos:self.pos + 4]
        if len(digits) != 4 or any(d not in "0123456789abcdefABCDEF" for d in digits):
            self._fail("Invalid unicode escape")
        self.pos += 4
        return int(digits, 16)

    def _parse_unicode_escape(self) -> str:
        code_point = self._read_hex4()
        # Combine a UTF-16 surrogate pair into one code point
        if 0xD800 <= code_point <= 0xDBFF and self.text.startswith("\\u", self.pos):
            saved = self.pos
            self.pos += 2
            low = self._read_hex4()
            if 0xDC00 <= low <= 0xDFFF:
                return chr(0x10000 + ((code_point - 0xD800) << 10) + (low - 0xDC00))
            self.pos = saved
        return chr(code_point)


def parse_json(text: str) -> JsonValue:
    """Parse a complete JSON document; raises JsonParseError."""
    return JsonParser(text).parse()
