"""Reader and writer for Erlang terms in their textual form.

Only the subset found in ``.app``, ``.rel`` and ``sys.config`` files is
supported: atoms, strings, numbers, character literals, tuples, proper
lists, binaries and maps. Strings decode to ``str`` and atoms to
:class:`Atom`, so the two stay distinguishable after parsing.
"""
from __future__ import annotations

import re
from pathlib import Path
from typing import Any, List, Tuple

from relwrap.errors import TermSyntaxError


class Atom(str):
    __slots__ = ()

    def __repr__(self) -> str:
        return f"Atom({str.__repr__(self)})"


_BARE_ATOM = re.compile(r"[a-z][A-Za-z0-9_@]*\Z")
_RESERVED = frozenset(
    {
        "after", "and", "andalso", "band", "begin", "bnot", "bor", "bsl",
        "bsr", "bxor", "case", "catch", "cond", "div", "end", "fun", "if",
        "let", "not", "of", "or", "orelse", "receive", "rem", "try", "when",
        "xor", "maybe", "else",
    }
)

_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "s": " ",
    "b": "\b",
    "f": "\f",
    "e": "\x1b",
    "v": "\v",
    "d": "\x7f",
}
_REVERSE_ESCAPES = {
    "\n": "\\n",
    "\t": "\\t",
    "\r": "\\r",
    "\b": "\\b",
    "\f": "\\f",
    "\x1b": "\\e",
    "\v": "\\v",
    "\x7f": "\\d",
    "\\": "\\\\",
}


def parse_terms(text: str) -> List[Any]:
    """Parse every dot-terminated term in ``text``."""
    parser = _Parser(text)
    terms: List[Any] = []
    while not parser.at_end():
        terms.append(parser.term())
        parser.expect(".")
    return terms


def parse_term(text: str) -> Any:
    """Parse exactly one term; the trailing dot is optional."""
    parser = _Parser(text)
    if parser.at_end():
        raise TermSyntaxError("Expected a term but found no input")
    term = parser.term()
    if parser.peek() == ".":
        parser.next()
    if not parser.at_end():
        raise TermSyntaxError(
            f"Unexpected input after term at offset {parser.offset}"
        )
    return term


def consult(path: Path) -> List[Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise TermSyntaxError(f"Failed to read term file: {path}") from exc
    return parse_terms(text)


def format_term(term: Any) -> str:
    if isinstance(term, Atom):
        return _format_atom(term)
    if isinstance(term, str):
        return '"' + _escape(term, '"') + '"'
    if isinstance(term, bool):
        return "true" if term else "false"
    if term is None:
        return "undefined"
    if isinstance(term, (int, float)):
        return repr(term)
    if isinstance(term, (bytes, bytearray)):
        try:
            decoded = bytes(term).decode("utf-8")
        except UnicodeDecodeError:
            return "<<" + ",".join(str(b) for b in term) + ">>"
        suffix = "" if decoded.isascii() else "/utf8"
        return '<<"' + _escape(decoded, '"') + '"' + suffix + ">>"
    if isinstance(term, tuple):
        return "{" + ",".join(format_term(item) for item in term) + "}"
    if isinstance(term, list):
        return "[" + ",".join(format_term(item) for item in term) + "]"
    if isinstance(term, dict):
        pairs = (
            f"{format_term(key)} => {format_term(value)}"
            for key, value in term.items()
        )
        return "#{" + ",".join(pairs) + "}"
    raise TypeError(f"Cannot format {type(term).__name__} as an Erlang term")


def _format_atom(name: str) -> str:
    if _BARE_ATOM.match(name) and name not in _RESERVED:
        return name
    return "'" + _escape(name, "'") + "'"


def _escape(text: str, quote: str) -> str:
    out = []
    for char in text:
        if char == quote:
            out.append("\\" + quote)
        elif char in _REVERSE_ESCAPES:
            out.append(_REVERSE_ESCAPES[char])
        else:
            out.append(char)
    return "".join(out)


class _Parser:
    def __init__(self, text: str) -> None:
        self.tokens = _tokenize(text)
        self.index = 0

    @property
    def offset(self) -> int:
        if self.index < len(self.tokens):
            return self.tokens[self.index][2]
        return -1

    def at_end(self) -> bool:
        return self.index >= len(self.tokens)

    def peek(self) -> Any:
        if self.at_end():
            return None
        kind, value, _ = self.tokens[self.index]
        return value if kind == "punct" else None

    def next(self) -> Tuple[str, Any, int]:
        if self.at_end():
            raise TermSyntaxError("Unexpected end of input")
        token = self.tokens[self.index]
        self.index += 1
        return token

    def expect(self, punct: str) -> None:
        kind, value, pos = self.next()
        if kind != "punct" or value != punct:
            raise TermSyntaxError(
                f"Expected '{punct}' at offset {pos}, found {value!r}"
            )

    def term(self) -> Any:
        kind, value, pos = self.next()

        if kind in ("atom", "string", "number"):
            if kind == "string":
                # Adjacent string literals concatenate.
                parts = [value]
                while not self.at_end() and self.tokens[self.index][0] == "string":
                    parts.append(self.next()[1])
                return "".join(parts)
            return value

        if kind != "punct":
            raise TermSyntaxError(f"Unexpected token at offset {pos}")

        if value == "{":
            return tuple(self._sequence("}"))
        if value == "[":
            return self._list()
        if value == "<<":
            return self._binary()
        if value == "#":
            self.expect("{")
            return self._map()
        if value == "-":
            kind, number, _ = self.next()
            if kind != "number":
                raise TermSyntaxError(f"Expected a number after '-' at offset {pos}")
            return -number

        raise TermSyntaxError(f"Unexpected '{value}' at offset {pos}")

    def _sequence(self, closing: str) -> List[Any]:
        items: List[Any] = []
        if self.peek() == closing:
            self.next()
            return items
        while True:
            items.append(self.term())
            kind, value, pos = self.next()
            if kind == "punct" and value == closing:
                return items
            if kind != "punct" or value != ",":
                raise TermSyntaxError(
                    f"Expected ',' or '{closing}' at offset {pos}"
                )

    def _list(self) -> List[Any]:
        items: List[Any] = []
        if self.peek() == "]":
            self.next()
            return items
        while True:
            items.append(self.term())
            kind, value, pos = self.next()
            if kind == "punct" and value == "]":
                return items
            if kind == "punct" and value == "|":
                tail = self.term()
                self.expect("]")
                if not isinstance(tail, list):
                    raise TermSyntaxError(
                        f"Improper list at offset {pos} is not supported"
                    )
                return items + tail
            if kind != "punct" or value != ",":
                raise TermSyntaxError(f"Expected ',' or ']' at offset {pos}")

    def _binary(self) -> bytes:
        data = bytearray()
        if self.peek() == ">>":
            self.next()
            return bytes(data)
        while True:
            kind, value, pos = self.next()
            if kind == "string":
                data.extend(value.encode("utf-8"))
            elif kind == "number" and isinstance(value, int) and 0 <= value < 256:
                data.append(value)
            else:
                raise TermSyntaxError(f"Unsupported binary segment at offset {pos}")
            if self.peek() == "/":
                self.next()
                self.next()
            kind, value, pos = self.next()
            if kind == "punct" and value == ">>":
                return bytes(data)
            if kind != "punct" or value != ",":
                raise TermSyntaxError(f"Expected ',' or '>>' at offset {pos}")

    def _map(self) -> dict:
        result: dict = {}
        if self.peek() == "}":
            self.next()
            return result
        while True:
            key = self.term()
            self.expect("=>")
            result[_hashable(key)] = self.term()
            kind, value, pos = self.next()
            if kind == "punct" and value == "}":
                return result
            if kind != "punct" or value != ",":
                raise TermSyntaxError(f"Expected ',' or '}}' at offset {pos}")


def _hashable(term: Any) -> Any:
    if isinstance(term, list):
        return tuple(_hashable(item) for item in term)
    if isinstance(term, tuple):
        return tuple(_hashable(item) for item in term)
    if isinstance(term, dict):
        raise TermSyntaxError("Maps cannot be used as map keys")
    return term


_NUMBER = re.compile(
    r"(?P<radix>\d+#[0-9A-Za-z]+)"
    r"|(?P<float>\d+\.\d+(?:[eE][+-]?\d+)?)"
    r"|(?P<int>\d+)"
)
_NAME = re.compile(r"[a-z][A-Za-z0-9_@]*")


def _tokenize(text: str) -> List[Tuple[str, Any, int]]:
    tokens: List[Tuple[str, Any, int]] = []
    pos = 0
    length = len(text)

    while pos < length:
        char = text[pos]

        if char.isspace():
            pos += 1
            continue

        if char == "%":
            newline = text.find("\n", pos)
            pos = length if newline == -1 else newline + 1
            continue

        if char == '"':
            value, pos_end = _read_quoted(text, pos, '"')
            tokens.append(("string", value, pos))
            pos = pos_end
            continue

        if char == "'":
            value, pos_end = _read_quoted(text, pos, "'")
            tokens.append(("atom", Atom(value), pos))
            pos = pos_end
            continue

        if char == "$":
            if pos + 1 >= length:
                raise TermSyntaxError(f"Incomplete character literal at offset {pos}")
            if text[pos + 1] == "\\":
                value, consumed = _read_escape(text, pos + 2)
                tokens.append(("number", ord(value), pos))
                pos = pos + 2 + consumed
            else:
                tokens.append(("number", ord(text[pos + 1]), pos))
                pos += 2
            continue

        if char.isdigit():
            match = _NUMBER.match(text, pos)
            assert match is not None
            if match.group("radix"):
                base, digits = match.group("radix").split("#", 1)
                try:
                    value = int(digits, int(base))
                except ValueError as exc:
                    raise TermSyntaxError(
                        f"Invalid radix number at offset {pos}"
                    ) from exc
            elif match.group("float"):
                value = float(match.group("float"))
            else:
                try:
                    value = int(match.group("int"))
                except ValueError as exc:
                    raise TermSyntaxError(
                        f"Integer too long at offset {pos}"
                    ) from exc
            tokens.append(("number", value, pos))
            pos = match.end()
            continue

        if char.islower():
            match = _NAME.match(text, pos)
            assert match is not None
            tokens.append(("atom", Atom(match.group(0)), pos))
            pos = match.end()
            continue

        two = text[pos:pos + 2]
        if two in ("<<", ">>", "=>"):
            tokens.append(("punct", two, pos))
            pos += 2
            continue

        if char in "{}[],|.#-/":
            tokens.append(("punct", char, pos))
            pos += 1
            continue

        if char.isupper() or char == "_":
            raise TermSyntaxError(
                f"Variables are not allowed in terms (offset {pos})"
            )

        raise TermSyntaxError(f"Unexpected character {char!r} at offset {pos}")

    return tokens


def _read_quoted(text: str, start: int, quote: str) -> Tuple[str, int]:
    out = []
    pos = start + 1
    while pos < len(text):
        char = text[pos]
        if char == quote:
            return "".join(out), pos + 1
        if char == "\\":
            value, consumed = _read_escape(text, pos + 1)
            out.append(value)
            pos += 1 + consumed
            continue
        out.append(char)
        pos += 1
    raise TermSyntaxError(f"Unterminated quoted text starting at offset {start}")


def _read_escape(text: str, pos: int) -> Tuple[str, int]:
    if pos >= len(text):
        raise TermSyntaxError("Unterminated escape sequence")
    char = text[pos]
    if char in "01234567":
        end = pos
        while end < len(text) and end - pos < 3 and text[end] in "01234567":
            end += 1
        return chr(int(text[pos:end], 8)), end - pos
    if char == "x":
        if pos + 1 < len(text) and text[pos + 1] == "{":
            close = text.find("}", pos + 2)
            if close == -1:
                raise TermSyntaxError("Unterminated \\x{...} escape")
            return _hex_char(text[pos + 2:close], pos), close - pos + 1
        return _hex_char(text[pos + 1:pos + 3], pos), 3
    if char == "^" and pos + 1 < len(text):
        return chr(ord(text[pos + 1]) % 32), 2
    return _ESCAPES.get(char, char), 1


def _hex_char(digits: str, pos: int) -> str:
    try:
        code = int(digits, 16)
        if 0xD800 <= code <= 0xDFFF:
            raise ValueError("surrogate code point")
        return chr(code)
    except (ValueError, OverflowError) as exc:
        raise TermSyntaxError(
            f"Invalid \\x escape {digits!r} at offset {pos}"
        ) from exc
