"""Erlang external term format (``term_to_binary``/``binary_to_term``).

Covers the tags needed for release manifests and small payloads: atoms,
integers, tuples, lists, strings, binaries and maps.
"""
from __future__ import annotations

import struct
from typing import Any, Tuple

from relwrap.erlang.terms import Atom
from relwrap.errors import TermFormatError

VERSION = 131

SMALL_INTEGER_EXT = 97
INTEGER_EXT = 98
ATOM_EXT = 100
SMALL_TUPLE_EXT = 104
LARGE_TUPLE_EXT = 105
NIL_EXT = 106
STRING_EXT = 107
LIST_EXT = 108
BINARY_EXT = 109
SMALL_BIG_EXT = 110
SMALL_ATOM_EXT = 115
MAP_EXT = 116
ATOM_UTF8_EXT = 118
SMALL_ATOM_UTF8_EXT = 119

# Erlang term order for the types we emit: number < atom < tuple < map < list < binary.
_TYPE_RANK = {int: 0, Atom: 1, tuple: 2, dict: 3, list: 4, str: 4, bytes: 5}


def encode(term: Any) -> bytes:
    out = bytearray([VERSION])
    _encode(term, out)
    return bytes(out)


def decode(data: bytes) -> Any:
    if not data or data[0] != VERSION:
        raise TermFormatError("Not an external term format payload")
    term, offset = _decode(data, 1)
    if offset != len(data):
        raise TermFormatError(
            f"Trailing data after term ({len(data) - offset} bytes)"
        )
    return term


def _encode(term: Any, out: bytearray) -> None:
    if isinstance(term, bool):
        _encode_atom("true" if term else "false", out)
    elif term is None:
        _encode_atom("undefined", out)
    elif isinstance(term, Atom):
        _encode_atom(term, out)
    elif isinstance(term, int):
        _encode_int(term, out)
    elif isinstance(term, str):
        _encode_string(term, out)
    elif isinstance(term, (bytes, bytearray)):
        out.append(BINARY_EXT)
        out.extend(struct.pack(">I", len(term)))
        out.extend(term)
    elif isinstance(term, tuple):
        if len(term) < 256:
            out.append(SMALL_TUPLE_EXT)
            out.append(len(term))
        else:
            out.append(LARGE_TUPLE_EXT)
            out.extend(struct.pack(">I", len(term)))
        for item in term:
            _encode(item, out)
    elif isinstance(term, list):
        if not term:
            out.append(NIL_EXT)
            return
        out.append(LIST_EXT)
        out.extend(struct.pack(">I", len(term)))
        for item in term:
            _encode(item, out)
        out.append(NIL_EXT)
    elif isinstance(term, dict):
        out.append(MAP_EXT)
        out.extend(struct.pack(">I", len(term)))
        for key, value in sorted(term.items(), key=_map_key_order):
            _encode(key, out)
            _encode(value, out)
    else:
        raise TermFormatError(
            f"Cannot encode {type(term).__name__} in external term format"
        )


def _map_key_order(item: Tuple[Any, Any]) -> Tuple[int, str]:
    key = item[0]
    rank = _TYPE_RANK.get(type(key), 6)
    return rank, str(key)


def _encode_atom(name: str, out: bytearray) -> None:
    raw = name.encode("utf-8")
    if len(raw) < 256:
        out.append(SMALL_ATOM_UTF8_EXT)
        out.append(len(raw))
    elif len(raw) < 65536:
        out.append(ATOM_UTF8_EXT)
        out.extend(struct.pack(">H", len(raw)))
    else:
        raise TermFormatError(f"Atom too long: {name[:32]}...")
    out.extend(raw)


def _encode_int(value: int, out: bytearray) -> None:
    if 0 <= value < 256:
        out.append(SMALL_INTEGER_EXT)
        out.append(value)
    elif -(2 ** 31) <= value < 2 ** 31:
        out.append(INTEGER_EXT)
        out.extend(struct.pack(">i", value))
    else:
        magnitude = abs(value)
        digits = magnitude.to_bytes((magnitude.bit_length() + 7) // 8, "little")
        if len(digits) > 255:
            raise TermFormatError("Integer too large to encode")
        out.append(SMALL_BIG_EXT)
        out.append(len(digits))
        out.append(1 if value < 0 else 0)
        out.extend(digits)


def _encode_string(text: str, out: bytearray) -> None:
    codepoints = [ord(char) for char in text]
    if not codepoints:
        out.append(NIL_EXT)
    elif len(codepoints) < 65536 and all(cp < 256 for cp in codepoints):
        out.append(STRING_EXT)
        out.extend(struct.pack(">H", len(codepoints)))
        out.extend(bytes(codepoints))
    else:
        _encode(codepoints, out)


def _need(data: bytes, offset: int, size: int) -> None:
    if offset + size > len(data):
        raise TermFormatError("Truncated external term format payload")


def _decode(data: bytes, offset: int) -> Tuple[Any, int]:
    _need(data, offset, 1)
    tag = data[offset]
    offset += 1

    if tag == SMALL_INTEGER_EXT:
        _need(data, offset, 1)
        return data[offset], offset + 1

    if tag == INTEGER_EXT:
        _need(data, offset, 4)
        return struct.unpack_from(">i", data, offset)[0], offset + 4

    if tag == SMALL_BIG_EXT:
        _need(data, offset, 2)
        size, sign = data[offset], data[offset + 1]
        offset += 2
        _need(data, offset, size)
        value = int.from_bytes(data[offset:offset + size], "little")
        return (-value if sign else value), offset + size

    if tag in (ATOM_EXT, ATOM_UTF8_EXT, SMALL_ATOM_EXT, SMALL_ATOM_UTF8_EXT):
        if tag in (ATOM_EXT, ATOM_UTF8_EXT):
            _need(data, offset, 2)
            size = struct.unpack_from(">H", data, offset)[0]
            offset += 2
        else:
            _need(data, offset, 1)
            size = data[offset]
            offset += 1
        _need(data, offset, size)
        encoding = "latin-1" if tag in (ATOM_EXT, SMALL_ATOM_EXT) else "utf-8"
        try:
            name = data[offset:offset + size].decode(encoding)
        except UnicodeDecodeError as exc:
            raise TermFormatError(f"Invalid atom text at offset {offset}") from exc
        return Atom(name), offset + size

    if tag in (SMALL_TUPLE_EXT, LARGE_TUPLE_EXT):
        if tag == SMALL_TUPLE_EXT:
            _need(data, offset, 1)
            arity = data[offset]
            offset += 1
        else:
            _need(data, offset, 4)
            arity = struct.unpack_from(">I", data, offset)[0]
            offset += 4
        items = []
        for _ in range(arity):
            item, offset = _decode(data, offset)
            items.append(item)
        return tuple(items), offset

    if tag == NIL_EXT:
        return [], offset

    if tag == STRING_EXT:
        _need(data, offset, 2)
        size = struct.unpack_from(">H", data, offset)[0]
        offset += 2
        _need(data, offset, size)
        return data[offset:offset + size].decode("latin-1"), offset + size

    if tag == LIST_EXT:
        _need(data, offset, 4)
        length = struct.unpack_from(">I", data, offset)[0]
        offset += 4
        items = []
        for _ in range(length):
            item, offset = _decode(data, offset)
            items.append(item)
        tail, offset = _decode(data, offset)
        if tail != []:
            raise TermFormatError("Improper lists are not supported")
        return items, offset

    if tag == BINARY_EXT:
        _need(data, offset, 4)
        size = struct.unpack_from(">I", data, offset)[0]
        offset += 4
        _need(data, offset, size)
        return bytes(data[offset:offset + size]), offset + size

    if tag == MAP_EXT:
        _need(data, offset, 4)
        arity = struct.unpack_from(">I", data, offset)[0]
        offset += 4
        result = {}
        for _ in range(arity):
            key, offset = _decode(data, offset)
            value, offset = _decode(data, offset)
            if isinstance(key, list):
                key = tuple(key)
            try:
                result[key] = value
            except TypeError as exc:
                raise TermFormatError(f"Unsupported map key: {key!r}") from exc
        return result, offset

    raise TermFormatError(f"Unsupported external term tag: {tag}")
