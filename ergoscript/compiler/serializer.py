"""Binary encoding of ErgoTree values, constants and trees.

Integers use ZigZag followed by VLQ (7 bits per byte, least significant
group first); lengths and indices use plain VLQ.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple

from .types import SType, fits, serialize_type

logger = logging.getLogger(__name__)

GROUP_ELEMENT_SIZE = 33
PROVE_DLOG_CODE = 0xCD
PROVE_DH_TUPLE_CODE = 0xCE
CONSTANT_PLACEHOLDER_CODE = 0x73

# ErgoTree header bits.
HEADER_CONSTANT_SEGREGATION = 0x10
HEADER_SIZE_FLAG = 0x08
MAX_TREE_VERSION = 7


@dataclass(frozen=True)
class ProveDlog:
    """``proveDlog(g)``: knowledge of the discrete log of the point ``g``."""

    point: bytes


@dataclass(frozen=True)
class ProveDHTuple:
    g: bytes
    h: bytes
    u: bytes
    v: bytes


@dataclass(frozen=True)
class OptionValue:
    """Value of an ``Option`` constant; ``defined`` is false for ``None``."""

    value: Any = None
    defined: bool = True


def encode_vlq(value: int) -> bytes:
    if value < 0:
        raise ValueError(f"VLQ values must be non-negative, got {value}")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def decode_vlq(data: bytes, pos: int = 0) -> Tuple[int, int]:
    result = 0
    shift = 0
    while True:
        byte = data[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result, pos
        shift += 7


def zigzag(value: int, bits: int = 64) -> int:
    return (value << 1) ^ (value >> (bits - 1))


def bigint_bytes(value: int) -> bytes:
    """Minimal two's-complement big-endian encoding."""
    length = (value + (value < 0)).bit_length() // 8 + 1
    return value.to_bytes(length, "big", signed=True)


class SigmaByteWriter:
    """Accumulates the bytes of a serialized tree.

    Constants met while writing are moved into :attr:`constants` and
    replaced by placeholders, so the emitted tree never embeds literal data.
    """

    def __init__(self, constants: Optional["ConstantStore"] = None):
        self.buffer = bytearray()
        self.constants = constants if constants is not None else ConstantStore()

    def put_byte(self, value: int) -> "SigmaByteWriter":
        self.buffer.append(value & 0xFF)
        return self

    def put_bytes(self, data: bytes) -> "SigmaByteWriter":
        self.buffer.extend(data)
        return self

    def put_uint(self, value: int) -> "SigmaByteWriter":
        self.buffer.extend(encode_vlq(value))
        return self

    def put_int(self, value: int) -> "SigmaByteWriter":
        return self.put_uint(zigzag(value, 32))

    def put_long(self, value: int) -> "SigmaByteWriter":
        return self.put_uint(zigzag(value, 64))

    def put_bits(self, bits: Sequence[bool]) -> "SigmaByteWriter":
        for start in range(0, len(bits), 8):
            byte = 0
            for offset, bit in enumerate(bits[start:start + 8]):
                if bit:
                    byte |= 1 << offset
            self.buffer.append(byte)
        return self

    def put_type(self, tpe: SType) -> "SigmaByteWriter":
        return self.put_bytes(serialize_type(tpe))

    def put_value(self, node: Any) -> "SigmaByteWriter":
        node.serialize(self)
        return self

    def put_constant(self, value: Any, tpe: SType) -> "SigmaByteWriter":
        index = self.constants.add(tpe, serialize_data(value, tpe))
        return self.put_byte(CONSTANT_PLACEHOLDER_CODE).put_uint(index)

    def put_placeholder(self, index: int) -> "SigmaByteWriter":
        return self.put_byte(CONSTANT_PLACEHOLDER_CODE).put_uint(index)

    def to_bytes(self) -> bytes:
        return bytes(self.buffer)


@dataclass
class StoredConstant:
    tpe: SType
    data: Optional[bytes]


@dataclass
class ConstantStore:
    """Segregated constants in index order."""

    entries: List[StoredConstant] = field(default_factory=list)

    def add(self, tpe: SType, data: Optional[bytes]) -> int:
        self.entries.append(StoredConstant(tpe, data))
        return len(self.entries) - 1

    def __len__(self) -> int:
        return len(self.entries)


def serialize_data(value: Any, tpe: SType) -> bytes:
    """Encode *value* as data of type *tpe* (no type prefix)."""
    writer = SigmaByteWriter()
    write_data(writer, value, tpe)
    return writer.to_bytes()


def write_data(w: SigmaByteWriter, value: Any, tpe: SType) -> None:
    name = tpe.name
    if name == "Boolean":
        w.put_byte(1 if value else 0)
    elif name == "Byte":
        w.put_byte(value)
    elif name in ("Short", "Int"):
        w.put_int(value)
    elif name == "Long":
        w.put_long(value)
    elif name == "BigInt":
        data = bigint_bytes(value)
        w.put_uint(len(data)).put_bytes(data)
    elif name == "GroupElement":
        w.put_bytes(_point(value))
    elif name == "SigmaProp":
        write_sigma_boolean(w, value)
    elif name == "String":
        data = value.encode("utf-8")
        w.put_uint(len(data)).put_bytes(data)
    elif name == "Unit":
        pass
    elif tpe.is_collection:
        elem = tpe.elem
        w.put_uint(len(value))
        if elem.name == "Byte" and not elem.args:
            w.put_bytes(bytes(b & 0xFF for b in value))
        elif elem.name == "Boolean" and not elem.args:
            w.put_bits(list(value))
        else:
            for item in value:
                write_data(w, item, elem)
    elif tpe.is_option:
        if not value.defined:
            w.put_byte(0)
        else:
            w.put_byte(1)
            write_data(w, value.value, tpe.elem)
    elif tpe.is_tuple:
        if len(value) != len(tpe.args):
            raise ValueError(f"Tuple value has {len(value)} items, type {tpe} expects {len(tpe.args)}")
        for item, item_type in zip(value, tpe.args):
            write_data(w, item, item_type)
    else:
        raise ValueError(f"Values of type {tpe} cannot be serialized")


def write_sigma_boolean(w: SigmaByteWriter, value: Any) -> None:
    if isinstance(value, ProveDlog):
        w.put_byte(PROVE_DLOG_CODE).put_bytes(_point(value.point))
    elif isinstance(value, ProveDHTuple):
        w.put_byte(PROVE_DH_TUPLE_CODE)
        for point in (value.g, value.h, value.u, value.v):
            w.put_bytes(_point(point))
    else:
        raise ValueError(f"Unsupported sigma proposition {value!r}")


def _point(value: bytes) -> bytes:
    if len(value) != GROUP_ELEMENT_SIZE:
        raise ValueError(f"Group element must be {GROUP_ELEMENT_SIZE} bytes, got {len(value)}")
    return bytes(value)


class SigmaByteReader:
    """Reads values written by :class:`SigmaByteWriter`.

    Truncated or over-long input raises :class:`ValueError`.
    """

    MAX_VLQ_BYTES = 10

    def __init__(self, data: bytes):
        self.data = bytes(data)
        self.pos = 0

    @property
    def remaining(self) -> int:
        return len(self.data) - self.pos

    def get_byte(self) -> int:
        if self.pos >= len(self.data):
            raise ValueError(f"Unexpected end of data at byte {self.pos}")
        value = self.data[self.pos]
        self.pos += 1
        return value

    def get_bytes(self, count: int) -> bytes:
        if count > self.remaining:
            raise ValueError(f"Expected {count} bytes at byte {self.pos}, only {self.remaining} left")
        chunk = self.data[self.pos:self.pos + count]
        self.pos += count
        return chunk

    def get_uint(self) -> int:
        result = 0
        for shift in range(0, 7 * self.MAX_VLQ_BYTES, 7):
            byte = self.get_byte()
            result |= (byte & 0x7F) << shift
            if not byte & 0x80:
                return result
        raise ValueError(f"VLQ value longer than {self.MAX_VLQ_BYTES} bytes")

    def get_signed(self) -> int:
        encoded = self.get_uint()
        return (encoded >> 1) ^ -(encoded & 1)

    def get_bits(self, count: int) -> List[bool]:
        data = self.get_bytes((count + 7) // 8)
        return [bool(data[index // 8] >> (index % 8) & 1) for index in range(count)]


def deserialize_data(data: bytes, tpe: SType) -> Any:
    """Decode data of type *tpe*; the input must hold exactly one value."""
    reader = SigmaByteReader(data)
    value = read_data(reader, tpe)
    if reader.remaining:
        raise ValueError(f"{reader.remaining} trailing bytes after {tpe} value")
    return value


def read_data(r: SigmaByteReader, tpe: SType) -> Any:
    name = tpe.name
    if name == "Boolean":
        flag = r.get_byte()
        if flag not in (0, 1):
            raise ValueError(f"Invalid Boolean byte {flag:#04x}")
        return bool(flag)
    if name == "Byte":
        byte = r.get_byte()
        return byte - 256 if byte > 127 else byte
    if name in ("Short", "Int", "Long"):
        value = r.get_signed()
        if not fits(value, tpe):
            raise ValueError(f"Value {value} is out of range for {tpe}")
        return value
    if name == "BigInt":
        length = r.get_uint()
        if not 0 < length <= 32:
            raise ValueError(f"Invalid BigInt length {length}")
        return int.from_bytes(r.get_bytes(length), "big", signed=True)
    if name == "GroupElement":
        return r.get_bytes(GROUP_ELEMENT_SIZE)
    if name == "SigmaProp":
        return read_sigma_boolean(r)
    if name == "String":
        try:
            return r.get_bytes(r.get_uint()).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ValueError(f"Invalid UTF-8 string: {exc}") from exc
    if name == "Unit":
        return ()
    if tpe.is_collection:
        elem = tpe.elem
        length = r.get_uint()
        if elem.name == "Byte" and not elem.args:
            return r.get_bytes(length)
        if elem.name == "Boolean" and not elem.args:
            return r.get_bits(length)
        if length > r.remaining:
            raise ValueError(f"Collection of {length} items exceeds the data")
        return [read_data(r, elem) for _ in range(length)]
    if tpe.is_option:
        flag = r.get_byte()
        if flag == 0:
            return OptionValue(defined=False)
        if flag != 1:
            raise ValueError(f"Invalid Option flag {flag:#04x}")
        return OptionValue(read_data(r, tpe.elem))
    if tpe.is_tuple:
        return tuple(read_data(r, item_type) for item_type in tpe.args)
    raise ValueError(f"Values of type {tpe} cannot be deserialized")


def read_sigma_boolean(r: SigmaByteReader) -> Any:
    code = r.get_byte()
    if code == PROVE_DLOG_CODE:
        return ProveDlog(r.get_bytes(GROUP_ELEMENT_SIZE))
    if code == PROVE_DH_TUPLE_CODE:
        return ProveDHTuple(*(r.get_bytes(GROUP_ELEMENT_SIZE) for _ in range(4)))
    raise ValueError(f"Unsupported sigma proposition code {code:#04x}")


def serialize_tree(root: Any, constants: ConstantStore) -> bytes:
    """Serialize the root expression, appending its literals to *constants*."""
    writer = SigmaByteWriter(constants)
    writer.put_value(root)
    logger.debug("Serialized tree: %d bytes, %d constants", len(writer.buffer), len(constants))
    return writer.to_bytes()


def tree_header(version: int) -> int:
    if not 0 <= version <= MAX_TREE_VERSION:
        raise ValueError(f"ErgoTree version must be between 0 and {MAX_TREE_VERSION}, got {version}")
    header = HEADER_CONSTANT_SEGREGATION | version
    if version > 0:
        header |= HEADER_SIZE_FLAG
    return header


def assemble_ergo_tree(constants: Sequence[Tuple[bytes, bytes]], root: bytes, version: int = 0) -> bytes:
    """Build a constant-segregated ErgoTree.

    *constants* holds ``(type_bytes, data_bytes)`` pairs in index order and
    *root* the serialized root expression.
    """
    body = bytearray(encode_vlq(len(constants)))
    for type_bytes, data in constants:
        body.extend(type_bytes)
        body.extend(data)
    body.extend(root)
    header = tree_header(version)
    if version > 0:
        return bytes([header]) + encode_vlq(len(body)) + bytes(body)
    return bytes([header]) + bytes(body)


__all__ = [
    "ProveDlog",
    "ProveDHTuple",
    "OptionValue",
    "SigmaByteWriter",
    "SigmaByteReader",
    "ConstantStore",
    "StoredConstant",
    "encode_vlq",
    "decode_vlq",
    "zigzag",
    "bigint_bytes",
    "serialize_data",
    "write_data",
    "deserialize_data",
    "read_data",
    "serialize_tree",
    "tree_header",
    "assemble_ergo_tree",
]
