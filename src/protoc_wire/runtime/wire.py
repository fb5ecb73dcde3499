"""Wire-format primitives used by modules generated by protoc-wire-py.

Generated writers size and append values through ``sizes`` and ``Writer``;
generated readers scan a ``Buffer`` once, recording offsets, and replay those
offsets later in their accessors.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Type, TypeVar, Union

ProtoWireNumber = int

_MAX_VARINT_BYTES = 10
_UINT64_MASK = (1 << 64) - 1

E = TypeVar("E", bound=enum.IntEnum)


class ProtoWireType(enum.IntEnum):
    VARINT = 0
    FIXED64 = 1
    BYTES = 2
    START_GROUP = 3
    END_GROUP = 4
    FIXED32 = 5


class DecodeError(ValueError):
    """Raised when a buffer does not hold well-formed protobuf data."""

    def __init__(self, message: str, offset: int):
        super().__init__(f"{message} (at offset {offset})")
        self.offset = offset


@dataclass(frozen=True)
class VarIntResult:
    value: int
    size: int


@dataclass(frozen=True)
class Tag:
    number: ProtoWireNumber
    wire: ProtoWireType
    size: int


class sizes:  # noqa: N801 - used as a namespace by generated code
    @staticmethod
    def size_varint(value: int) -> int:
        value &= _UINT64_MASK
        size = 1
        while value >= 0x80:
            value >>= 7
            size += 1
        return size

    @staticmethod
    def size_i32(value: int) -> int:
        # Negative int32 values are sign-extended to 64 bits on the wire.
        if value < 0:
            return _MAX_VARINT_BYTES
        return sizes.size_varint(value)

    @staticmethod
    def size_usize(value: int) -> int:
        return sizes.size_varint(value)

    @staticmethod
    def size_wire_number(number: ProtoWireNumber) -> int:
        return sizes.size_varint(number << 3)


class Writer:
    """Append-only output buffer for encoding one message."""

    def __init__(self):
        self._buf = bytearray()

    def __len__(self) -> int:
        return len(self._buf)

    def to_bytes(self) -> bytes:
        return bytes(self._buf)

    def append_varint(self, value: int) -> None:
        value &= _UINT64_MASK
        while value >= 0x80:
            self._buf.append((value & 0x7F) | 0x80)
            value >>= 7
        self._buf.append(value)

    def append_tag(self, number: ProtoWireNumber, wire: ProtoWireType) -> None:
        self.append_varint((number << 3) | int(wire))

    def append_int32(self, number: ProtoWireNumber, value: int) -> None:
        self.append_tag(number, ProtoWireType.VARINT)
        self.append_int32_without_tag(value)

    def append_int32_without_tag(self, value: int) -> None:
        self.append_varint(value)

    def append_bytes_tag(self, number: ProtoWireNumber, length: int) -> None:
        """Writes the tag and length prefix of a length-delimited block."""
        self.append_tag(number, ProtoWireType.BYTES)
        self.append_varint(length)


class Buffer:
    """Read-only view over an encoded message, addressed by byte offset."""

    def __init__(self, data: bytes):
        self.data = bytes(data)

    def __len__(self) -> int:
        return len(self.data)

    def has_next(self, offset: int) -> bool:
        return offset < len(self.data)

    def read_varint(self, offset: int) -> VarIntResult:
        value = 0
        shift = 0
        pos = offset
        while True:
            if pos >= len(self.data):
                raise DecodeError("truncated varint", offset)
            if pos - offset >= _MAX_VARINT_BYTES:
                raise DecodeError("varint longer than 10 bytes", offset)
            byte = self.data[pos]
            value |= (byte & 0x7F) << shift
            pos += 1
            if byte < 0x80:
                break
            shift += 7
        return VarIntResult(value=value & _UINT64_MASK, size=pos - offset)

    def read_int32(self, offset: int) -> VarIntResult:
        result = self.read_varint(offset)
        value = result.value & 0xFFFFFFFF
        if value & 0x80000000:
            value -= 1 << 32
        return VarIntResult(value=value, size=result.size)

    def read_tag_at(self, offset: int) -> Tag:
        result = self.read_varint(offset)
        number = result.value >> 3
        if number == 0:
            raise DecodeError("invalid field number 0", offset)
        try:
            wire = ProtoWireType(result.value & 0x7)
        except ValueError:
            raise DecodeError(f"invalid wire type {result.value & 0x7}", offset) from None
        return Tag(number=number, wire=wire, size=result.size)

    def skip(self, offset: int, length: int) -> int:
        """Returns ``offset + length`` if that stays inside the buffer."""
        end = offset + length
        if end > len(self.data):
            raise DecodeError(
                f"length {length} runs past end of buffer ({len(self.data)} bytes)",
                offset,
            )
        return end

    def skip_data(self, offset: int, wire: ProtoWireType) -> int:
        """Skips the payload of an unknown field and returns the next offset."""
        if wire == ProtoWireType.VARINT:
            return offset + self.read_varint(offset).size
        if wire == ProtoWireType.FIXED64:
            return self.skip(offset, 8)
        if wire == ProtoWireType.FIXED32:
            return self.skip(offset, 4)
        if wire == ProtoWireType.BYTES:
            length = self.read_varint(offset)
            return self.skip(offset + length.size, length.value)
        raise DecodeError(f"unsupported wire type {wire.name}", offset)


class Allocator:
    """Hands out lists to generated readers and tracks which are still live.

    Lists obtained from ``new_list`` belong to the caller until they are
    given back with ``release``.
    """

    def __init__(self):
        self.outstanding = 0

    def new_list(self) -> list:
        self.outstanding += 1
        return []

    def release(self, items: list) -> None:
        if self.outstanding == 0:
            raise RuntimeError("release() called more often than new_list()")
        items.clear()
        self.outstanding -= 1


def enum_from_int(enum_type: Type[E], value: int) -> Union[E, int]:
    """Converts a decoded integer to ``enum_type``.

    Integers that name no member are passed through unchanged so values
    added to the enum by newer writers survive decoding.
    """
    try:
        return enum_type(value)
    except ValueError:
        return value


def unexpected_wire_type(tag: Tag, offset: int) -> DecodeError:
    return DecodeError(
        f"field {tag.number} cannot use wire type {tag.wire.name}", offset
    )


__all__ = [
    "Allocator",
    "Buffer",
    "DecodeError",
    "ProtoWireNumber",
    "ProtoWireType",
    "Tag",
    "VarIntResult",
    "Writer",
    "enum_from_int",
    "sizes",
    "unexpected_wire_type",
]
