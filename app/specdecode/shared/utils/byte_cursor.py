"""
Primitive, side-effect free readers over an in-memory byte buffer.

All multi-byte reads take a ``struct`` byte-order character (``"<"`` little-endian,
``">"`` big-endian) and raise ``OutOfBoundsError`` instead of silently clamping.
"""
import struct
from typing import Optional, Union
import numpy as np
from specdecode.core.exceptions import OutOfBoundsError

Buffer = Union[bytes, bytearray, memoryview]

LITTLE = "<"
BIG = ">"


def check_bounds(buf: Buffer, offset: int, width: int) -> None:
    if offset < 0 or width < 0 or offset + width > len(buf):
        raise OutOfBoundsError(offset, width, len(buf))


def _unpack(fmt: str, buf: Buffer, offset: int, endian: str):
    width = struct.calcsize(fmt)
    check_bounds(buf, offset, width)
    return struct.unpack_from(endian + fmt, buf, offset)[0]


def read_u8(buf: Buffer, offset: int) -> int:
    return _unpack("B", buf, offset, LITTLE)


def read_i8(buf: Buffer, offset: int) -> int:
    return _unpack("b", buf, offset, LITTLE)


def read_u16(buf: Buffer, offset: int, endian: str = LITTLE) -> int:
    return _unpack("H", buf, offset, endian)


def read_i16(buf: Buffer, offset: int, endian: str = LITTLE) -> int:
    return _unpack("h", buf, offset, endian)


def read_u32(buf: Buffer, offset: int, endian: str = LITTLE) -> int:
    return _unpack("I", buf, offset, endian)


def read_i32(buf: Buffer, offset: int, endian: str = LITTLE) -> int:
    return _unpack("i", buf, offset, endian)


def read_f32(buf: Buffer, offset: int, endian: str = LITTLE) -> float:
    return _unpack("f", buf, offset, endian)


def read_f64(buf: Buffer, offset: int, endian: str = LITTLE) -> float:
    return _unpack("d", buf, offset, endian)


def read_f64_reversed(buf: Buffer, offset: int) -> float:
    """Reverse the 8 bytes at ``offset`` and interpret them as a big-endian IEEE-754 double."""
    raw = read_bytes(buf, offset, 8)
    return struct.unpack(">d", raw[::-1])[0]


def read_bytes(buf: Buffer, offset: int, length: int) -> bytes:
    check_bounds(buf, offset, length)
    return bytes(buf[offset:offset + length])


def read_cstring(buf: Buffer, offset: int, max_length: Optional[int] = None) -> str:
    """Read a NUL-terminated Latin-1 string; stops at end-of-buffer when no NUL follows."""
    check_bounds(buf, offset, 0)
    end = len(buf) if max_length is None else min(len(buf), offset + max_length)
    raw = bytes(buf[offset:end])
    nul = raw.find(b"\x00")
    if nul != -1:
        raw = raw[:nul]
    return raw.decode("latin-1")


def read_fixed_string(buf: Buffer, offset: int, length: int) -> str:
    """Read a NUL-padded fixed-width Latin-1 field."""
    raw = read_bytes(buf, offset, length)
    nul = raw.find(b"\x00")
    if nul != -1:
        raw = raw[:nul]
    return raw.decode("latin-1")


def byte_to_unsigned(b: int) -> int:
    return b & 0xFF


def is_bit_set(value: int, mask: int) -> bool:
    return (value & mask) != 0


def reinterpret_f32(raw: int) -> float:
    """IEEE-754 bit reinterpretation of a 32-bit integer pattern (not a numeric cast)."""
    return struct.unpack("<f", struct.pack("<I", raw & 0xFFFFFFFF))[0]


def read_f32_array(buf: Buffer, offset: int, count: int, endian: str = LITTLE) -> np.ndarray:
    check_bounds(buf, offset, count * 4)
    return np.frombuffer(buf, dtype=np.dtype(endian + "f4"), count=count, offset=offset).astype(np.float32)


def reinterpret_f32_array(buf: Buffer, offset: int, count: int) -> np.ndarray:
    """Read ``count`` little-endian raw 32-bit integers and reinterpret their bits as float32."""
    check_bounds(buf, offset, count * 4)
    raw = np.frombuffer(buf, dtype="<u4", count=count, offset=offset)
    return raw.view("<f4").astype(np.float32)


class ByteCursor:
    """
    Convenience wrapper binding a buffer and a default byte order.
    Holds no position state, every read is addressed explicitly.
    """

    def __init__(self, buf: Buffer, endian: str = LITTLE):
        self.buf = buf
        self.endian = endian

    def __len__(self) -> int:
        return len(self.buf)

    def u8(self, offset: int) -> int:
        return read_u8(self.buf, offset)

    def i8(self, offset: int) -> int:
        return read_i8(self.buf, offset)

    def u16(self, offset: int) -> int:
        return read_u16(self.buf, offset, self.endian)

    def i16(self, offset: int) -> int:
        return read_i16(self.buf, offset, self.endian)

    def u32(self, offset: int) -> int:
        return read_u32(self.buf, offset, self.endian)

    def i32(self, offset: int) -> int:
        return read_i32(self.buf, offset, self.endian)

    def f32(self, offset: int) -> float:
        return read_f32(self.buf, offset, self.endian)

    def f64(self, offset: int) -> float:
        return read_f64(self.buf, offset, self.endian)

    def raw(self, offset: int, length: int) -> bytes:
        return read_bytes(self.buf, offset, length)

    def cstring(self, offset: int, max_length: Optional[int] = None) -> str:
        return read_cstring(self.buf, offset, max_length)

    def fixed_string(self, offset: int, length: int) -> str:
        return read_fixed_string(self.buf, offset, length)
