"""
Tag scanners for formats that store data as a flat run of tagged records without a
master index. A pattern is four byte values; ``WILDCARD`` matches any byte.
"""
from typing import Optional, Sequence
from specdecode.core.exceptions import BlockNotFoundError
from specdecode.domain.models.decode_result import BlockDescriptor, DecodeTrace
from specdecode.shared.utils.byte_cursor import Buffer, read_i32

WILDCARD = -1
TAG_WIDTH = 4


def pattern_key(pattern: Sequence[int]) -> str:
    return "".join("??" if b == WILDCARD else f"{b & 0xFF:02X}" for b in pattern)


def _matches(buf: Buffer, offset: int, pattern: Sequence[int], wildcards: bool) -> bool:
    for i, expected in enumerate(pattern):
        if wildcards and expected == WILDCARD:
            continue
        if buf[offset + i] != (expected & 0xFF):
            return False
    return True


def _validate(pattern: Sequence[int]) -> None:
    if len(pattern) != TAG_WIDTH:
        raise ValueError(f"Tag pattern must have {TAG_WIDTH} bytes, got {len(pattern)}")


def forward_scan(
    buf: Buffer,
    pattern: Sequence[int],
    base_offset: int,
    stride: int,
    trace: Optional[DecodeTrace] = None,
) -> int:
    """
    Step through ``buf`` from ``base_offset`` in ``stride`` increments until the four
    bytes at the cursor match ``pattern``.

    Returns:
        The offset immediately following the matched tag.

    Raises:
        BlockNotFoundError: If no tag matches before the end of the buffer
    """
    _validate(pattern)
    if stride <= 0:
        raise ValueError("stride must be positive")
    key = pattern_key(pattern)
    offset = base_offset
    result = -1
    while offset >= 0 and offset + TAG_WIDTH <= len(buf):
        if _matches(buf, offset, pattern, wildcards=True):
            result = offset + TAG_WIDTH
            break
        offset += stride

    if trace is not None:
        trace.record(f"forward_scan:{key}", result)
    if result == -1:
        raise BlockNotFoundError(key, base_offset)
    return result


def backward_scan(
    buf: Buffer,
    start: int,
    pattern: Sequence[int],
    floor: int = 4,
    trace: Optional[DecodeTrace] = None,
) -> int:
    """
    Step backwards one byte at a time from ``start`` looking for an exact ``pattern``
    match. Offsets at or below ``floor`` are never examined.

    Returns:
        The offset of the first byte of the matched tag (always greater than ``floor``).

    Raises:
        BlockNotFoundError: If the floor is reached without a match
    """
    _validate(pattern)
    key = pattern_key(pattern)
    offset = min(start, len(buf) - TAG_WIDTH)
    result = -1
    while offset > floor:
        if _matches(buf, offset, pattern, wildcards=False):
            result = offset
            break
        offset -= 1

    if trace is not None:
        trace.record(f"backward_scan:{key}", result)
    if result == -1:
        raise BlockNotFoundError(key, start)
    return result


class BlockDirectory:
    """
    Bundles a buffer with the format-specific scan parameters and resolves tags to
    ``BlockDescriptor`` values, recording every lookup in the trace.
    """

    def __init__(
        self,
        buf: Buffer,
        base_offset: int,
        stride: int,
        floor: int = 4,
        trace: Optional[DecodeTrace] = None,
    ):
        self.buf = buf
        self.base_offset = base_offset
        self.stride = stride
        self.floor = floor
        self.trace = trace if trace is not None else DecodeTrace()

    def find(self, pattern: Sequence[int]) -> BlockDescriptor:
        """Forward scan for a directory entry; the entry's payload follows the tag."""
        offset = forward_scan(self.buf, pattern, self.base_offset, self.stride, self.trace)
        return BlockDescriptor(tag=_tag_bytes(pattern), absolute_offset=offset)

    def find_before(self, start: int, pattern: Sequence[int]) -> BlockDescriptor:
        """Backward scan from ``start`` for a parameter tag."""
        offset = backward_scan(self.buf, start, pattern, self.floor, self.trace)
        return BlockDescriptor(tag=_tag_bytes(pattern), absolute_offset=offset)

    def pointer(self, block: BlockDescriptor, relative: int = 4) -> int:
        """Read the little-endian int32 data pointer stored ``relative`` bytes into an entry."""
        return read_i32(self.buf, block.absolute_offset + relative)


def _tag_bytes(pattern: Sequence[int]) -> bytes:
    return bytes(0 if b == WILDCARD else b & 0xFF for b in pattern)


def tag(text: str) -> Sequence[int]:
    """Build a pattern from an ASCII tag name, NUL padded to four bytes (e.g. ``NPT``)."""
    raw = text.encode("ascii")[:TAG_WIDTH].ljust(TAG_WIDTH, b"\x00")
    return list(raw)
